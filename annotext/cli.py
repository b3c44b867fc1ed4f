import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Optional

import click
import yaml  # type: ignore
from dotenv import load_dotenv

from annotext.anchor import locate
from annotext.comments import parse_comments
from annotext.config import load_settings
from annotext.errors import AnnotationError
from annotext.json_utils import json_dumps
from annotext.model import AnnotationKind, SpanAnchor
from annotext.service import AnnotationService
from annotext.word_indexer import index_html

try:
    __version__ = version("annotext")
except PackageNotFoundError:
    __version__ = "0.0.1-dev"


def _echo_data(data: Any, output_format: str) -> None:  # noqa: ANN401
    """Print ``data`` as JSON or YAML."""

    if output_format == "yaml":
        click.echo(yaml.safe_dump(data, allow_unicode=True, sort_keys=False))
    else:
        click.echo(json_dumps(data, pretty=True))


def _service(ctx: click.Context) -> AnnotationService:
    return ctx.obj["service"]


output_format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "yaml"]),
    default="json",
    show_default=True,
    help="Output format.",
)


@click.group()
@click.option("--debug/--no-debug", default=False)
@click.option("--trace/--no-trace", default=False)
@click.option(
    "--log-file",
    type=click.Path(file_okay=True, dir_okay=False),
    envvar="ANNOTEXT_LOG_FILE",
)
@click.option(
    "--vault",
    type=click.Path(file_okay=False, dir_okay=True),
    default=None,
    help="Directory holding the annotated documents.",
)
@click.version_option(__version__, prog_name="annotext")
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool,
    trace: bool,
    log_file: Optional[str] = None,
    vault: Optional[str] = None,
) -> None:
    """Configure logging, load settings and create the service.

    Args:
        ctx: Click context object.
        debug: Toggle debug logging.
        trace: Toggle trace logging.
        log_file: Optional path to the log file.
        vault: Optional vault directory overriding the settings.
    """
    if trace:
        level = 1
    elif debug:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        filename=log_file,
        level=level,
        format="[%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if trace:
        logging.debug("Trace mode is on")
    if debug:
        logging.debug("Debug mode is on")
    load_dotenv()

    settings = load_settings(vault_root=Path(vault) if vault else None)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["service"] = AnnotationService.from_settings(settings)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@output_format_option
def parse(file: str, output_format: str = "json") -> None:
    """Print the ``Title. Body:`` comments found in FILE."""

    text = Path(file).read_text(encoding="utf-8")
    comments = parse_comments(text)
    _echo_data(
        [
            {"title": c.title, "body": c.body, "indices": c.indices}
            for c in comments
        ],
        output_format,
    )


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--article-id", required=True, help="Identifier of the article.")
@click.option(
    "--spans",
    is_flag=True,
    help="Print the indexed words instead of the rewritten HTML.",
)
def index(html_file: str, article_id: str, spans: bool = False) -> None:
    """Wrap every word of the paragraphs of HTML_FILE in a numbered span."""

    html = Path(html_file).read_text(encoding="utf-8")
    indexed, words = index_html(html, article_id)

    if spans:
        _echo_data(
            [
                {"id": w.dom_id, "index": w.word_index, "text": w.text}
                for w in words
            ],
            "json",
        )
    else:
        click.echo(indexed)


@cli.command("locate")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("start")
@click.argument("end")
@click.argument("display", default="")
def locate_command(file: str, start: str, end: str, display: str = "") -> None:
    """Locate the span of FILE bounded by START and END."""

    text = Path(file).read_text(encoding="utf-8")
    result = locate(text, start, end, display)
    if not result.valid:
        raise click.ClickException(result.message or "Not found")

    _echo_data(
        {
            "start": result.start_offset,
            "end": result.end_offset,
            "display_offset": result.display_offset,
            "text": result.range_text,
        },
        "json",
    )


@cli.command("list")
@click.argument("doc")
@click.option(
    "--kind",
    type=click.Choice(["comment", "note"], case_sensitive=False),
    default=None,
    help="Only list annotations of this kind.",
)
@output_format_option
@click.pass_context
def list_command(
    ctx: click.Context,
    doc: str,
    kind: Optional[str] = None,
    output_format: str = "json",
) -> None:
    """List the annotations stored for DOC."""

    annotations = _service(ctx).list_annotations(doc, kind)
    _echo_data([a.to_dict() for a in annotations], output_format)


@cli.command("add-comment")
@click.argument("doc")
@click.argument("target")
@click.option("--start", "text_start", default="", help="Start fragment.")
@click.option("--end", "text_end", default="", help="End fragment.")
@click.option("--display", default="", help="Displayed fragment.")
@click.option("--text", default="", help="Full span text.")
@click.pass_context
def add_comment(
    ctx: click.Context,
    doc: str,
    target: str,
    text_start: str = "",
    text_end: str = "",
    display: str = "",
    text: str = "",
) -> None:
    """Store a comment on DOC referencing TARGET."""

    anchor = SpanAnchor(
        start=text_start, end=text_end, display=display, text=text
    )
    try:
        annotation_id = _service(ctx).save_comment(doc, target, anchor)
    except AnnotationError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(annotation_id)


@cli.command("add-note")
@click.argument("doc")
@click.argument("target")
@click.argument("start")
@click.argument("end")
@click.option("--display", default="", help="Displayed fragment.")
@click.pass_context
def add_note(
    ctx: click.Context,
    doc: str,
    target: str,
    start: str,
    end: str,
    display: str = "",
) -> None:
    """Store a note on DOC spanning START to END and referencing TARGET."""

    try:
        annotation_id = _service(ctx).save_note(
            doc, target, start, end, display
        )
    except AnnotationError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(annotation_id)


@cli.command()
@click.argument("doc")
@click.argument("annotation_id")
@click.option(
    "--kind",
    type=click.Choice(["comment", "note"], case_sensitive=False),
    default="comment",
    show_default=True,
)
@click.pass_context
def delete(
    ctx: click.Context, doc: str, annotation_id: str, kind: str = "comment"
) -> None:
    """Delete annotation ANNOTATION_ID from DOC."""

    try:
        deleted = _service(ctx).delete_annotation(
            doc, annotation_id, AnnotationKind.parse(kind)
        )
    except AnnotationError as exc:
        raise click.ClickException(str(exc)) from exc

    if not deleted:
        raise click.ClickException(f"No {kind} {annotation_id} in {doc}")
    click.echo(f"Deleted {annotation_id}")


@cli.command()
@click.argument("doc")
@click.pass_context
def validate(ctx: click.Context, doc: str) -> None:
    """Re-check every annotation of DOC against its current text."""

    statuses = _service(ctx).validate_all_annotations(doc)
    for annotation_id, status in statuses.items():
        state = "valid" if status.is_valid else f"invalid: {status.message}"
        click.echo(f"{annotation_id} {state}")

    invalid = sum(1 for s in statuses.values() if not s.is_valid)
    click.echo(f"{len(statuses)} annotations checked, {invalid} invalid")
