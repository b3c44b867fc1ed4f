"""Create, validate and delete annotations of a document."""

from __future__ import annotations

import logging
import re

from attrs import define

from annotext.anchor import AnchorFailure, locate
from annotext.comments import strip_wiki_links
from annotext.config import DEFAULT_ANNOTATIONS_DIR, Settings
from annotext.errors import (
    InvalidRange,
    MissingRequiredField,
    ParseFailure,
    PersistenceFailure,
    SourceNotFound,
)
from annotext.json_utils import json_dumps, json_loads
from annotext.logging_utils import RingBufferHandler, attach_buffer
from annotext.model import (
    AnnotationData,
    AnnotationKind,
    AnnotationsFile,
    ParsedComment,
    SpanAnchor,
)
from annotext.store import (
    DocumentSource,
    DocumentStore,
    FileSystemStore,
    SourceAccessor,
)
from annotext.word_indexer import word_range

logger = logging.getLogger(__name__)

ANNOTATIONS_SUFFIX = ".annotations"
EMPTY_SOURCE_NAME = "unknown"
PACKAGE_LOGGER = "annotext"


@define(slots=True, frozen=True)
class ValidationStatus:
    """Result of re-checking a stored annotation.

    Attributes:
        is_valid: Whether the annotation still resolves.
        message: Reason of the failure, ``None`` when valid.
        source_text: Span text currently located in the source.
    """

    is_valid: bool
    message: str | None = None
    source_text: str | None = None


def _require(**values: str) -> None:
    """Raise ``MissingRequiredField`` for the first empty value."""

    labels = {
        "source_path": "Source file path",
        "target_article": "Target article",
    }
    for name, value in values.items():
        if not value:
            raise MissingRequiredField(
                f"{labels.get(name, name)} is required"
            )


def _link_pattern(target: str) -> re.Pattern[str]:
    """Match ``[[@target]]`` and its ``.hex`` and ``|alias`` variants."""

    target_id = re.escape(target.lstrip("@"))
    return re.compile(r"\[\[@" + target_id + r"(?:[.|][^\]]*)?\]\]")


def _anchor_message(failure: AnchorFailure, anchor: SpanAnchor) -> str:
    """Describe a failed anchor lookup in terms of the stored fragments."""

    messages = {
        AnchorFailure.START_NOT_FOUND: (
            f'Text Start not found: "{anchor.start}"'
        ),
        AnchorFailure.END_NOT_FOUND: f'Text End not found: "{anchor.end}"',
        AnchorFailure.ORDER_INVERTED: "Text end appears before text start",
        AnchorFailure.DISPLAY_NOT_FOUND: (
            f'Display text "{anchor.display}" not found between start and '
            "end"
        ),
    }
    return messages[failure]


class AnnotationService:
    """Own the annotations file of every annotated document.

    Each document has one ``.annotations`` JSON file holding its comments
    and notes. Every mutating call reads, modifies and rewrites the whole
    file, so callers must not run mutating calls for the same document
    concurrently.

    Attributes:
        store: Store holding documents and annotation files.
        source: Accessor returning the current text of a document.
        annotations_dir: Folder of the annotation files inside the store.
        log_buffer: Optional in-memory buffer receiving the package logs.
    """

    def __init__(
        self,
        store: DocumentStore,
        source: SourceAccessor | None = None,
        annotations_dir: str = DEFAULT_ANNOTATIONS_DIR,
        log_buffer: RingBufferHandler | None = None,
    ) -> None:
        self.store = store
        self.source = source or DocumentSource(store)
        self.annotations_dir = annotations_dir.rstrip("/")
        self.log_buffer = log_buffer

        if log_buffer is not None:
            attach_buffer(PACKAGE_LOGGER, log_buffer)

    @classmethod
    def from_settings(cls, settings: Settings) -> AnnotationService:
        """Build a service working on the vault described by ``settings``."""

        store = FileSystemStore(settings.vault_root)
        return cls(
            store,
            annotations_dir=settings.annotations_dir,
            log_buffer=RingBufferHandler(settings.log_capacity),
        )

    # Persistence.

    def annotations_path(self, doc_path: str) -> str:
        """Return the store path of the annotations file of ``doc_path``.

        The file is named after the document base name up to its first
        dot. Empty paths map to a fixed sentinel name.
        """

        base = doc_path.replace("\\", "/").split("/")[-1].split(".")[0]
        name = base or EMPTY_SOURCE_NAME
        return f"{self.annotations_dir}/{name}{ANNOTATIONS_SUFFIX}"

    def ensure_annotations_directory(self) -> None:
        """Create the annotations folder when it does not exist yet."""

        try:
            if not self.store.exists(self.annotations_dir):
                self.store.create_folder(self.annotations_dir)
        except OSError as exc:
            logger.exception("Cannot create %s", self.annotations_dir)
            raise PersistenceFailure(
                f"Cannot create annotations folder: {exc}"
            ) from exc

    def load_annotations(self, doc_path: str) -> AnnotationsFile:
        """Read the annotations of ``doc_path``.

        Missing files yield an empty store. Unreadable or corrupt files
        are logged and also yield an empty store.
        """

        path = self.annotations_path(doc_path)

        try:
            if not self.store.exists(path):
                return AnnotationsFile()
            content = self.store.read(path)
        except OSError as exc:
            logger.error("Error reading annotations file %s: %s", path, exc)
            return AnnotationsFile()

        try:
            return AnnotationsFile.from_dict(json_loads(content))
        except (ParseFailure, ValueError, KeyError, TypeError) as exc:
            logger.error("Corrupt annotations file %s: %s", path, exc)
            return AnnotationsFile()

    def get_annotations(self, doc_path: str) -> AnnotationsFile:
        return self.load_annotations(doc_path)

    def save_annotations(
        self, doc_path: str, annotations: AnnotationsFile
    ) -> str:
        """Write the whole annotations file of ``doc_path``.

        Returns:
            The store path that was written.

        Raises:
            PersistenceFailure: If the file cannot be written.
        """

        self.ensure_annotations_directory()
        path = self.annotations_path(doc_path)
        content = json_dumps(annotations.to_dict(), pretty=True)

        try:
            self.store.write(path, content)
        except OSError as exc:
            logger.exception("Error writing annotations file %s", path)
            raise PersistenceFailure(
                f"Cannot write annotations file {path}: {exc}"
            ) from exc
        return path

    def _store(self, annotation: AnnotationData) -> str:
        annotations = self.load_annotations(annotation.src)
        annotations.add(annotation)
        self.save_annotations(annotation.src, annotations)

        logger.info(
            "Saved %s %s for %s",
            annotation.kind.value.lower(),
            annotation.id,
            annotation.src,
        )
        return annotation.id

    # Creation.

    def save_comment(
        self,
        source_path: str,
        target_article: str,
        source_anchor: SpanAnchor | None = None,
        target_anchor: SpanAnchor | None = None,
    ) -> str:
        """Store a new comment on ``source_path``.

        Args:
            source_path: Document the comment lives in.
            target_article: Identifier of the referenced article.
            source_anchor: Anchor of the commented text.
            target_anchor: Anchor inside the referenced article.

        Returns:
            Identifier of the new comment.

        Raises:
            MissingRequiredField: If the source or target is empty.
            InvalidRange: If a word range is out of order.
            PersistenceFailure: If the annotations file cannot be written.
        """

        _require(target_article=target_article, source_path=source_path)

        source_anchor = source_anchor or SpanAnchor()
        target_anchor = target_anchor or SpanAnchor()
        sides = (("Source", source_anchor), ("Target", target_anchor))
        for side, anchor in sides:
            if not anchor.ranges_consistent():
                raise InvalidRange(f"{side} word ranges are out of order")

        annotation = AnnotationData(
            kind=AnnotationKind.COMMENT,
            src=source_path,
            target=target_article,
            source=source_anchor,
            target_anchor=target_anchor,
        )
        return self._store(annotation)

    def save_parsed_comment(
        self,
        source_path: str,
        target_article: str,
        comment: ParsedComment,
        target_anchor: SpanAnchor | None = None,
    ) -> str:
        """Promote a comment found by the parser into a stored comment."""

        return self.save_comment(
            source_path, target_article, comment.to_anchor(), target_anchor
        )

    def save_note(
        self,
        source_path: str,
        target_article: str,
        text_start: str,
        text_end: str,
        text_display: str = "",
        target_anchor: SpanAnchor | None = None,
    ) -> str:
        """Store a new note anchored in the current text of the source.

        The fragments are located in the current source text, the same way
        ``locate`` does, and the note records the span text and the word
        ranges found there. Without a display fragment the whole span is
        displayed.

        Args:
            source_path: Document the note lives in.
            target_article: Identifier of the referenced article.
            text_start: Fragment where the noted span begins.
            text_end: Fragment where the noted span ends.
            text_display: Fragment highlighted inside the span.
            target_anchor: Anchor inside the referenced article.

        Returns:
            Identifier of the new note.

        Raises:
            MissingRequiredField: If the source or target is empty.
            SourceNotFound: If the source document does not exist.
            PersistenceFailure: If the source cannot be read or the
                annotations file cannot be written.
            AnchorNotFound: If the fragments cannot be located.
        """

        _require(target_article=target_article, source_path=source_path)

        try:
            text = self.source.get_current_text(source_path)
        except SourceNotFound as exc:
            raise SourceNotFound(
                f"Could not read source file {source_path}: {exc}"
            ) from exc
        except OSError as exc:
            raise PersistenceFailure(
                f"Could not read source file {source_path}: {exc}"
            ) from exc

        result = locate(text, text_start, text_end, text_display)
        if result.failure is AnchorFailure.DISPLAY_NOT_FOUND:
            result.raise_for_failure(
                f'Display text "{text_display}" not found between the text '
                "boundaries"
            )
        result.raise_for_failure(
            f"Could not locate text boundaries in {source_path}: "
            f"{result.message}"
        )

        display = text_display or result.range_text
        display_start = result.display_start
        source_anchor = SpanAnchor(
            start=text_start,
            end=text_end,
            display=display,
            text=result.range_text,
            range=word_range(text, result.start_offset, result.end_offset),
            display_range=word_range(
                text, display_start, display_start + len(display)
            ),
        )

        annotation = AnnotationData(
            kind=AnnotationKind.NOTE,
            src=source_path,
            target=target_article,
            source=source_anchor,
            target_anchor=target_anchor or SpanAnchor(),
        )
        return self._store(annotation)

    # Queries and deletion.

    def list_annotations(
        self, doc_path: str, kind: AnnotationKind | str | None = None
    ) -> list[AnnotationData]:
        """Return the annotations of ``doc_path`` ordered by creation."""

        annotations = self.load_annotations(doc_path)
        if kind is None:
            items = annotations.all()
        else:
            items = list(annotations.collection(kind).values())
        return sorted(items, key=lambda a: a.timestamp)

    def find_comment_by_source(
        self, doc_path: str, display: str, start: str, end: str
    ) -> AnnotationData | None:
        """Return the stored comment anchored by exactly these fragments."""

        for comment in self.load_annotations(doc_path).comments.values():
            anchor = comment.source
            if (
                anchor.display == display
                and anchor.start == start
                and anchor.end == end
            ):
                return comment
        return None

    def delete_annotation(
        self, doc_path: str, annotation_id: str, kind: AnnotationKind | str
    ) -> bool:
        """Remove an annotation from the file of ``doc_path``.

        Returns:
            ``True`` when the annotation existed and the file was
            rewritten, ``False`` otherwise.
        """

        if not doc_path or not annotation_id:
            return False

        annotations = self.load_annotations(doc_path)
        collection = annotations.collection(kind)
        if annotation_id not in collection:
            return False

        del collection[annotation_id]
        self.save_annotations(doc_path, annotations)
        logger.info("Deleted %s from %s", annotation_id, doc_path)
        return True

    # Validation.

    def _validate_source(
        self, annotation: AnnotationData, doc_path: str, note: bool
    ) -> ValidationStatus:
        anchor = annotation.source

        try:
            text = self.source.get_current_text(doc_path)
        except SourceNotFound:
            return ValidationStatus(
                False, f"Source document not found: {doc_path}"
            )

        if not anchor.start or not anchor.end or not anchor.display:
            return ValidationStatus(False, "Missing source text fields")

        # Comments are parsed from text without wiki links.
        content = text if note else strip_wiki_links(text)

        result = locate(content, anchor.start, anchor.end, anchor.display)
        if result.failure is not None:
            return ValidationStatus(
                False, _anchor_message(result.failure, anchor)
            )

        if note and not _link_pattern(annotation.target).search(text):
            return ValidationStatus(
                False,
                f'Expected link "[[@{annotation.target.lstrip("@")}]]" '
                "not found in source",
            )

        return ValidationStatus(True, source_text=result.range_text)

    def _validate(
        self, annotation: AnnotationData, doc_path: str | None, note: bool
    ) -> ValidationStatus:
        path = doc_path or annotation.src
        try:
            return self._validate_source(annotation, path, note)
        except Exception as exc:
            logger.exception("Error validating %s", annotation.id)
            return ValidationStatus(False, f"Error validating: {exc}")

    def validate_comment(
        self, annotation: AnnotationData, doc_path: str | None = None
    ) -> ValidationStatus:
        """Check that a comment still resolves in its source document.

        Wiki links are removed from the source before the fragments are
        located. Never raises.
        """

        return self._validate(annotation, doc_path, note=False)

    def validate_note(
        self, annotation: AnnotationData, doc_path: str | None = None
    ) -> ValidationStatus:
        """Check that a note still resolves and its link still exists.

        Besides the anchor, the source must still contain the
        ``[[@target]]`` link of the note. Never raises.
        """

        return self._validate(annotation, doc_path, note=True)

    def validate(
        self, annotation: AnnotationData, doc_path: str | None = None
    ) -> ValidationStatus:
        """Validate ``annotation`` with the check matching its kind."""

        if annotation.kind is AnnotationKind.NOTE:
            return self.validate_note(annotation, doc_path)
        return self.validate_comment(annotation, doc_path)

    def validate_all_annotations(
        self, doc_path: str
    ) -> dict[str, ValidationStatus]:
        """Re-check every annotation of ``doc_path`` and store the outcome.

        Each annotation gets its ``is_valid`` flag and validation error
        updated. A failure while checking one annotation is logged and the
        remaining annotations are still checked. Never raises.

        Returns:
            Validation status keyed by annotation id.
        """

        annotations = self.load_annotations(doc_path)
        statuses: dict[str, ValidationStatus] = {}

        if annotations.is_empty():
            return statuses

        for annotation in annotations.all():
            try:
                status = self.validate(annotation, doc_path)
            except Exception as exc:
                logger.exception("Error validating %s", annotation.id)
                status = ValidationStatus(False, f"Error validating: {exc}")

            annotation.is_valid = status.is_valid
            annotation.validation_error = status.message
            statuses[annotation.id] = status

        try:
            self.save_annotations(doc_path, annotations)
        except PersistenceFailure:
            logger.error("Validation results for %s were not saved", doc_path)

        invalid = sum(1 for s in statuses.values() if not s.is_valid)
        logger.info(
            "Validated %d annotations of %s, %d invalid",
            len(statuses),
            doc_path,
            invalid,
        )
        return statuses
