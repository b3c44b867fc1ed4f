"""Extract ``Title. Body:`` comments from document text."""

from __future__ import annotations

import re
from typing import Iterator

from annotext.model import AnnotationData, ParsedComment
from annotext.model.types import ParsedCommentList

# Wiki links, including ``[[@id]]`` article references and aliases.
WIKI_LINK_RE = re.compile(r"\[\[[^\]\n]*\]\]")

WORD_RE = re.compile(r"\S+")

# A title ending in a period, exactly one space, then the body.
COMMENT_RE = re.compile(r"^(.*?)\. (\S.*)$")

HEADING_MARKER = "#"
BODY_TERMINATOR = ":"


def strip_wiki_links(text: str) -> str:
    """Remove ``[[...]]`` spans without inserting any whitespace."""

    return WIKI_LINK_RE.sub("", text)


def _count_words(text: str) -> int:
    return len(WORD_RE.findall(text))


def _strip_with_offsets(
    line: str, line_start: int
) -> tuple[str, list[int]]:
    """Strip wiki links from a line and map every kept character back.

    Args:
        line: Raw line.
        line_start: Offset of the line in the document.

    Returns:
        The stripped line and, for each of its characters, the offset of
        that character in the document.
    """

    pieces: list[str] = []
    offsets: list[int] = []
    pos = 0

    for match in WIKI_LINK_RE.finditer(line):
        pieces.append(line[pos : match.start()])
        offsets.extend(range(line_start + pos, line_start + match.start()))
        pos = match.end()

    pieces.append(line[pos:])
    offsets.extend(range(line_start + pos, line_start + len(line)))

    return "".join(pieces), offsets


def iter_words(text: str) -> Iterator[tuple[int, int, int]]:
    """Yield ``(index, start, end)`` for every numbered word of ``text``.

    Words are counted the way ``parse_comments`` counts them: heading
    lines are skipped and wiki links are not words. ``start`` and ``end``
    are offsets in the raw text.
    """

    index = 0
    line_start = 0

    for line in text.split("\n"):
        if not line.startswith(HEADING_MARKER):
            stripped, offsets = _strip_with_offsets(line, line_start)
            for match in WORD_RE.finditer(stripped):
                start = offsets[match.start()]
                yield index, start, offsets[match.end() - 1] + 1
                index += 1
        line_start += len(line) + 1


def _parse_line(line: str, counter: int) -> ParsedComment | None:
    """Parse one link-stripped line into a comment.

    Args:
        line: Line with wiki links already removed.
        counter: Index of the first word of the line in the document.

    Returns:
        The comment, or ``None`` when the line is ordinary prose.
    """

    if not line.endswith(BODY_TERMINATOR):
        return None

    match = COMMENT_RE.match(line)
    if not match:
        return None

    # The title stays a substring of the line so it can be located again.
    title, body = match.group(1).lstrip(), match.group(2)
    if not title.strip():
        return None

    indices = list(range(counter, counter + _count_words(line)))
    return ParsedComment(title=title + ".", body=body, indices=indices)


def parse_comments(text: str) -> ParsedCommentList:
    """Find every ``Title. Body:`` comment in ``text``.

    Lines starting with ``#`` are headings and are skipped entirely. All
    other lines advance a running word counter, so the indices of a
    comment are its positions among all words of the document, matching
    the indices assigned by the word indexer to the rendered text.

    Args:
        text: Raw document text.

    Returns:
        Comments in document order. Malformed input yields an empty list.
    """

    results: ParsedCommentList = []
    counter = 0

    for raw_line in text.split("\n"):
        if raw_line.startswith(HEADING_MARKER):
            continue

        # Links render as anchors, which the indexer does not number.
        line = strip_wiki_links(raw_line).rstrip("\r")

        comment = _parse_line(line, counter)
        if comment is not None:
            results.append(comment)

        counter += _count_words(line)

    return results


def annotation_to_comment(annotation: AnnotationData) -> ParsedComment:
    """Present a stored annotation in the shape of a parsed comment."""

    return ParsedComment(
        title=annotation.source.display,
        body=annotation.source.text,
        indices=list(annotation.source.range),
    )
