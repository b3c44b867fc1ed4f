"""Comment recognized in free text by the comment parser."""

from __future__ import annotations

from attrs import define, field

from .span_anchor import SpanAnchor
from .types import WordIndexList


@define(slots=True)
class ParsedComment:
    """A ``Title. Body:`` comment found in a document.

    Attributes:
        title: Title sentence including its trailing period.
        body: Body text including its trailing colon.
        indices: Word indices the comment occupies in the document.
    """

    title: str
    body: str
    indices: WordIndexList = field(factory=list)

    def to_anchor(self) -> SpanAnchor:
        """Return the source anchor of a stored comment for this entry.

        The title bounds the start of the span and the body its end; the
        title is what gets highlighted.
        """

        title_words = len(self.title.split())
        return SpanAnchor(
            start=self.title,
            end=self.body,
            display=self.title,
            text=self.body,
            range=list(self.indices),
            display_range=list(self.indices[:title_words]),
        )
