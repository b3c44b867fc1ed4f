"""Addressable word produced by the word indexer."""

from __future__ import annotations

from attrs import define, field


@define(slots=True, frozen=True)
class TrackedWordSpan:
    """A rendered word and its position in the indexing pass.

    Attributes:
        article_id: Identifier of the rendered article.
        word_index: Zero-based index of the word in the pass.
        text: The word itself.
    """

    article_id: str
    word_index: int
    text: str = field(default="", eq=False)

    @property
    def dom_id(self) -> str:
        """Element id of the word, ``{article_id}-{word_index}``."""

        return f"{self.article_id}-{self.word_index}"
