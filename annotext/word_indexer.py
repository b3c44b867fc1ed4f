"""Make rendered documents addressable word by word."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable

from bs4 import BeautifulSoup, NavigableString, Tag

from annotext.comments import iter_words
from annotext.model import TrackedWordSpan
from annotext.model.types import TrackedWordSpanList, WordIndexList

logger = logging.getLogger(__name__)

WHITESPACE_SPLIT_RE = re.compile(r"(\s+)")

BLOCK_TAG = "p"
LINK_TAG = "a"
HIGHLIGHT_CLASS = "annotext-highlight"


class WordIndexer:
    """Wrap every word of the rendered paragraphs in an addressable span.

    Each word becomes ``<span data-article-id data-word-index id>`` where
    the id is ``{article_id}-{index}``. Whitespace is kept in plain
    ``<span>`` elements so that the text of a paragraph is unchanged.
    Links are left as they are and their words are not numbered.

    Numbering restarts at zero on every call to ``index`` and continues
    across paragraphs and nested inline elements within that call. The
    tree is modified in place, so a tree must only be indexed once.

    Attributes:
        article_id: Identifier of the rendered article.
    """

    def __init__(self, article_id: str) -> None:
        self.article_id = article_id
        self._word_count = 0
        self._spans: TrackedWordSpanList = []
        self._factory = BeautifulSoup("", "html.parser")

    def index(self, root: Tag) -> TrackedWordSpanList:
        """Index all paragraph blocks below ``root``.

        Args:
            root: Rendering root, usually a parsed document or a container
                element. A paragraph element is indexed itself.

        Returns:
            The tracked words in document order.
        """

        self._word_count = 0
        self._spans = []

        if root.name == BLOCK_TAG:
            blocks = [root]
        else:
            blocks = root.find_all(BLOCK_TAG)
        block_ids = {id(block) for block in blocks}

        for block in blocks:
            # Nested paragraphs are handled with their outer paragraph.
            if any(id(parent) in block_ids for parent in block.parents):
                continue
            self._process_element(block)

        logger.debug(
            "Indexed %d words for article %s",
            self._word_count,
            self.article_id,
        )
        return self._spans

    def _process_element(self, element: Tag) -> None:
        for node in list(element.children):
            if isinstance(node, Tag):
                if node.name == LINK_TAG:
                    continue
                self._process_element(node)
            elif type(node) is NavigableString:
                self._process_text_node(node)
            # Comments and other non-text leaves stay where they are.

    def _process_text_node(self, node: NavigableString) -> None:
        replacements: list[Tag] = []

        for part in WHITESPACE_SPLIT_RE.split(str(node)):
            if not part:
                continue

            if part.isspace():
                space = self._factory.new_tag("span")
                space.string = part
                replacements.append(space)
                continue

            replacements.append(self._word_tag(part))

        if replacements:
            node.replace_with(*replacements)

    def _word_tag(self, word: str) -> Tag:
        index = self._word_count
        span = TrackedWordSpan(
            article_id=self.article_id, word_index=index, text=word
        )

        tag = self._factory.new_tag(
            "span",
            attrs={
                "data-article-id": self.article_id,
                "data-word-index": str(index),
                "id": span.dom_id,
            },
        )
        tag.string = word

        self._spans.append(span)
        self._word_count += 1
        return tag


def index_html(
    html: str, article_id: str
) -> tuple[str, TrackedWordSpanList]:
    """Index the paragraphs of an HTML fragment.

    Args:
        html: Rendered HTML of the document.
        article_id: Identifier of the rendered article.

    Returns:
        The rewritten HTML and the tracked words.
    """

    soup = BeautifulSoup(html, "html.parser")
    spans = WordIndexer(article_id).index(soup)
    return str(soup), spans


def word_range(text: str, start: int, end: int) -> WordIndexList:
    """Return the indices of the words overlapping ``text[start:end]``.

    Words are numbered the way the comment parser numbers them, which
    is also the order the indexer numbers them once the text is
    rendered: heading lines and wiki links are left out.

    Args:
        text: Raw document text.
        start: Offset of the first character of the range.
        end: Offset just past the last character of the range.

    Returns:
        Word indices in ascending order.
    """

    if end <= start:
        return []

    return [
        index
        for index, word_start, word_end in iter_words(text)
        if word_start < end and word_end > start
    ]


def spans_for_range(
    spans: Iterable[TrackedWordSpan], indices: Iterable[int]
) -> TrackedWordSpanList:
    """Select the tracked words whose index is listed in ``indices``."""

    wanted = set(indices)
    return [span for span in spans if span.word_index in wanted]


def highlight_words(
    root: Tag,
    article_id: str,
    indices: Iterable[int],
    annotation_id: str | None = None,
    css_class: str = HIGHLIGHT_CLASS,
) -> int:
    """Mark indexed words of ``root`` as highlighted.

    Args:
        root: Tree previously processed by ``WordIndexer``.
        article_id: Identifier used when the tree was indexed.
        indices: Word indices to highlight.
        annotation_id: Optional annotation id recorded on each word.
        css_class: Class added to every highlighted word.

    Returns:
        Number of words highlighted. Indices that are not present in the
        tree are skipped.
    """

    count = 0
    for index in indices:
        tag: Any = root.find(id=f"{article_id}-{index}")
        if tag is None:
            continue

        classes = tag.get("class", [])
        if css_class not in classes:
            tag["class"] = [*classes, css_class]
        if annotation_id:
            tag["data-annotation-id"] = annotation_id
        count += 1

    if count == 0:
        logger.warning("No words highlighted for article %s", article_id)
    return count
