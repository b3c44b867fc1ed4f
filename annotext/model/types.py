"""Common type aliases for annotation structures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .annotation_data import AnnotationData  # noqa: F401
    from .parsed_comment import ParsedComment  # noqa: F401
    from .tracked_word_span import TrackedWordSpan  # noqa: F401


WordIndexList = list[int]
AnnotationMap = dict[str, "AnnotationData"]
ParsedCommentList = list["ParsedComment"]
TrackedWordSpanList = list["TrackedWordSpan"]
JSONDict = dict[str, Any]
