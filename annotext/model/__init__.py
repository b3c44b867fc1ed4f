"""Data model for text-anchored annotations."""

from .annotation_data import AnnotationData
from .annotations_file import AnnotationsFile
from .kind import AnnotationKind
from .parsed_comment import ParsedComment
from .span_anchor import SpanAnchor
from .tracked_word_span import TrackedWordSpan

__all__ = [
    "AnnotationData",
    "AnnotationKind",
    "AnnotationsFile",
    "ParsedComment",
    "SpanAnchor",
    "TrackedWordSpan",
]
