"""Text-anchored annotations for documents that keep changing."""

from annotext.anchor import AnchorFailure, AnchorResult, locate
from annotext.comments import annotation_to_comment, parse_comments
from annotext.service import AnnotationService, ValidationStatus
from annotext.word_indexer import WordIndexer, index_html

__all__ = [
    "AnchorFailure",
    "AnchorResult",
    "AnnotationService",
    "ValidationStatus",
    "WordIndexer",
    "annotation_to_comment",
    "index_html",
    "locate",
    "parse_comments",
]
