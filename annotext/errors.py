"""Errors raised while creating, locating and persisting annotations."""

from __future__ import annotations


class AnnotationError(Exception):
    """Base class for all annotation errors."""


class MissingRequiredField(AnnotationError, ValueError):
    """A required field such as the source or target is empty."""


class SourceNotFound(AnnotationError):
    """The annotated source document does not exist."""


class AnchorNotFound(AnnotationError):
    """An anchor could not be resolved in the document text."""


class StartNotFound(AnchorNotFound):
    """The start fragment does not occur in the document."""


class EndNotFound(AnchorNotFound):
    """The end fragment does not occur after the start fragment."""


class DisplayNotFound(AnchorNotFound):
    """The display fragment is not inside the located span."""


class OrderInverted(AnchorNotFound):
    """The end fragment was found before the start fragment."""


class PersistenceFailure(AnnotationError):
    """Reading or writing the annotations store failed."""


class ParseFailure(AnnotationError):
    """Stored annotations could not be decoded."""


class InvalidRange(AnnotationError, ValueError):
    """Word ranges of an anchor are out of order."""
