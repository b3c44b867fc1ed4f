"""Kinds of annotation kept in an annotations file."""

from __future__ import annotations

from enum import Enum


class AnnotationKind(str, Enum):
    """Whether an annotation is a comment or a note."""

    COMMENT = "COMMENT"
    NOTE = "NOTE"

    @property
    def collection(self) -> str:
        """Name of the annotations file map holding this kind."""

        return "comments" if self is AnnotationKind.COMMENT else "notes"

    @classmethod
    def parse(cls, value: str | AnnotationKind) -> AnnotationKind:
        """Accept ``"comment"``, ``"Note"``, ``"NOTE"`` and the like."""

        if isinstance(value, AnnotationKind):
            return value
        try:
            return cls(value.upper())
        except ValueError:
            raise ValueError(f"Unknown annotation kind: {value!r}") from None
