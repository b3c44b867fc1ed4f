"""A single comment or note attached to a document."""

from __future__ import annotations

import time
import uuid

from attrs import define, field

from .kind import AnnotationKind
from .span_anchor import SpanAnchor
from .types import JSONDict


def _now_ms() -> int:
    """Return the current wall clock time in milliseconds."""

    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


@define(slots=True)
class AnnotationData:
    """A comment or note and the anchors locating it.

    The persisted form is a flat record (``src_txt_start``,
    ``target_range`` and so on); in memory each side of the annotation is
    a ``SpanAnchor``.

    Attributes:
        kind: Whether this is a comment or a note.
        src: Path of the document the annotation lives in.
        target: Identifier of the referenced document or article.
        source: Anchor inside the source document.
        target_anchor: Anchor inside the target document.
        id: Unique identifier, stable across sessions.
        timestamp: Creation time in milliseconds since the epoch.
        is_valid: Last known validation outcome, ``None`` when never
            validated.
        validation_error: Reason reported by the last failed validation.
    """

    kind: AnnotationKind = field(converter=AnnotationKind.parse)
    src: str
    target: str
    source: SpanAnchor = field(factory=SpanAnchor)
    target_anchor: SpanAnchor = field(factory=SpanAnchor)
    id: str = field(factory=_new_id)
    timestamp: int = field(factory=_now_ms)
    is_valid: bool | None = None
    validation_error: str | None = None

    def to_dict(self) -> JSONDict:
        """Return the flat persisted record."""

        data: JSONDict = {
            "id": self.id,
            "kind": self.kind.value,
            "timestamp": self.timestamp,
            "src": self.src,
        }
        data.update(self.source.to_dict("src"))
        data["target"] = self.target
        data.update(self.target_anchor.to_dict("target"))

        # Transient fields are only written once they carry a value.
        if self.is_valid is not None:
            data["isValid"] = self.is_valid
        if self.validation_error is not None:
            data["validationError"] = self.validation_error
        return data

    @classmethod
    def from_dict(
        cls, data: JSONDict, kind: AnnotationKind | None = None
    ) -> AnnotationData:
        """Build an annotation from a flat persisted record.

        Args:
            data: Persisted record.
            kind: Kind to use when the record does not carry one, usually
                derived from the map the record was stored in.

        Returns:
            The decoded annotation.
        """

        stored_kind = data.get("kind") or kind
        if stored_kind is None:
            raise ValueError("Annotation record has no kind")

        return cls(
            kind=stored_kind,
            src=str(data.get("src") or ""),
            target=str(data.get("target") or ""),
            source=SpanAnchor.from_dict(data, "src"),
            target_anchor=SpanAnchor.from_dict(data, "target"),
            id=str(data["id"]),
            timestamp=int(data.get("timestamp") or 0),
            is_valid=data.get("isValid"),
            validation_error=data.get("validationError"),
        )
