"""All comments and notes stored for one document."""

from __future__ import annotations

from attrs import define, field

from .annotation_data import AnnotationData
from .kind import AnnotationKind
from .types import AnnotationMap, JSONDict


@define(slots=True)
class AnnotationsFile:
    """Persisted annotation store of a single document.

    Attributes:
        comments: Comments keyed by annotation id.
        notes: Notes keyed by annotation id.
    """

    comments: AnnotationMap = field(factory=dict)
    notes: AnnotationMap = field(factory=dict)

    def collection(self, kind: AnnotationKind | str) -> AnnotationMap:
        """Return the map holding annotations of ``kind``."""

        kind = AnnotationKind.parse(kind)
        return self.comments if kind is AnnotationKind.COMMENT else self.notes

    def add(self, annotation: AnnotationData) -> None:
        """Insert or replace ``annotation`` in the matching map."""

        self.collection(annotation.kind)[annotation.id] = annotation

    def all(self) -> list[AnnotationData]:
        """Return comments followed by notes."""

        return [*self.comments.values(), *self.notes.values()]

    def is_empty(self) -> bool:
        return not (self.comments or self.notes)

    def to_dict(self) -> JSONDict:
        return {
            "comments": {k: v.to_dict() for k, v in self.comments.items()},
            "notes": {k: v.to_dict() for k, v in self.notes.items()},
        }

    @classmethod
    def from_dict(cls, data: object) -> AnnotationsFile:
        """Decode a persisted annotations file.

        Args:
            data: Parsed JSON content.

        Returns:
            The decoded store.

        Raises:
            ValueError: If ``data`` does not have the expected shape.
        """

        if not isinstance(data, dict):
            raise ValueError("Annotations file must contain an object")

        result = cls()
        for kind in AnnotationKind:
            entries = data.get(kind.collection) or {}
            if not isinstance(entries, dict):
                raise ValueError(f"'{kind.collection}' must be an object")

            target = result.collection(kind)
            for key, record in entries.items():
                if not isinstance(record, dict):
                    raise ValueError(f"Annotation '{key}' must be an object")

                # Records stored without an id take their key.
                annotation = AnnotationData.from_dict(
                    {**record, "id": record.get("id") or key}, kind
                )
                target[key] = annotation
        return result
