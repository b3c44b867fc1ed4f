"""Fragments and word ranges anchoring one side of an annotation."""

from __future__ import annotations

from attrs import define, field

from .types import JSONDict, WordIndexList


@define(slots=True)
class SpanAnchor:
    """Three-fragment anchor plus the word ranges it covers.

    Attributes:
        start: Short fragment where the annotated span begins.
        end: Short fragment where the annotated span ends.
        display: Fragment shown to the user as the annotated text. It lies
            inside the span between ``start`` and ``end``.
        text: Full span text from ``start`` to ``end``, both included.
        range: Word indices covered by the full span.
        display_range: Word indices covered by ``display`` only.
    """

    start: str = ""
    end: str = ""
    display: str = ""
    text: str = ""
    range: WordIndexList = field(factory=list)
    display_range: WordIndexList = field(factory=list)

    def is_empty(self) -> bool:
        """Return ``True`` when no fragment has been recorded."""

        return not (self.start or self.end or self.display or self.text)

    def ranges_consistent(self) -> bool:
        """Check the ordering rules of ``range`` and ``display_range``.

        ``range`` must be non-decreasing, ``display_range`` must be a
        contiguous run contained in ``range`` and must not start before
        the first word of the span.
        """

        span = self.range
        shown = self.display_range

        if any(b < a for a, b in zip(span, span[1:])):
            return False
        if any(b != a + 1 for a, b in zip(shown, shown[1:])):
            return False

        # Ranges are optional; only compare them when both are present.
        if not span or not shown:
            return True
        return shown[0] >= span[0] and set(shown) <= set(span)

    def to_dict(self, prefix: str) -> JSONDict:
        """Flatten the anchor into ``{prefix}_txt_*`` persisted keys."""

        return {
            f"{prefix}_txt_display": self.display,
            f"{prefix}_txt_start": self.start,
            f"{prefix}_txt_end": self.end,
            f"{prefix}_txt": self.text,
            f"{prefix}_range": list(self.range),
            f"{prefix}_txt_display_range": list(self.display_range),
        }

    @classmethod
    def from_dict(cls, data: JSONDict, prefix: str) -> SpanAnchor:
        """Rebuild an anchor from flattened persisted keys.

        Missing keys default to empty values so that records written by
        older versions still load.
        """

        return cls(
            start=str(data.get(f"{prefix}_txt_start") or ""),
            end=str(data.get(f"{prefix}_txt_end") or ""),
            display=str(data.get(f"{prefix}_txt_display") or ""),
            text=str(data.get(f"{prefix}_txt") or ""),
            range=[int(i) for i in data.get(f"{prefix}_range") or []],
            display_range=[
                int(i) for i in data.get(f"{prefix}_txt_display_range") or []
            ],
        )
