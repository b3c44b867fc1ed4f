"""Locate three-fragment text anchors inside document text."""

from __future__ import annotations

from enum import Enum

from attrs import define

from annotext.errors import (
    AnchorNotFound,
    DisplayNotFound,
    EndNotFound,
    OrderInverted,
    StartNotFound,
)


class AnchorFailure(str, Enum):
    """Stage at which locating an anchor failed."""

    START_NOT_FOUND = "StartNotFound"
    END_NOT_FOUND = "EndNotFound"
    ORDER_INVERTED = "OrderInverted"
    DISPLAY_NOT_FOUND = "DisplayNotFound"


_FAILURE_ERRORS: dict[AnchorFailure, type[AnchorNotFound]] = {
    AnchorFailure.START_NOT_FOUND: StartNotFound,
    AnchorFailure.END_NOT_FOUND: EndNotFound,
    AnchorFailure.ORDER_INVERTED: OrderInverted,
    AnchorFailure.DISPLAY_NOT_FOUND: DisplayNotFound,
}

_FAILURE_MESSAGES = {
    AnchorFailure.START_NOT_FOUND: "Start text not found",
    AnchorFailure.END_NOT_FOUND: "End text not found after start text",
    AnchorFailure.ORDER_INVERTED: "End text appears before start text",
    AnchorFailure.DISPLAY_NOT_FOUND: "Display text not found within range",
}


@define(slots=True, frozen=True)
class AnchorResult:
    """Outcome of locating an anchor.

    Attributes:
        failure: Failed stage, ``None`` on success.
        start_offset: Absolute offset of the start fragment.
        end_offset: Absolute offset just past the end fragment.
        range_text: Document text between the two offsets.
        display_offset: Offset of the display fragment inside
            ``range_text``.
    """

    failure: AnchorFailure | None = None
    start_offset: int = -1
    end_offset: int = -1
    range_text: str = ""
    display_offset: int = -1

    @property
    def valid(self) -> bool:
        return self.failure is None

    @property
    def message(self) -> str | None:
        """Human readable reason of the failure."""

        return _FAILURE_MESSAGES[self.failure] if self.failure else None

    @property
    def display_start(self) -> int:
        """Absolute offset of the display fragment."""

        return self.start_offset + self.display_offset

    def raise_for_failure(self, message: str | None = None) -> AnchorResult:
        """Raise the error matching ``failure``, return self on success.

        Args:
            message: Error message replacing the default description.

        Raises:
            AnchorNotFound: The subclass matching the failed stage.
        """

        if self.failure is not None:
            raise _FAILURE_ERRORS[self.failure](message or self.message)
        return self


def locate(
    document_text: str,
    start_fragment: str,
    end_fragment: str,
    display_fragment: str,
) -> AnchorResult:
    """Find an anchored span in ``document_text``.

    The start fragment is searched from the beginning of the text and the
    end fragment from the start position onwards; the first occurrence
    wins in both cases. The display fragment must then appear inside the
    span running from the start of ``start_fragment`` to the end of
    ``end_fragment``.

    Args:
        document_text: Current text of the document.
        start_fragment: Fragment where the span begins.
        end_fragment: Fragment where the span ends.
        display_fragment: Fragment that has to lie inside the span.

    Returns:
        Result carrying the offsets or the stage that failed.
    """

    # Empty bounds cannot anchor anything.
    start_index = document_text.find(start_fragment) if start_fragment else -1
    if start_index == -1:
        return AnchorResult(failure=AnchorFailure.START_NOT_FOUND)

    end_index = (
        document_text.find(end_fragment, start_index) if end_fragment else -1
    )
    if end_index == -1:
        return AnchorResult(failure=AnchorFailure.END_NOT_FOUND)

    # The end must never precede the start.
    if end_index < start_index:
        return AnchorResult(failure=AnchorFailure.ORDER_INVERTED)

    end_position = end_index + len(end_fragment)
    range_text = document_text[start_index:end_position]

    display_offset = range_text.find(display_fragment)
    if display_offset == -1:
        return AnchorResult(failure=AnchorFailure.DISPLAY_NOT_FOUND)

    return AnchorResult(
        start_offset=start_index,
        end_offset=end_position,
        range_text=range_text,
        display_offset=display_offset,
    )

