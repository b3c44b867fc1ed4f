"""Bounded in-memory log buffer."""

from __future__ import annotations

import logging
from collections import deque

DEFAULT_CAPACITY = 1000
DEFAULT_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


class RingBufferHandler(logging.Handler):
    """Keep the most recent log records in memory.

    Once ``capacity`` records are held, every new record evicts the oldest
    one. The buffer lets a front-end show recent activity (for example a
    "copy logs" action) without reading the log file.

    Attributes:
        capacity: Maximum number of records kept.
    """

    def __init__(
        self, capacity: int = DEFAULT_CAPACITY, level: int = logging.NOTSET
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        super().__init__(level)
        self.capacity = capacity
        self._records: deque[logging.LogRecord] = deque(maxlen=capacity)
        self.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        self._records.append(record)

    def records(self) -> list[logging.LogRecord]:
        """Return a copy of the buffered records, oldest first."""

        return list(self._records)

    def formatted(self) -> str:
        """Return the buffered records formatted one per line."""

        return "\n".join(self.format(record) for record in self._records)

    def clear(self) -> None:
        """Drop every buffered record."""

        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


def attach_buffer(
    logger: logging.Logger | str,
    handler: RingBufferHandler | None = None,
    capacity: int = DEFAULT_CAPACITY,
) -> RingBufferHandler:
    """Attach a ring buffer to ``logger``.

    Attaching the same handler twice has no effect.

    Args:
        logger: Logger instance or logger name.
        handler: Buffer to attach. A new one is created when omitted.
        capacity: Maximum number of records kept by a new buffer.

    Returns:
        The attached handler.
    """

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    if handler is None:
        handler = RingBufferHandler(capacity)
    if handler not in logger.handlers:
        logger.addHandler(handler)
    return handler
