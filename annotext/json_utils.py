"""JSON serialization helpers using optional orjson."""

from __future__ import annotations

try:
    import orjson  # type: ignore[import-not-found]
except ImportError:  # pragma: no cover - optional dependency
    orjson = None  # type: ignore[assignment]

import json

from annotext.errors import ParseFailure


def json_dumps(data: object, pretty: bool = False) -> str:
    """Serialize data to a JSON string.

    Args:
        data: Data structure to serialize.
        pretty: Indent nested structures by two spaces, the layout used
            for annotation files kept next to user documents.

    Returns:
        JSON representation of ``data``.
    """

    if orjson is not None:
        option = orjson.OPT_INDENT_2 if pretty else 0
        return orjson.dumps(data, option=option).decode()
    return json.dumps(data, ensure_ascii=False, indent=2 if pretty else None)


def json_loads(data: str | bytes) -> object:
    """Deserialize JSON data from a string or bytes.

    Args:
        data: JSON content as ``str`` or ``bytes``.

    Returns:
        Parsed JSON object.

    Raises:
        ParseFailure: If ``data`` is not valid JSON.
    """

    try:
        if orjson is not None:
            return orjson.loads(data)
        if isinstance(data, (bytes, bytearray)):
            return json.loads(data.decode())
        return json.loads(data)
    except ValueError as exc:
        # Both ``json.JSONDecodeError`` and ``orjson.JSONDecodeError``
        # derive from ``ValueError``.
        raise ParseFailure(f"Invalid JSON: {exc}") from exc
