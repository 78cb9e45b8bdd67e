"""Event-stream wire encoding."""

from __future__ import annotations

import json
from typing import Any

# Written right after the headers so clients waiting on the first byte
# see the stream open.
INITIAL_FRAME = "\n"

KEEPALIVE_COMMENT = "keep-alive"

_LINE_BREAKS = ("\r", "\n")


class EventSerializationError(ValueError):
    """Payload could not be converted to one line of text."""


def _check_single_line(value: str, field: str) -> str:
    if any(c in value for c in _LINE_BREAKS):
        raise EventSerializationError(f"{field} must not contain line breaks: {value!r}")
    return value


def serialize_payload(payload: Any) -> str:
    """Return payload as one line of text, dumping non-strings as compact JSON.

    Text containing CR or LF is rejected; JSON output never contains them.
    """
    if isinstance(payload, str):
        return _check_single_line(payload, "data")
    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise EventSerializationError(
            f"Cannot serialize {type(payload).__name__} payload: {exc}"
        ) from exc


def encode_event(
    payload: Any,
    event_type: str | None = None,
    event_id: int | None = None,
) -> str:
    """Build one event record.

    Fields are emitted as ``event``, ``id``, ``data`` (only ``data`` is
    mandatory) and the record is closed by a single blank line::

        >>> encode_event({"a": 1}, "update", 7)
        'event:update\\nid:7\\ndata:{"a":1}\\n\\n'

    ``event_id`` of ``0`` is treated as absent. Raises
    :class:`EventSerializationError` if the payload cannot be serialized or
    the payload text or event type spans more than one line.
    """
    lines: list[str] = []
    if event_type:
        lines.append(f"event:{_check_single_line(event_type, 'event')}")
    if event_id:
        lines.append(f"id:{event_id}")
    lines.append(f"data:{serialize_payload(payload)}")
    return "\n".join(lines) + "\n\n"


def encode_comment(text: str = KEEPALIVE_COMMENT) -> str:
    """Build a comment record; clients ignore it."""
    return f":{_check_single_line(text, 'comment')}\n\n"
