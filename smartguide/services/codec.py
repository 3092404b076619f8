"""JSON envelope codec for the sync protocol."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from smartguide.core.errors import DecodeError
from smartguide.schemas.messages import MESSAGE_TYPES, Message

logger = logging.getLogger(__name__)

_message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def encode(message: Message) -> str:
    """Serialize a message to a JSON text frame."""
    return message.model_dump_json()


def decode(frame: str | bytes) -> Message | None:
    """Decode one text or binary frame.

    Returns None for a well-formed envelope of an unknown type so newer peers
    can add message types. Raises DecodeError for anything malformed.
    """
    if isinstance(frame, (bytes, bytearray)):
        try:
            text = bytes(frame).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("Binary frame is not valid UTF-8", raw=frame) from exc
    else:
        text = frame

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Invalid JSON: {exc.msg}", raw=frame) from exc

    return decode_payload(data, raw=frame)


def decode_payload(data: Any, raw: str | bytes | None = None) -> Message | None:
    """Validate an already-parsed envelope."""
    if not isinstance(data, dict):
        raise DecodeError(f"Envelope must be a JSON object, got {type(data).__name__}", raw=raw)

    msg_type = data.get("type")
    if not isinstance(msg_type, str):
        raise DecodeError("Envelope missing 'type'", raw=raw)

    if msg_type not in MESSAGE_TYPES:
        logger.debug("Ignoring message of unknown type %r", msg_type)
        return None

    try:
        return _message_adapter.validate_python(data)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) or "?" for err in exc.errors())
        raise DecodeError(f"Malformed {msg_type} message: invalid or missing {fields}", raw=raw) from exc
