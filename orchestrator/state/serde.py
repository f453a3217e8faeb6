"""JSON conversion for state values.

State holds langchain message objects. ``encode_state``/``decode_state``
round-trip them (and datetimes) through tagged dicts for durable storage, and
``to_jsonable`` renders them as ``{"role", "content"}`` for event streams.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping

from langchain_core.messages import BaseMessage, message_to_dict, messages_from_dict

MESSAGE_MARKER = "__message__"
DATETIME_MARKER = "__datetime__"


def encode_value(value: Any) -> Any:
    if isinstance(value, BaseMessage):
        return {MESSAGE_MARKER: message_to_dict(value)}
    if isinstance(value, Mapping):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    if isinstance(value, datetime):
        return {DATETIME_MARKER: value.isoformat()}
    return value


def decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {MESSAGE_MARKER}:
            return messages_from_dict([value[MESSAGE_MARKER]])[0]
        if set(value) == {DATETIME_MARKER}:
            return datetime.fromisoformat(value[DATETIME_MARKER])
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def encode_state(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: encode_value(v) for key, v in values.items()}


def decode_state(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(v) for key, v in data.items()}


def to_jsonable(value: Any) -> Any:
    """Render a state value for SSE/JSON output (lossy for messages)."""
    if isinstance(value, BaseMessage):
        return {"role": value.type, "content": value.content}
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value
