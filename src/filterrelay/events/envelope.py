"""Server → client envelope: {type, data, timestamp}."""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from filterrelay.events.types import ERROR


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def envelope(message_type: str, data: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
    return {
        "type": message_type,
        "data": dict(data or {}),
        "timestamp": utc_timestamp(),
    }


def error(message: str) -> dict[str, Any]:
    return envelope(ERROR, {"message": message})
