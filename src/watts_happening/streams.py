import logging
from typing import Any, List, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from watts_happening.models import ActivityStreams

logger = logging.getLogger(__name__)

STREAM_TYPES = {
    "time": int,
    "watts": float,
    "heartrate": int,
    "cadence": int,
    "velocity_smooth": float,
    "altitude": float,
}

STREAM_KEYS = tuple(STREAM_TYPES)

_ADAPTERS = {key: TypeAdapter(List[item_type]) for key, item_type in STREAM_TYPES.items()}


def decode_stream(payload: Mapping[str, Any], key: str) -> Optional[list]:
    """Decode the ``data`` series of one stream key.

    Returns None when the key is absent or its data is malformed, so a bad
    series never affects the others.
    """
    entry = payload.get(key)
    if not isinstance(entry, Mapping):
        return None
    data = entry.get("data")
    if data is None:
        return None
    try:
        return _ADAPTERS[key].validate_python(data)
    except ValidationError as e:
        logger.debug(f"Ignoring malformed {key} stream: {e.error_count()} invalid values")
        return None


def parse_streams(payload: Mapping[str, Any]) -> ActivityStreams:
    return ActivityStreams(**{key: decode_stream(payload, key) for key in STREAM_KEYS})
