import json
import logging
from datetime import timedelta
from enum import Enum
from typing import Any, Iterable

logger = logging.getLogger(__name__)

_MICROSECOND = timedelta(microseconds=1)
_US_PER_MS = 1_000
_US_PER_SECOND = 1_000_000
_US_PER_MINUTE = 60 * _US_PER_SECOND
_US_PER_HOUR = 60 * _US_PER_MINUTE


class FormattingMode(str, Enum):
    """How a whole Stopwatch renders its laps."""

    # [{"state":"Lap1", "time":"10ms"}, ...]
    JSON_ARRAY = "JSON_ARRAY"
    # {"Lap1":"10ms", "Lap2":"20ms"}, lap data is dropped
    JSON_OBJECT = "JSON_OBJECT"
    # {"Lap1":10.100, "Lap2":20.200}, lap data is dropped
    JSON_OBJECT_MS = "JSON_OBJECT_MS"

    @classmethod
    def coerce(cls, value: Any) -> "FormattingMode":
        """Map a mode or tag string to a member, falling back to JSON_ARRAY."""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.JSON_ARRAY
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unknown formatting mode {value!r}, using {cls.JSON_ARRAY.value}")
            return cls.JSON_ARRAY


DEFAULT_FORMATTING_MODE = FormattingMode.JSON_ARRAY


def microseconds(duration: timedelta) -> int:
    return duration // _MICROSECOND


def _with_fraction(value: int, unit: int) -> str:
    whole, rest = divmod(value, unit)
    if not rest:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{rest:0{digits}d}".rstrip("0")


def format_duration(duration: timedelta) -> str:
    """Default duration formatter: 0s, 750µs, 10ms, 1.5s, 1m30s, 2h0m5.25s."""
    us = microseconds(duration)
    if us == 0:
        return "0s"

    sign = "-" if us < 0 else ""
    us = abs(us)
    if us < _US_PER_MS:
        return f"{sign}{us}µs"
    if us < _US_PER_SECOND:
        return f"{sign}{_with_fraction(us, _US_PER_MS)}ms"

    hours, us = divmod(us, _US_PER_HOUR)
    minutes, us = divmod(us, _US_PER_MINUTE)
    seconds = f"{_with_fraction(us, _US_PER_SECOND)}s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return f"{sign}{seconds}"


def quote(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def json_array(items: Iterable[str]) -> str:
    return f"[{', '.join(items)}]"


def json_object(members: Iterable[str]) -> str:
    # members are pre-rendered "key":value pairs, repeated keys are kept as-is
    return f"{{{', '.join(members)}}}"
