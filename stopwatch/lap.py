import json
from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from stopwatch.formatting import format_duration, microseconds


@dataclass(frozen=True)
class Lap:
    """One completed interval recorded by a Stopwatch."""

    state: str
    duration: timedelta
    data: Optional[Mapping[str, Any]] = field(default=None, hash=False)
    formatter: Callable[[timedelta], str] = field(default=format_duration, compare=False, repr=False)

    def __post_init__(self):
        # read-only snapshot, shared safely by the history and every copy handed out
        if self.data is not None:
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @property
    def formatted_duration(self) -> str:
        return self.formatter(self.duration)

    @property
    def milliseconds(self) -> float:
        return microseconds(self.duration) / 1000.0

    def __str__(self) -> str:
        payload = {"state": self.state, "time": self.formatted_duration}
        for key, value in (self.data or {}).items():
            payload.setdefault(key if isinstance(key, str) else str(key), value)
        return json.dumps(payload, ensure_ascii=False, default=str, separators=(", ", ":"))

    def marshal_json(self) -> bytes:
        return str(self).encode("utf-8")
