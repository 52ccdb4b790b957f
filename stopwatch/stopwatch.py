import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Mapping, Optional, Union

from stopwatch.formatting import (
    DEFAULT_FORMATTING_MODE,
    FormattingMode,
    format_duration,
    json_array,
    json_object,
    quote,
)
from stopwatch.lap import Lap
from stopwatch.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

Formatter = Callable[[timedelta], str]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    # naive timestamps are taken as local wall-clock time
    return moment.astimezone(timezone.utc)


class Stopwatch:
    """Wall-clock timer split into named laps.

    Elapsed time is measured from ``start`` to now while active, or to the
    frozen ``stop`` point while stopped. ``mark`` is the elapsed time at the
    most recent lap boundary, so each lap holds the time since the previous one.
    A negative offset puts the start in the future and elapsed time counts up
    from below zero.
    """

    def __init__(self, offset: timedelta = timedelta(0), active: bool = True,
                 formatter: Optional[Formatter] = None,
                 formatting_mode: Union[FormattingMode, str, None] = None):
        self._lock = ReadWriteLock()
        self._start: datetime = _now()
        self._stop: Optional[datetime] = None
        self._mark = timedelta(0)
        self._laps: List[Lap] = []
        self._formatter: Formatter = format_duration
        self._formatting_mode = DEFAULT_FORMATTING_MODE

        self.reset(offset, active)
        if formatter is not None:
            self.set_formatter(formatter)
        if formatting_mode is not None:
            self.set_formatting_mode(formatting_mode)

    def reset(self, offset: timedelta = timedelta(0), active: bool = True) -> None:
        """Start over with no laps, keeping the formatter and formatting mode."""
        now = _now()
        with self._lock.write_locked():
            self._start = now - offset
            self._stop = None if active else now
            self._mark = timedelta(0)
            self._laps = []
        logger.debug(f"Stopwatch reset with offset {offset} ({'active' if active else 'stopped'})")

    @property
    def active(self) -> bool:
        with self._lock.read_locked():
            return self._stop is None

    def start(self) -> None:
        """Resume counting. Time spent stopped is not added to elapsed time."""
        with self._lock.write_locked():
            if self._stop is None:
                logger.debug("Stopwatch is already running")
                return
            paused = _now() - self._stop
            self._start += paused
            self._stop = None
        logger.debug(f"Stopwatch resumed after {paused}")

    def stop(self) -> None:
        with self._lock.write_locked():
            if self._stop is not None:
                logger.debug("Stopwatch is already stopped")
                return
            self._stop = _now()
            elapsed = self._stop - self._start
        logger.debug(f"Stopwatch stopped at {elapsed}")

    def _elapsed_time_from(self, now: datetime) -> timedelta:
        if self._stop is None:
            return now - self._start
        return self._stop - self._start

    def elapsed_time(self) -> timedelta:
        with self._lock.read_locked():
            return self._elapsed_time_from(_now())

    def elapsed_time_from(self, now: datetime) -> timedelta:
        """Elapsed time as of ``now``; ignored when the stopwatch is stopped."""
        now = _as_utc(now)
        with self._lock.read_locked():
            return self._elapsed_time_from(now)

    def lap_time(self) -> timedelta:
        """Time since the last lap boundary, without recording a lap."""
        with self._lock.read_locked():
            return self._elapsed_time_from(_now()) - self._mark

    def lap(self, state: str) -> Lap:
        return self.lap_with_data(state, None)

    def lap_with_data(self, state: str, data: Optional[Mapping[str, Any]]) -> Lap:
        return self.lap_with_data_and_time(_now(), state, data)

    def lap_with_data_and_time(self, now: datetime, state: str,
                               data: Optional[Mapping[str, Any]] = None) -> Lap:
        """Close the current lap at ``now`` and return it.

        An explicit ``now`` earlier than the previous lap boundary is accepted
        and yields a negative duration.
        """
        now = _as_utc(now)
        with self._lock.write_locked():
            elapsed = self._elapsed_time_from(now)
            lap = Lap(
                state=state,
                duration=elapsed - self._mark,
                data=data,
                formatter=self._formatter,
            )
            self._mark = elapsed
            self._laps.append(lap)
        logger.debug(f"Lap '{state}' recorded: {lap.duration}")
        return lap

    def laps(self) -> List[Lap]:
        with self._lock.read_locked():
            return list(self._laps)

    def set_formatter(self, formatter: Formatter) -> None:
        """Replace the duration formatter used by laps recorded from now on."""
        if not callable(formatter):
            raise TypeError(f"formatter must be callable, got {formatter!r}")
        with self._lock.write_locked():
            self._formatter = formatter
        logger.debug(f"Stopwatch formatter set to {getattr(formatter, '__name__', formatter)}")

    def set_formatting_mode(self, mode: Union[FormattingMode, str, None]) -> None:
        mode = FormattingMode.coerce(mode)
        with self._lock.write_locked():
            self._formatting_mode = mode
        logger.debug(f"Stopwatch formatting mode set to {mode.value}")

    @property
    def formatting_mode(self) -> FormattingMode:
        with self._lock.read_locked():
            return self._formatting_mode

    def __str__(self) -> str:
        with self._lock.read_locked():
            laps = self._laps
            mode = self._formatting_mode

            if mode is FormattingMode.JSON_OBJECT:
                return json_object(f"{quote(lap.state)}:{quote(lap.formatted_duration)}" for lap in laps)

            if mode is FormattingMode.JSON_OBJECT_MS:
                # ms with microsecond precision: 1234.567
                return json_object(f"{quote(lap.state)}:{lap.milliseconds:.3f}" for lap in laps)

            return json_array(str(lap) for lap in laps)

    def marshal_json(self) -> bytes:
        return str(self).encode("utf-8")

    __bytes__ = marshal_json


def new(offset: timedelta = timedelta(0), active: bool = True) -> Stopwatch:
    return Stopwatch(offset, active)
