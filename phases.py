"""
phases.py

Day/night schedule on the 24h circle: time parsing, boundary derivation and
phase classification with wraparound at midnight.
No timers, no display access.

Public API:
- ScheduleError, PhaseError
- parse_seconds(value) -> float
- format_time_of_day(seconds) -> "HH:MM:SS"
- between(v, s, e) -> bool
- ilerp(v, s, e, a, b) -> float
- Schedule (dataclass), build_schedule(...)
- Phase (Enum), Classification, classify(now, schedule)
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from color_ramp import MAX_TEMP, MIN_TEMP, NEUTRAL_TEMP

DAY = 86400
MAX_TRANSITION = 4 * 3600
DEFAULT_TRANSITION = 3600

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}(?:\.\d+)?))?\s*$")
_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)\s*$", re.IGNORECASE)
_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600, "d": DAY}


class ScheduleError(ValueError):
    """Rejected schedule parameters."""


class PhaseError(RuntimeError):
    """No phase matched; the schedule windows do not cover the day."""


TimeValue = Union[str, int, float]


def parse_seconds(value: TimeValue) -> float:
    """
    Seconds for a clock time ("21:00", "7:30:15") or a duration ("4h", "90s",
    "500ms"); numbers are taken as seconds.
    """
    if isinstance(value, bool):
        raise ScheduleError(f"invalid time value: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ScheduleError(f"invalid time value: {value!r}")

    m = _CLOCK_RE.match(value)
    if m:
        h, mi = int(m.group(1)), int(m.group(2))
        s = float(m.group(3) or 0)
        if h > 23 or mi > 59 or s >= 60:
            raise ScheduleError(f"invalid time of day: {value!r}")
        return h * 3600 + mi * 60 + s

    m = _DURATION_RE.match(value)
    if m:
        return float(m.group(1)) * _UNITS[m.group(2).lower()]

    raise ScheduleError(f"invalid time value: {value!r}")


def format_time_of_day(seconds: float) -> str:
    return "%02d:%02d:%02d" % (seconds // 3600, (seconds // 60) % 60, seconds % 60)


def between(v: float, s: float, e: float) -> bool:
    """Cyclic inclusive test: a window with s > e wraps through midnight."""
    if s <= e:
        return s <= v <= e
    return v >= s or v <= e


def ilerp(v: float, s: float, e: float, a: float, b: float) -> float:
    """Interpolate from a (at s) to b (at e) for a position v inside [s, e]."""
    if s == e:
        return b
    if s > e:
        if v < s:
            v += DAY
        e += DAY
    p = (v - s) / (e - s)
    return a * (1 - p) + b * p


@dataclass(frozen=True)
class Schedule:
    night_start: float
    night_end: float
    day_start: float
    day_end: float
    night_temp: int
    day_temp: int
    transition: float
    invert_at_night: bool = False

    def describe(self) -> str:
        return "%dK @ %s -> %dK @ %s,%s %dK @ %s -> %dK @ %s" % (
            self.day_temp,
            format_time_of_day(self.night_start),
            self.night_temp,
            format_time_of_day(self.night_end),
            " inverted," if self.invert_at_night else "",
            self.night_temp,
            format_time_of_day(self.day_start),
            self.day_temp,
            format_time_of_day(self.day_end),
        )


def _check_temperature(temp) -> int:
    if isinstance(temp, bool) or not isinstance(temp, (int, float)):
        raise ScheduleError(f"invalid color temperature: {temp!r}")
    if temp < MIN_TEMP or temp > MAX_TEMP:
        raise ScheduleError(
            f"invalid color temperature {temp}K (must be between {MIN_TEMP}K and {MAX_TEMP}K)"
        )
    return math.floor(temp)


def _clock_time(value: TimeValue) -> float:
    t = parse_seconds(value)
    if not 0 <= t < DAY:
        raise ScheduleError(f"time of day out of range: {value!r}")
    return t


def build_schedule(
    night_temp: float,
    night_start: TimeValue,
    night_end: TimeValue,
    transition: Optional[TimeValue] = None,
    invert_at_night: bool = False,
    day_temp: Optional[float] = None,
) -> Schedule:
    """
    Validate the user parameters and derive the dusk (night_start..night_end)
    and dawn (day_start..day_end) windows, each centered on the configured
    clock time and `transition` seconds wide.
    """
    nt = _check_temperature(night_temp)
    dt = _check_temperature(NEUTRAL_TEMP if day_temp is None else day_temp)

    n_start = _clock_time(night_start)
    n_end = _clock_time(night_end)
    dur = parse_seconds(DEFAULT_TRANSITION if transition is None else transition)
    if dur < 0:
        raise ScheduleError("transition time must not be negative")
    if dur > MAX_TRANSITION:
        raise ScheduleError("max transition time is 4h")

    gap = (n_start - n_end) % DAY
    if gap == 0 or min(gap, DAY - gap) < dur:
        raise ScheduleError("nightTime too close to dayTime")

    half = dur / 2
    return Schedule(
        night_start=(n_start - half) % DAY,
        night_end=(n_start + half) % DAY,
        day_start=(n_end - half) % DAY,
        day_end=(n_end + half) % DAY,
        night_temp=nt,
        day_temp=dt,
        transition=dur,
        invert_at_night=bool(invert_at_night),
    )


class Phase(Enum):
    DUSK = "dusk"
    DAWN = "dawn"
    DAY = "day"
    NIGHT = "night"


@dataclass(frozen=True)
class Classification:
    phase: Phase
    temperature: float
    next_wake: Optional[float] = None
    invert_requested: bool = False


def classify(now: float, schedule: Schedule) -> Classification:
    s = schedule
    if between(now, s.night_start, s.night_end):
        return Classification(Phase.DUSK, ilerp(now, s.night_start, s.night_end, s.day_temp, s.night_temp))
    if between(now, s.day_start, s.day_end):
        return Classification(Phase.DAWN, ilerp(now, s.day_start, s.day_end, s.night_temp, s.day_temp))
    if between(now, s.day_end, s.night_start):
        return Classification(Phase.DAY, s.day_temp, next_wake=s.night_start)
    if between(now, s.night_end, s.day_start):
        return Classification(
            Phase.NIGHT, s.night_temp, next_wake=s.day_start, invert_requested=s.invert_at_night
        )
    raise PhaseError(f"no phase matches t={now!r} for schedule {s.describe()}")
