"""
Owns the day/night schedule: recomputes the color temperature and inversion
decision, writes them to every display and arms the next wake-up.
No UI code. No hotkeys. Calls into phases / inversion / color_ramp for the math.

Public API:
- RedshiftEngine(displays, clock, settings, topology, filter_factory=None)
    - start(night_temp, night_start, night_end, transition=None,
            invert_at_night=False, exclusion=None, day_temp=None)
    - stop()
    - recompute(now=None)
    - request_invert(key, invert)
    - toggle_invert(value=None)
    - is_inverted() -> False | str
    - invert_subscribe(key, fn=None) / invert_unsubscribe(key)
    - running, paused, schedule
"""

from __future__ import annotations

import atexit
import logging
from typing import Callable, Iterable, Optional

from clock import DelayedTimer
from color_ramp import BLACKPOINT, gamma_for
from exclusion import HAS_MATCH, NO_MATCH, ExclusionFilter
from inversion import NIGHT_REQUEST, InversionArbiter, check_flag, check_key
from phases import Phase, Schedule, ScheduleError, build_schedule, classify, format_time_of_day
from settings import INVERTED_OVERRIDE
from subscriptions import SubscriberRegistry

logger = logging.getLogger(__name__)

# Delay before recomputing after the display configuration changed
TOPOLOGY_SETTLE_DELAY = 5.0


class RedshiftEngine:
    def __init__(self, displays, clock, settings, topology,
                 filter_factory: Optional[Callable[[list], ExclusionFilter]] = None):
        self.displays = displays
        self.clock = clock
        self.settings = settings
        self.topology = topology
        self.filter_factory = filter_factory

        self.arbiter = InversionArbiter()
        self.subscribers = SubscriberRegistry()
        self.schedule: Optional[Schedule] = None

        self._running = False
        self._paused = False
        self._poll = DelayedTimer(clock, 10, self.recompute)
        self._wake = None
        self._watch = None
        self._filter: Optional[ExclusionFilter] = None
        self._owns_filter = False

        atexit.register(self.stop)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._paused

    # ───────────────────────── Lifecycle ─────────────────────────

    def start(self, night_temp, night_start, night_end, transition=None,
              invert_at_night: bool = False, exclusion=None, day_temp=None) -> None:
        schedule = build_schedule(night_temp, night_start, night_end, transition, invert_at_night, day_temp)
        apps = self._check_exclusion(exclusion)
        self.stop()

        self.schedule = schedule
        logger.info("started: %s", schedule.describe())
        self._running = True
        self._paused = False
        self._poll.delay = max(1.0, schedule.transition / 200)
        self._watch = self.topology.on_change(self._on_topology_change)
        self.arbiter.override = self._load_override()
        self.recompute()

        if exclusion is None:
            return
        if apps is None:
            self._filter = exclusion
            self._owns_filter = False
        else:
            self._filter = self.filter_factory(apps)
            self._owns_filter = True
        self._filter.subscribe(HAS_MATCH, self._pause, True).subscribe(NO_MATCH, self._resume)

    def stop(self) -> None:
        if not self._running:
            return
        self._halt()
        if self._filter is not None:
            if self._owns_filter:
                self._filter.delete()
            else:
                self._filter.unsubscribe([self._pause, self._resume])
            self._filter = None
            self._owns_filter = False
        if self._watch is not None:
            self._watch.stop()
            self._watch = None
        self._running = False
        self._paused = False
        self.arbiter.set_request(NIGHT_REQUEST, None)
        self.subscribers.publish(False)
        logger.info("stopped")

    def _check_exclusion(self, exclusion) -> Optional[list]:
        """App names to build a filter from, or None for a ready filter."""
        if exclusion is None or isinstance(exclusion, ExclusionFilter):
            return None
        if isinstance(exclusion, str) or not isinstance(exclusion, Iterable):
            raise ScheduleError("exclusion must be an ExclusionFilter or a list of app names")
        apps = list(exclusion)
        if not all(isinstance(a, str) for a in apps):
            raise ScheduleError("exclusion app names must be strings")
        if self.filter_factory is None:
            raise ScheduleError("no exclusion filter available for an app list")
        return apps

    def _load_override(self) -> Optional[bool]:
        value = self.settings.get(INVERTED_OVERRIDE)
        return value if isinstance(value, bool) else None

    # ───────────────────────── Core ─────────────────────────

    def _cancel_wake(self) -> None:
        if self._wake is not None:
            self._wake.cancel()
            self._wake = None

    def recompute(self, now: Optional[float] = None) -> None:
        self._cancel_wake()
        if not self._running or self._paused:
            return

        if now is None:
            now = self.clock.now()
        c = classify(now, self.schedule)
        if c.phase is Phase.DAY:
            logger.info("daytime")
        elif c.phase is Phase.NIGHT:
            logger.info("nighttime")

        self.arbiter.set_request(NIGHT_REQUEST, c.invert_requested)
        invert = self.arbiter.effective()
        gamma = gamma_for(c.temperature)
        logger.debug(
            "set color temperature %dK (gamma %d,%d,%d)%s",
            c.temperature,
            round(gamma.red * 100),
            round(gamma.green * 100),
            round(gamma.blue * 100),
            f" - inverted by {invert}" if invert else "",
        )

        for handle in self.displays.list_displays():
            if invert:
                self.displays.set_gamma(handle, BLACKPOINT, gamma)
            else:
                self.displays.set_gamma(handle, gamma, BLACKPOINT)

        self.subscribers.publish(invert)

        if c.next_wake is not None:
            self._poll.stop()
            logger.debug("next wake at %s", format_time_of_day(c.next_wake))
            self._wake = self.clock.call_at(c.next_wake, self.recompute)
        else:
            self._poll.start()

    def _halt(self) -> None:
        self.displays.restore_gamma()
        self._poll.stop()
        self._cancel_wake()

    def _pause(self) -> None:
        logger.info("paused")
        self._paused = True
        self._halt()

    def _resume(self) -> None:
        logger.info("resumed")
        self._paused = False
        self.recompute()

    def _on_topology_change(self) -> None:
        if self._running and not self._paused:
            self._poll.start(TOPOLOGY_SETTLE_DELAY)

    # ───────────────────────── Inversion ─────────────────────────

    def is_inverted(self):
        """
        False when colors are not inverted, otherwise the reason: "user" for
        the user override, "redshift-night" at night with invert_at_night, or
        the key given to request_invert().
        """
        if not self._running:
            return False
        return self.arbiter.effective()

    def request_invert(self, key: str, invert: Optional[bool]) -> None:
        check_key(key)
        check_flag(invert, "invert")
        if key == NIGHT_REQUEST:
            raise ValueError(f"{NIGHT_REQUEST!r} is reserved for the schedule")
        if not self._running:
            return
        if not self.arbiter.set_request(key, invert):
            return
        logger.info("invert request from %s%s", key, "" if invert else " canceled")
        self.recompute()

    def toggle_invert(self, value: Optional[bool] = None) -> None:
        """
        Set (True/False) or toggle (None) the user override: a toggle clears
        an active override, otherwise forces the opposite of the current state.
        """
        check_flag(value)
        if not self._running:
            return
        value = self.arbiter.toggled_override(value)
        logger.info(
            "invert user override%s",
            ": inverted" if value is True else (": not inverted" if value is False else " cancelled"),
        )
        if value is None:
            self.settings.clear(INVERTED_OVERRIDE)
        else:
            self.settings.set(INVERTED_OVERRIDE, value)
        self.arbiter.override = value
        self.recompute()

    def invert_subscribe(self, key, fn=None) -> None:
        fn = self.subscribers.add(key, fn)
        if self._running:
            fn(self.is_inverted())

    def invert_unsubscribe(self, key) -> None:
        if not isinstance(key, str) and not callable(key):
            raise TypeError("invalid key")
        self.subscribers.remove(key)
