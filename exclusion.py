"""
exclusion.py

Conditions under which color adjustment is suspended, e.g. while a video
player or a photo editor has the focus.

Public API:
- HAS_MATCH, NO_MATCH (events)
- ExclusionFilter
    - subscribe(event, fn, immediate=False) -> self
    - unsubscribe(fns) -> self
    - set_matched(flag)
    - matched
    - delete()
- ForegroundAppFilter(apps, clock, user32, kernel32, interval)
"""

from __future__ import annotations

import ctypes
import logging
import ntpath
from typing import Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

HAS_MATCH = "has_match"
NO_MATCH = "no_match"

PROCESS_QUERY_LIMITED_INFORMATION = 0x1000


class ExclusionFilter:
    """
    Emits HAS_MATCH when the condition starts to hold and NO_MATCH when it
    stops. Subclasses feed the state through `set_matched`.
    """

    def __init__(self):
        self.matched = False
        self._subscribers: Dict[str, List[Callable[[], object]]] = {HAS_MATCH: [], NO_MATCH: []}

    def subscribe(self, event: str, fn: Callable[[], object], immediate: bool = False) -> "ExclusionFilter":
        if event not in self._subscribers:
            raise ValueError(f"unknown event: {event!r}")
        self._subscribers[event].append(fn)
        if immediate and self.matched == (event == HAS_MATCH):
            fn()
        return self

    def unsubscribe(self, fns: Iterable[Callable[[], object]]) -> "ExclusionFilter":
        fns = list(fns)
        for event, subs in self._subscribers.items():
            self._subscribers[event] = [s for s in subs if s not in fns]
        return self

    def set_matched(self, flag: bool) -> None:
        flag = bool(flag)
        if flag == self.matched:
            return
        self.matched = flag
        for fn in list(self._subscribers[HAS_MATCH if flag else NO_MATCH]):
            fn()

    def delete(self) -> None:
        for subs in self._subscribers.values():
            subs.clear()


def _app_key(name: str) -> str:
    name = ntpath.basename(name).lower()
    return name[:-4] if name.endswith(".exe") else name


class ForegroundAppFilter(ExclusionFilter):
    """Matches while the foreground window belongs to one of `apps`."""

    def __init__(self, apps: Iterable[str], clock, user32, kernel32, interval: float = 1.0):
        super().__init__()
        self.apps = frozenset(_app_key(a) for a in apps)
        self.clock = clock
        self.user32 = user32
        self.kernel32 = kernel32
        self.interval = interval

        self._handle = None
        self._deleted = False
        self.poll()

    def _foreground_app(self) -> Optional[str]:
        hwnd = self.user32.GetForegroundWindow()
        if not hwnd:
            return None
        pid = ctypes.c_ulong(0)
        self.user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        if not pid.value:
            return None
        hproc = self.kernel32.OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, pid.value)
        if not hproc:
            return None
        try:
            size = ctypes.c_ulong(1024)
            buf = ctypes.create_unicode_buffer(size.value)
            if not self.kernel32.QueryFullProcessImageNameW(hproc, 0, buf, ctypes.byref(size)):
                return None
            return buf.value
        finally:
            self.kernel32.CloseHandle(hproc)

    def poll(self) -> None:
        self._handle = None
        if self._deleted:
            return
        app = self._foreground_app()
        matched = app is not None and _app_key(app) in self.apps
        if matched != self.matched:
            logger.debug("foreground app %s %s", app, "excluded" if matched else "allowed")
        self.set_matched(matched)
        if not self._deleted:
            self._handle = self.clock.call_later(self.interval, self.poll)

    def delete(self) -> None:
        self._deleted = True
        super().delete()
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
