"""
display.py

Owns the Win32 gamma ramp application (SetDeviceGammaRamp) for every display
attached to the desktop, and the display topology watcher.
No scheduling decisions here: callers pass white point / black point pairs.

Public API:
- identity_ramp() -> np.ndarray[uint16] shape (768,)
- build_ramp(white, black) -> np.ndarray[uint16] shape (768,)
- DisplayHandle (dataclass)
- Win32Displays(user32, gdi32)
    - list_displays() -> [DisplayHandle]
    - set_gamma(handle, white, black)
    - restore_gamma(handle=None)
- DisplayWatcher(displays, clock, interval)
    - on_change(fn) -> watch (.stop())
"""

from __future__ import annotations

import ctypes
import logging
import zlib
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

RAMP_SIZE = 256
DISPLAY_DEVICE_ATTACHED_TO_DESKTOP = 0x00000001

# Shared LUT axis
X_AXIS = np.linspace(0.0, 1.0, RAMP_SIZE)


class DISPLAY_DEVICEW(ctypes.Structure):
    _fields_ = [
        ("cb", ctypes.c_uint32),
        ("DeviceName", ctypes.c_wchar * 32),
        ("DeviceString", ctypes.c_wchar * 128),
        ("StateFlags", ctypes.c_uint32),
        ("DeviceID", ctypes.c_wchar * 128),
        ("DeviceKey", ctypes.c_wchar * 128),
    ]


def identity_ramp() -> np.ndarray:
    """Identity gamma ramp (768 uint16)."""
    return np.concatenate([np.linspace(0, 65535, RAMP_SIZE, dtype=np.uint16)] * 3)


def build_ramp(white: Sequence[float], black: Sequence[float]) -> np.ndarray:
    """
    Per-channel linear ramp from the black point (input 0) to the white point
    (input 1). A white point darker than the black point yields a negative.
    """
    channels = []
    for w, b in zip(white, black):
        curve = b + (w - b) * X_AXIS
        channels.append(np.clip(np.rint(curve * 65535.0), 0, 65535).astype(np.uint16))
    return np.concatenate(channels)


@dataclass(frozen=True)
class DisplayHandle:
    name: str
    description: str = ""


class Win32Displays:
    def __init__(self, user32, gdi32):
        self.user32 = user32
        self.gdi32 = gdi32

        self._last_sig: Dict[str, int] = {}
        self._saved: Dict[str, np.ndarray] = {}

    # ───────────────────────── Internal helpers ─────────────────────────

    @staticmethod
    def _to_ramp(arr: np.ndarray):
        """
        Convert a uint16 numpy array (768,) into a Win32 gamma ramp.
        """
        if arr.dtype != np.uint16:
            arr = arr.astype(np.uint16, copy=False)
        arr = np.ascontiguousarray(arr)
        return (ctypes.c_ushort * (3 * RAMP_SIZE))(*arr.ravel())

    @staticmethod
    def _signature(arr: np.ndarray) -> int:
        """
        Fast content signature to avoid redundant SetDeviceGammaRamp calls.
        """
        arr = np.ascontiguousarray(arr)
        return zlib.crc32(arr.tobytes())

    def _enum_devices(self) -> List[DisplayHandle]:
        found = []
        i = 0
        dev = DISPLAY_DEVICEW()
        dev.cb = ctypes.sizeof(dev)
        while self.user32.EnumDisplayDevicesW(None, i, ctypes.byref(dev), 0):
            if dev.StateFlags & DISPLAY_DEVICE_ATTACHED_TO_DESKTOP:
                found.append(DisplayHandle(dev.DeviceName, dev.DeviceString))
            i += 1
        return found

    def _open(self, handle: DisplayHandle):
        return self.gdi32.CreateDCW(handle.name, None, None, None)

    def _save_original(self, handle: DisplayHandle, hdc) -> None:
        if handle.name in self._saved:
            return
        buf = (ctypes.c_ushort * (3 * RAMP_SIZE))()
        if self.gdi32.GetDeviceGammaRamp(hdc, ctypes.byref(buf)):
            self._saved[handle.name] = np.frombuffer(buf, dtype=np.uint16).copy()
        else:
            self._saved[handle.name] = identity_ramp()

    def _apply(self, handle: DisplayHandle, arr: np.ndarray, *, force: bool = False) -> None:
        sig = self._signature(arr)
        if not force and self._last_sig.get(handle.name) == sig:
            return

        hdc = self._open(handle)
        if not hdc:
            logger.warning("cannot open display %s", handle.name)
            return
        try:
            self._save_original(handle, hdc)
            if self.gdi32.SetDeviceGammaRamp(hdc, self._to_ramp(arr)):
                self._last_sig[handle.name] = sig
            else:
                logger.warning("display %s rejected the gamma ramp", handle.name)
        finally:
            self.gdi32.DeleteDC(hdc)

    # ───────────────────────── Public API ─────────────────────────

    def list_displays(self) -> List[DisplayHandle]:
        return self._enum_devices()

    def set_gamma(self, handle: DisplayHandle, white: Sequence[float], black: Sequence[float]) -> None:
        self._apply(handle, build_ramp(white, black))

    def restore_gamma(self, handle: Optional[DisplayHandle] = None) -> None:
        """
        Restore the ramp captured before the first write (all displays when
        no handle is given).
        """
        handles = [handle] if handle is not None else self.list_displays()
        for h in handles:
            original = self._saved.get(h.name)
            self._apply(h, identity_ramp() if original is None else original, force=True)
            self._last_sig.pop(h.name, None)


class _Watch:
    def __init__(self, watcher: "DisplayWatcher", fn: Callable[[], object]):
        self._watcher = watcher
        self.fn = fn

    def stop(self) -> None:
        self._watcher._remove(self)


class DisplayWatcher:
    """
    Polls the display list and calls every registered callback when the set
    of attached displays changes.
    """

    def __init__(self, displays, clock, interval: float = 2.0):
        self.displays = displays
        self.clock = clock
        self.interval = interval

        self._watches: List[_Watch] = []
        self._handle = None
        self._known = None

    def on_change(self, fn: Callable[[], object]) -> _Watch:
        watch = _Watch(self, fn)
        self._watches.append(watch)
        if self._handle is None:
            self._known = self._snapshot()
            self._schedule()
        return watch

    def _remove(self, watch: _Watch) -> None:
        if watch in self._watches:
            self._watches.remove(watch)
        if not self._watches and self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _snapshot(self):
        return frozenset(h.name for h in self.displays.list_displays())

    def _schedule(self) -> None:
        self._handle = self.clock.call_later(self.interval, self.poll)

    def poll(self) -> None:
        self._handle = None
        current = self._snapshot()
        if current != self._known:
            logger.info("display configuration changed: %s", ", ".join(sorted(current)) or "none")
            self._known = current
            for watch in list(self._watches):
                watch.fn()
        if self._watches and self._handle is None:
            self._schedule()
