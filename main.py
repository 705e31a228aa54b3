"""
Entry point. Run this file.

Shifts every display toward a warm color temperature at night (and optionally
inverts colors) following the schedule in redshift_config.json.

Hotkeys:
- F8 (HOTKEY_TOGGLE_INVERT): toggle the color inversion override
"""

from __future__ import annotations

import argparse
import ctypes
import logging
import os
from typing import Callable

import tkinter as tk
from pynput import keyboard

from clock import TkClock
from display import DisplayWatcher, Win32Displays
from exclusion import ForegroundAppFilter
from redshift_engine import RedshiftEngine
from settings import DEFAULT_CONFIG, ConfigManager


def parse_args(argv=None) -> argparse.Namespace:
    base_dir = os.path.dirname(os.path.abspath(__file__))
    parser = argparse.ArgumentParser(description="Scheduled display color temperature and inversion.")
    parser.add_argument(
        "--config",
        default=os.path.join(base_dir, "redshift_config.json"),
        help="path to the JSON config file",
    )
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL from the config")
    return parser.parse_args(argv)


def resolve_key(name: str):
    """pynput key for a config name like "f8" or "pause"; single characters map to KeyCode."""
    key = getattr(keyboard.Key, name.lower(), None)
    if key is not None:
        return key
    if len(name) == 1:
        return keyboard.KeyCode.from_char(name.lower())
    raise ValueError(f"unknown hotkey: {name!r}")


def main(argv=None) -> None:
    args = parse_args(argv)

    config_mgr = ConfigManager(args.config, DEFAULT_CONFIG)
    config = config_mgr.data

    logging.basicConfig(
        level=(args.log_level or str(config["LOG_LEVEL"])).upper(),
        format="[%(levelname)s] %(message)s",
    )

    user32 = ctypes.windll.user32
    gdi32 = ctypes.windll.gdi32
    kernel32 = ctypes.windll.kernel32

    root = tk.Tk()
    root.withdraw()

    clock = TkClock(root)
    displays = Win32Displays(user32, gdi32)
    topology = DisplayWatcher(displays, clock, float(config["DISPLAY_POLL_INTERVAL"]))

    def make_filter(apps):
        return ForegroundAppFilter(apps, clock, user32, kernel32, float(config["FILTER_POLL_INTERVAL"]))

    engine = RedshiftEngine(displays, clock, config_mgr, topology, filter_factory=make_filter)
    engine.start(
        config["NIGHT_TEMP"],
        config["NIGHT_START"],
        config["NIGHT_END"],
        config["TRANSITION"],
        bool(config["INVERT_AT_NIGHT"]),
        config["EXCLUDED_APPS"] or None,
        config["DAY_TEMP"],
    )

    hotkey_actions: dict[object, Callable[[], None]] = {
        resolve_key(str(config["HOTKEY_TOGGLE_INVERT"])): lambda: root.after(0, engine.toggle_invert),
    }

    def on_press(key) -> None:
        action = hotkey_actions.get(key)
        if action:
            try:
                action()
            except Exception:
                logging.exception("Hotkey action failed")

    keyboard.Listener(on_press=on_press, daemon=True).start()
    try:
        root.mainloop()
    finally:
        engine.stop()
        config_mgr.flush()


if __name__ == "__main__":
    main()
