"""
subscriptions.py

Callbacks interested in inversion status changes, plus the edge detector that
decides when they fire.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Hashable, Optional, Union

logger = logging.getLogger(__name__)

Callback = Callable[[Union[bool, str]], object]

_UNSET = object()


class SubscriberRegistry:
    def __init__(self):
        self._callbacks: Dict[Hashable, Callback] = {}
        self._last = _UNSET

    def add(self, key, fn: Optional[Callback] = None) -> Callback:
        """Register `fn` under `key`; a callable `key` alone registers itself."""
        if fn is None and callable(key):
            fn = key
        if not isinstance(key, str) and not callable(key):
            raise TypeError("invalid key")
        if not callable(fn):
            raise TypeError("invalid callback")
        self._callbacks[key] = fn
        logger.info("add invert callback %s", key)
        return fn

    def remove(self, key) -> None:
        if key not in self._callbacks:
            return
        logger.info("remove invert callback %s", key)
        del self._callbacks[key]

    def publish(self, value: Union[bool, str]) -> bool:
        """Notify every callback if `value` differs from the last published one."""
        if self._last is not _UNSET and value == self._last:
            return False
        self._last = value
        logger.info(
            "inverted status changed%s", ", notifying callbacks" if self._callbacks else ""
        )
        for key in list(self._callbacks):
            # a callback may unsubscribe another one
            fn = self._callbacks.get(key)
            if fn is not None:
                fn(value)
        return True
