"""
inversion.py

Resolves competing color inversion requests into a single decision.

Public API:
- NIGHT_REQUEST, USER_REASON
- InversionArbiter
    - set_request(key, invert) -> bool   # True when the request set changed
    - override (None | bool)
    - toggled_override(value) -> None | bool
    - effective() -> False | str
"""

from __future__ import annotations

from typing import Dict, Optional, Union

# Request key owned by the schedule engine while it is night time
NIGHT_REQUEST = "redshift-night"
USER_REASON = "user"

Decision = Union[bool, str]


def check_key(key) -> None:
    if not isinstance(key, str):
        raise TypeError("key must be a string")


def check_flag(value, name: str = "v") -> None:
    if value is not None and not isinstance(value, bool):
        raise TypeError(f"{name} must be a boolean or None")


class InversionArbiter:
    """
    Holds the named inversion requests and the tri-state user override.

    Only positive requests are stored; clearing a request removes the key.
    With several simultaneous requesters the lexicographically smallest key is
    reported as the reason.
    """

    def __init__(self):
        self._requests: Dict[str, bool] = {}
        self.override: Optional[bool] = None

    @property
    def requests(self):
        return sorted(self._requests)

    def set_request(self, key: str, invert: Optional[bool]) -> bool:
        check_key(key)
        check_flag(invert, "invert")
        if invert:
            if key in self._requests:
                return False
            self._requests[key] = True
            return True
        return self._requests.pop(key, None) is not None

    def effective(self) -> Decision:
        if self.override is not None:
            return USER_REASON if self.override else False
        if not self._requests:
            return False
        return min(self._requests)

    def toggled_override(self, value: Optional[bool] = None) -> Optional[bool]:
        """
        Override that results from a toggle: an explicit value wins; otherwise
        an active override is cleared, or set opposite to the current decision.
        """
        check_flag(value)
        if value is None and self.override is None:
            return not self.effective()
        return value
