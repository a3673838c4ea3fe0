"""Trigger policies and guard states."""

from __future__ import annotations

from enum import Enum
from typing import Union

from deferguard.errors import GuardMisuseError


class Policy(str, Enum):
    """When a guard's action fires at scope exit."""

    ALWAYS = "always"
    ON_FAILURE = "on_failure"
    ON_SUCCESS = "on_success"

    def should_fire(self, failed: bool) -> bool:
        """Return True when a guard with this policy fires for the given exit.

        Args:
            failed: True when the scope is exiting because of an error.
        """
        if self is Policy.ALWAYS:
            return True
        if self is Policy.ON_FAILURE:
            return failed
        return not failed

    @classmethod
    def coerce(cls, value: Union["Policy", str]) -> "Policy":
        """Accept a Policy or its string value ("always", "on_failure", "on_success").

        Raises:
            GuardMisuseError: If ``value`` names no policy.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise GuardMisuseError(
                f"Invalid guard policy: {value!r}. "
                f"Supported values: {sorted(p.value for p in cls)}."
            ) from None


class GuardState(str, Enum):
    """Lifecycle state of a ScopeGuard.

    ARMED → SPENT when the guard ends (fired or skipped).
    ARMED → DISARMED on dismiss() or transfer(). Both end states are final.
    """

    ARMED = "armed"
    DISARMED = "disarmed"
    SPENT = "spent"
