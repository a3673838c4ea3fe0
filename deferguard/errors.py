"""Exception types raised by deferguard.

Misuse of a guard (bad action, bad policy, ending an async action
synchronously) and state violations (re-entering or re-transferring a guard
that is no longer armed) are programming errors and are raised immediately.
Errors raised by an action itself pass through unchanged on a successful exit;
only the compound case, an action failing while an error is already in
flight, is wrapped in ``UnwindActionError``.
"""

from __future__ import annotations

from typing import Optional


class GuardError(Exception):
    """Base class for all deferguard errors."""


class GuardMisuseError(GuardError, TypeError):
    """A guard was constructed or ended with arguments it cannot accept."""


class GuardStateError(GuardError, RuntimeError):
    """An operation requires an armed guard but the guard is disarmed or spent."""


class UnwindActionError(GuardError):
    """A guard action raised while the guarded scope was already failing.

    Attributes:
        guard_id:     Id of the guard whose action failed.
        original:     The error that was in flight when the guard fired.
                      ``None`` when failure was signalled with an explicit flag.
        action_error: The error raised by the action.
    """

    def __init__(
        self,
        guard_id: str,
        original: Optional[BaseException],
        action_error: BaseException,
    ) -> None:
        self.guard_id = guard_id
        self.original = original
        self.action_error = action_error
        super().__init__(guard_id, original, action_error)

    def __str__(self) -> str:
        original = (
            f"{type(self.original).__name__}: {self.original}"
            if self.original is not None
            else "explicit failure"
        )
        return (
            f"guard {self.guard_id} action raised "
            f"{type(self.action_error).__name__}: {self.action_error} "
            f"while unwinding from {original}"
        )
