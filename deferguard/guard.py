"""ScopeGuard: a deferred action bound to the exit of a ``with`` block.

A guard is created with a trigger policy and a zero-argument action. When the
block that owns it exits, the guard decides once, from the exit outcome, whether
to call the action:

    with defer_on_failure(conn.rollback):
        conn.execute(...)            # rollback only if this raises

    with ScopeGuard(Policy.ALWAYS, print, "done"):
        ...

INVARIANTS:
  - The action runs at most once over the guard's lifetime.
  - The guard is marked SPENT before the action runs, so a close() issued from
    inside the action is a no-op.
  - ``__exit__`` never suppresses the in-flight exception.
  - ``transfer()`` moves ownership: the source becomes DISARMED and only the
    returned guard can fire.

Compound failure (the action raises while the scope is already failing) is
handled per ``guard.on_action_error`` in the active config: ``raise`` wraps both
errors in ``UnwindActionError``; ``abort`` logs and calls ``os.abort()``.
"""

from __future__ import annotations

import functools
import inspect
import os
from typing import Any, Awaitable, Callable, Optional, Union

from deferguard.config import get_config
from deferguard.constants import ACTION_ERROR_ABORT
from deferguard.errors import GuardMisuseError, GuardStateError, UnwindActionError
from deferguard.policy import GuardState, Policy
from deferguard.unwind import current_error, resolve_outcome
from deferguard.utils.logger import ActionTimer, get_logger
from deferguard.utils.ulid import generate_ulid

logger = get_logger(__name__)

Action = Callable[[], Union[None, Awaitable[None]]]


class ScopeGuard:
    """Run ``action`` at scope exit when ``policy`` matches the exit outcome.

    Args:
        policy: ``Policy`` member or its string value.
        action: Callable invoked with no arguments when the guard fires.
                May return an awaitable when the guard is ended with
                ``async with`` or ``aclose()``.
        *args, **kwargs: Bound into ``action`` with ``functools.partial``.

    Raises:
        GuardMisuseError: ``action`` is not callable or ``policy`` is unknown.
    """

    def __init__(self, policy: Union[Policy, str], action: Callable[..., Any], *args: Any, **kwargs: Any):
        if not callable(action):
            raise GuardMisuseError(
                f"Guard action must be callable, got {type(action).__name__}"
            )
        self._policy = Policy.coerce(policy)
        self._action: Action = functools.partial(action, *args, **kwargs) if (args or kwargs) else action
        self._state = GuardState.ARMED
        self._guard_id = generate_ulid()
        self._entry_error = current_error()
        logger.debug("guard armed", guard_id=self._guard_id, policy=self._policy.value)

    @classmethod
    def _adopt(
        cls, policy: Policy, action: Action, guard_id: str, entry_error: Optional[BaseException]
    ) -> "ScopeGuard":
        guard = cls.__new__(cls)
        guard._policy = policy
        guard._action = action
        guard._state = GuardState.ARMED
        guard._guard_id = guard_id
        guard._entry_error = entry_error
        return guard

    # ─── State ────────────────────────────────────────────────────────────────

    @property
    def policy(self) -> Policy:
        return self._policy

    @property
    def action(self) -> Action:
        return self._action

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def armed(self) -> bool:
        return self._state is GuardState.ARMED

    @property
    def guard_id(self) -> str:
        return self._guard_id

    def __repr__(self) -> str:
        return f"<ScopeGuard {self._guard_id} policy={self._policy.value} state={self._state.value}>"

    def __copy__(self) -> "ScopeGuard":
        raise TypeError("ScopeGuard cannot be copied; use transfer() to move ownership")

    def __deepcopy__(self, memo: dict) -> "ScopeGuard":
        raise TypeError("ScopeGuard cannot be copied; use transfer() to move ownership")

    # ─── Ownership ────────────────────────────────────────────────────────────

    def dismiss(self) -> None:
        """Disarm the guard so it never fires. No effect once the guard is spent."""
        if self._state is GuardState.ARMED:
            self._state = GuardState.DISARMED
            logger.debug("guard disarmed", guard_id=self._guard_id)

    disarm = dismiss

    def transfer(self) -> "ScopeGuard":
        """Move policy and action into a new armed guard and disarm this one.

        Use this to hand a guard out of the scope that created it, e.g. to
        return it from a factory function or store it for a later ``with``.

        Raises:
            GuardStateError: The guard is already disarmed or spent.
        """
        if self._state is not GuardState.ARMED:
            raise GuardStateError(
                f"Cannot transfer guard {self._guard_id} in state {self._state.value}"
            )
        moved = type(self)._adopt(self._policy, self._action, self._guard_id, self._entry_error)
        self._state = GuardState.DISARMED
        logger.debug("guard transferred", guard_id=self._guard_id)
        return moved

    # ─── Firing ───────────────────────────────────────────────────────────────

    def close(self, failed: Optional[bool] = None) -> bool:
        """End the guard, firing the action if the policy matches.

        Args:
            failed: Outcome of the scope. ``None`` asks the ambient error
                    context: True only when an exception raised after the
                    guard was built is propagating, e.g. from a ``finally``
                    clause. The exception an enclosing ``except`` clause was
                    handling when the guard was built does not count.

        Returns:
            True if the action ran.
        """
        failed, error = resolve_outcome(failed, self._entry_error)
        return self._finish(failed, error)

    async def aclose(self, failed: Optional[bool] = None) -> bool:
        """Async counterpart of ``close()``; awaits the action's result if awaitable."""
        failed, error = resolve_outcome(failed, self._entry_error)
        return await self._afinish(failed, error)

    def _begin(self, failed: bool) -> bool:
        if self._state is not GuardState.ARMED:
            return False
        self._state = GuardState.SPENT
        if not self._policy.should_fire(failed):
            logger.debug(
                "guard skipped", guard_id=self._guard_id, policy=self._policy.value, failed=failed
            )
            return False
        logger.debug(
            "guard fired", guard_id=self._guard_id, policy=self._policy.value, failed=failed
        )
        return True

    def _timer(self) -> ActionTimer:
        return ActionTimer(
            guard_id=self._guard_id,
            policy=self._policy.value,
            slow_ms=get_config().guard.slow_action_ms,
            logger=logger,
        )

    def _finish(self, failed: bool, error: Optional[BaseException]) -> bool:
        if not self._begin(failed):
            return False
        try:
            with self._timer():
                result = self._action()
        except Exception as exc:
            if failed:
                self._unwind_failure(error, exc)
            raise
        if inspect.isawaitable(result):
            _discard(result)
            misuse = GuardMisuseError(
                f"Guard {self._guard_id} action returned an awaitable; "
                "end it with 'async with' or aclose()"
            )
            if failed:
                self._unwind_failure(error, misuse)
            raise misuse
        return True

    async def _afinish(self, failed: bool, error: Optional[BaseException]) -> bool:
        if not self._begin(failed):
            return False
        try:
            with self._timer():
                result = self._action()
                if inspect.isawaitable(result):
                    await result
        except Exception as exc:
            if failed:
                self._unwind_failure(error, exc)
            raise
        return True

    def _unwind_failure(self, original: Optional[BaseException], exc: Exception) -> None:
        logger.critical(
            "guard action failed during unwind",
            guard_id=self._guard_id,
            policy=self._policy.value,
            original=repr(original),
            action_error=repr(exc),
        )
        if get_config().guard.on_action_error == ACTION_ERROR_ABORT:
            os.abort()
        raise UnwindActionError(self._guard_id, original, exc) from exc

    # ─── Context-manager protocol ─────────────────────────────────────────────

    def _check_enter(self) -> None:
        if self._state is not GuardState.ARMED:
            raise GuardStateError(
                f"Cannot enter guard {self._guard_id} in state {self._state.value}"
            )

    def __enter__(self) -> "ScopeGuard":
        self._check_enter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        self._finish(exc_type is not None, exc_val)
        return False

    async def __aenter__(self) -> "ScopeGuard":
        self._check_enter()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        await self._afinish(exc_type is not None, exc_val)
        return False


def _discard(awaitable: Any) -> None:
    close = getattr(awaitable, "close", None)
    if close is not None:
        close()
