"""GuardStack: several guards sharing one ``with`` block.

Guards pushed onto a stack fire in reverse order of registration when the
stack's block exits, the same order separate nested ``with`` statements would
give::

    with GuardStack() as guards:
        guards.defer(log.flush)
        guards.defer_on_failure(tx.rollback)
        tx.apply(...)                 # on error: rollback, then flush

When an action raises on the way out, the guards that fire after it see a
failing exit, and the last raised exception propagates.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Union

from deferguard.guard import ScopeGuard
from deferguard.policy import Policy
from deferguard.unwind import current_error, resolve_outcome
from deferguard.utils.logger import get_logger

logger = get_logger(__name__)


class GuardStack:
    """Owns an ordered set of guards and ends them LIFO."""

    def __init__(self) -> None:
        self._guards: list[ScopeGuard] = []
        self._entry_error = current_error()

    def __len__(self) -> int:
        return len(self._guards)

    def __repr__(self) -> str:
        return f"<GuardStack pending={len(self._guards)}>"

    # ─── Registration ─────────────────────────────────────────────────────────

    def push(self, guard: ScopeGuard) -> ScopeGuard:
        """Take ownership of ``guard``; the caller's reference is disarmed.

        Returns:
            The guard now owned by the stack (dismiss it to cancel).

        Raises:
            GuardStateError: ``guard`` is not armed.
        """
        owned = guard.transfer()
        self._guards.append(owned)
        return owned

    def callback(self, policy: Union[Policy, str], action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopeGuard:
        guard = ScopeGuard(policy, action, *args, **kwargs)
        self._guards.append(guard)
        return guard

    def defer(self, action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopeGuard:
        return self.callback(Policy.ALWAYS, action, *args, **kwargs)

    def defer_on_failure(self, action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopeGuard:
        return self.callback(Policy.ON_FAILURE, action, *args, **kwargs)

    def defer_on_success(self, action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopeGuard:
        return self.callback(Policy.ON_SUCCESS, action, *args, **kwargs)

    def pop_all(self) -> "GuardStack":
        """Move every pending guard into a new stack, leaving this one empty."""
        moved = type(self)()
        moved._entry_error = self._entry_error
        for guard in self._guards:
            if guard.armed:
                moved._guards.append(guard.transfer())
        self._guards.clear()
        logger.debug("guard stack moved", pending=len(moved))
        return moved

    # ─── Unwinding ────────────────────────────────────────────────────────────

    def close(self, failed: Optional[bool] = None) -> None:
        """End all guards LIFO.

        Args:
            failed: Outcome of the scope; ``None`` asks the ambient error context,
                    ignoring the exception that was in effect when the stack
                    was created or entered.
        """
        failed, error = resolve_outcome(failed, self._entry_error)
        self._unwind(failed, error)

    async def aclose(self, failed: Optional[bool] = None) -> None:
        failed, error = resolve_outcome(failed, self._entry_error)
        await self._aunwind(failed, error)

    def _unwind(self, failed: bool, error: Optional[BaseException]) -> None:
        raised: Optional[BaseException] = None
        while self._guards:
            guard = self._guards.pop()
            try:
                guard._finish(failed, error)
            except BaseException as exc:
                failed, error, raised = True, exc, exc
        if raised is not None:
            raise raised

    async def _aunwind(self, failed: bool, error: Optional[BaseException]) -> None:
        raised: Optional[BaseException] = None
        while self._guards:
            guard = self._guards.pop()
            try:
                await guard._afinish(failed, error)
            except BaseException as exc:
                failed, error, raised = True, exc, exc
        if raised is not None:
            raise raised

    # ─── Context-manager protocol ─────────────────────────────────────────────

    def __enter__(self) -> "GuardStack":
        self._entry_error = current_error()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        self._unwind(exc_type is not None, exc_val)
        return False

    async def __aenter__(self) -> "GuardStack":
        self._entry_error = current_error()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        await self._aunwind(exc_type is not None, exc_val)
        return False
