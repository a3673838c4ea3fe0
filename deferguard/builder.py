"""Policy-bound construction helpers.

``bind(policy).then(action)`` and the ``defer*`` shorthands are the ergonomic
front-end for ``ScopeGuard``; they hold nothing beyond the chosen policy::

    with defer(lock.release):
        ...

    with bind("on_success").then(cache.commit, key):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

from deferguard.guard import ScopeGuard
from deferguard.policy import Policy


@dataclass(frozen=True)
class Binder:
    """A policy waiting for its action."""

    policy: Policy

    def then(self, action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopeGuard:
        """Build a guard with the bound policy and ``action``."""
        return ScopeGuard(self.policy, action, *args, **kwargs)

    __call__ = then


def bind(policy: Union[Policy, str]) -> Binder:
    """Bind a policy; finish with ``.then(action)``.

    Raises:
        GuardMisuseError: ``policy`` is unknown.
    """
    return Binder(Policy.coerce(policy))


def make_guard(policy: Union[Policy, str], action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopeGuard:
    """Guard with an explicit policy; the construction surface the shorthands wrap."""
    return ScopeGuard(policy, action, *args, **kwargs)


def defer(action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopeGuard:
    """Guard that fires on every exit."""
    return ScopeGuard(Policy.ALWAYS, action, *args, **kwargs)


def defer_on_failure(action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopeGuard:
    """Guard that fires only when the scope exits with an exception."""
    return ScopeGuard(Policy.ON_FAILURE, action, *args, **kwargs)


def defer_on_success(action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopeGuard:
    """Guard that fires only when the scope exits normally."""
    return ScopeGuard(Policy.ON_SUCCESS, action, *args, **kwargs)
