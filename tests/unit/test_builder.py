"""Unit tests for deferguard/builder.py — bind().then() and defer* shorthands."""

from __future__ import annotations

import dataclasses

import pytest

from deferguard.builder import Binder, bind, defer, defer_on_failure, defer_on_success, make_guard
from deferguard.errors import GuardMisuseError
from deferguard.guard import ScopeGuard
from deferguard.policy import Policy


class TestBinder:
    def test_bind_then_builds_guard_with_policy(self) -> None:
        guard = bind(Policy.ON_FAILURE).then(lambda: None)
        assert isinstance(guard, ScopeGuard)
        assert guard.policy is Policy.ON_FAILURE

    def test_bind_accepts_string(self) -> None:
        assert bind("on_success").policy is Policy.ON_SUCCESS

    def test_bind_unknown_policy(self) -> None:
        with pytest.raises(GuardMisuseError):
            bind("never")

    def test_binder_is_immutable(self) -> None:
        binder = bind(Policy.ALWAYS)
        with pytest.raises(dataclasses.FrozenInstanceError):
            binder.policy = Policy.ON_SUCCESS  # type: ignore[misc]

    def test_binder_reusable(self, calls: list) -> None:
        """One binder builds independent guards."""
        binder = Binder(Policy.ALWAYS)
        with binder.then(calls.append, "a"):
            pass
        with binder(calls.append, "b"):
            pass
        assert calls == ["a", "b"]

    def test_then_rejects_non_callable(self) -> None:
        with pytest.raises(GuardMisuseError):
            bind(Policy.ALWAYS).then(42)  # type: ignore[arg-type]


class TestShorthands:
    @pytest.mark.parametrize(
        "factory, policy",
        [
            (defer, Policy.ALWAYS),
            (defer_on_failure, Policy.ON_FAILURE),
            (defer_on_success, Policy.ON_SUCCESS),
        ],
    )
    def test_shorthand_policy(self, factory, policy: Policy) -> None:
        assert factory(lambda: None).policy is policy

    def test_make_guard(self, calls: list) -> None:
        with make_guard(Policy.ON_SUCCESS, calls.append, "done"):
            pass
        assert calls == ["done"]

    def test_make_guard_with_string_policy(self, calls: list) -> None:
        guard = make_guard("on_failure", calls.append, "rollback")
        assert guard.policy is Policy.ON_FAILURE
        guard.close(failed=False)
        assert calls == []

    def test_defer_on_failure_in_with(self, calls: list) -> None:
        with pytest.raises(RuntimeError):
            with defer_on_failure(calls.append, "rollback"):
                raise RuntimeError("boom")
        assert calls == ["rollback"]

    def test_nested_guards_fire_in_reverse_order(self, calls: list) -> None:
        """G1 then G2 in one scope fire G2 then G1."""
        with defer(calls.append, "G1"), defer(calls.append, "G2"):
            pass
        assert calls == ["G2", "G1"]
