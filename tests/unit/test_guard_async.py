"""Unit tests for ``async with`` guards and async actions."""

from __future__ import annotations

import asyncio

import pytest

from deferguard.builder import defer, defer_on_failure, defer_on_success
from deferguard.errors import UnwindActionError
from deferguard.guard import ScopeGuard
from deferguard.policy import GuardState, Policy
from deferguard.stack import GuardStack


class Boom(Exception):
    pass


def _async_recorder(calls: list, marker: str):
    async def action() -> None:
        await asyncio.sleep(0)
        calls.append(marker)

    return action


class TestAsyncWith:
    @pytest.mark.asyncio
    async def test_async_action_awaited_on_normal_exit(self, calls: list) -> None:
        async with defer(_async_recorder(calls, "x")):
            pass
        assert calls == ["x"]

    @pytest.mark.asyncio
    async def test_sync_action_supported(self, calls: list) -> None:
        async with defer_on_success(calls.append, "x"):
            pass
        assert calls == ["x"]

    @pytest.mark.asyncio
    async def test_on_failure_fires_on_error(self, calls: list) -> None:
        with pytest.raises(Boom):
            async with defer_on_failure(_async_recorder(calls, "x")):
                raise Boom()
        assert calls == ["x"]

    @pytest.mark.asyncio
    async def test_on_success_skipped_on_error(self, calls: list) -> None:
        with pytest.raises(Boom):
            async with defer_on_success(_async_recorder(calls, "x")):
                raise Boom()
        assert calls == []

    @pytest.mark.asyncio
    async def test_aclose_fires_once(self, calls: list) -> None:
        guard = ScopeGuard(Policy.ALWAYS, _async_recorder(calls, "x"))
        assert await guard.aclose(failed=False) is True
        assert await guard.aclose(failed=False) is False
        assert calls == ["x"]
        assert guard.state is GuardState.SPENT

    @pytest.mark.asyncio
    async def test_compound_failure(self) -> None:
        async def explode() -> None:
            raise ValueError("async cleanup failed")

        with pytest.raises(UnwindActionError) as exc_info:
            async with ScopeGuard(Policy.ALWAYS, explode):
                raise Boom()
        assert isinstance(exc_info.value.original, Boom)


class TestAsyncStack:
    @pytest.mark.asyncio
    async def test_lifo_with_mixed_actions(self, calls: list) -> None:
        async with GuardStack() as guards:
            guards.defer(calls.append, "G1")
            guards.defer(_async_recorder(calls, "G2"))
        assert calls == ["G2", "G1"]

    @pytest.mark.asyncio
    async def test_failure_policies(self, calls: list) -> None:
        with pytest.raises(Boom):
            async with GuardStack() as guards:
                guards.defer_on_failure(_async_recorder(calls, "rollback"))
                guards.defer_on_success(_async_recorder(calls, "commit"))
                raise Boom()
        assert calls == ["rollback"]

    @pytest.mark.asyncio
    async def test_aclose_explicit(self, calls: list) -> None:
        guards = GuardStack()
        guards.defer_on_success(_async_recorder(calls, "x"))
        await guards.aclose(failed=False)
        assert calls == ["x"]
