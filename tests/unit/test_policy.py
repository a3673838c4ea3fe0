"""Unit tests for deferguard/policy.py — trigger decision table and coercion."""

from __future__ import annotations

import pytest

from deferguard.errors import GuardMisuseError
from deferguard.policy import GuardState, Policy


@pytest.mark.parametrize(
    "policy, failed, expected",
    [
        (Policy.ALWAYS, False, True),
        (Policy.ALWAYS, True, True),
        (Policy.ON_FAILURE, False, False),
        (Policy.ON_FAILURE, True, True),
        (Policy.ON_SUCCESS, False, True),
        (Policy.ON_SUCCESS, True, False),
    ],
)
def test_should_fire(policy: Policy, failed: bool, expected: bool) -> None:
    assert policy.should_fire(failed) is expected


class TestCoerce:
    def test_member_returned_unchanged(self) -> None:
        assert Policy.coerce(Policy.ON_SUCCESS) is Policy.ON_SUCCESS

    @pytest.mark.parametrize("value", ["always", "on_failure", "on_success"])
    def test_string_values(self, value: str) -> None:
        assert Policy.coerce(value).value == value

    def test_unknown_value_lists_supported(self) -> None:
        with pytest.raises(GuardMisuseError) as exc_info:
            Policy.coerce("OnFailure")
        assert "on_failure" in str(exc_info.value)


def test_guard_state_values() -> None:
    assert {s.value for s in GuardState} == {"armed", "disarmed", "spent"}
