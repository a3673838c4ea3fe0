#!/usr/bin/env python3
"""Demonstration program for deferguard.

Runs each policy through a normal exit and an exception exit and prints what
happened:

  Always     — fires on both exits
  OnFailure  — fires only on the exception exit
  OnSuccess  — fires only on the normal exit

Usage:
    python -m deferguard.demo
    deferguard-demo --no-color          # via pyproject.toml [project.scripts]
    deferguard-demo --config path/to/config.yaml

Exit status is 0 when every scenario behaved as expected, 1 otherwise.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from deferguard.builder import make_guard
from deferguard.config import configure
from deferguard.policy import Policy

RESET = "\033[0m"
BOLD = "\033[1m"
GREEN = "\033[92m"
RED = "\033[91m"
CYAN = "\033[96m"
GRAY = "\033[90m"

# ── Scenarios ─────────────────────────────────────────────────────────────────
# Each entry guards one scope. "error" makes the scope raise; "fires" is the
# expected outcome.
SCENARIOS = [
    {
        "section": "Test Always Mode",
        "policy": Policy.ALWAYS,
        "error": False,
        "marker": "Always-normal",
        "message": "Always mode - normal scope exit.",
        "fires": True,
    },
    {
        "section": "Test Always Mode",
        "policy": Policy.ALWAYS,
        "error": True,
        "marker": "Always-error",
        "message": "Always mode - exception scope exit.",
        "fires": True,
    },
    {
        "section": "Test OnFailure Mode",
        "policy": Policy.ON_FAILURE,
        "error": False,
        "marker": "OnFailure-normal",
        "message": "OnFailure mode - normal scope exit (should not trigger).",
        "fires": False,
    },
    {
        "section": "Test OnFailure Mode",
        "policy": Policy.ON_FAILURE,
        "error": True,
        "marker": "OnFailure-error",
        "message": "OnFailure mode - exception scope exit.",
        "fires": True,
    },
    {
        "section": "Test OnSuccess Mode",
        "policy": Policy.ON_SUCCESS,
        "error": False,
        "marker": "OnSuccess-normal",
        "message": "OnSuccess mode - normal scope exit.",
        "fires": True,
    },
    {
        "section": "Test OnSuccess Mode",
        "policy": Policy.ON_SUCCESS,
        "error": True,
        "marker": "OnSuccess-error",
        "message": "OnSuccess mode - exception scope exit (should not trigger).",
        "fires": False,
    },
]


class _Painter:
    def __init__(self, enabled: bool):
        self.enabled = enabled

    def __call__(self, text: str, *codes: str) -> str:
        if not self.enabled:
            return text
        return "".join(codes) + text + RESET


def separator(title: str, paint: _Painter) -> None:
    print(paint(f"\n============ {title} ============\n", BOLD, CYAN))


def run_scenario(scenario: dict, paint: _Painter) -> bool:
    """Run one guarded scope; return True when the guard behaved as expected."""
    fired: list[str] = []

    def action() -> None:
        fired.append(scenario["marker"])
        print(f"[{scenario['marker']}] {scenario['message']}")

    try:
        with make_guard(scenario["policy"], action):
            if scenario["error"]:
                print("Inside scope (exception).")
                raise RuntimeError("Exception in scope.")
            print("Inside scope (normal).")
    except RuntimeError:
        print("Exception caught.")
        if not scenario["error"]:
            print(paint("Exception caught (should not occur).", RED))
            return False

    ok = bool(fired) == scenario["fires"]
    status = paint("ok", GREEN) if ok else paint("UNEXPECTED", BOLD, RED)
    print(paint(f"  {scenario['marker']}: {status}", GRAY))
    return ok


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="deferguard scope-exit guard demo")
    parser.add_argument("--config", help="Path to a deferguard config.yaml")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colours")
    args = parser.parse_args(argv)

    configure(args.config)
    paint = _Painter(enabled=not args.no_color and sys.stdout.isatty())

    print("Starting Tests:")
    results = []
    section = None
    for scenario in SCENARIOS:
        if scenario["section"] != section:
            section = scenario["section"]
            separator(section, paint)
        results.append(run_scenario(scenario, paint))

    separator("All Tests Completed", paint)
    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(main())
