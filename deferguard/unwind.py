"""Ambient error-context query.

Inside ``with`` / ``async with`` blocks guards are told the outcome directly by
the interpreter (``exc_type`` in ``__exit__``) and never consult this module.
It backs ``close()`` called without an explicit ``failed`` flag, e.g. from a
``finally`` clause.

``sys.exc_info()`` also reports exceptions that were already caught, so the
exception in effect when a guard is built is recorded as its baseline. Only a
different exception, raised after the guard was built, counts as an in-flight
error at close time. A guard built and closed inside an ``except`` handler
therefore sees a normal exit.
"""

from __future__ import annotations

import sys
from typing import Optional


def current_error() -> Optional[BaseException]:
    """Return the exception currently in effect on this thread, if any."""
    return sys.exc_info()[1]


def in_flight_error(baseline: Optional[BaseException] = None) -> Optional[BaseException]:
    """Return the exception propagating since ``baseline`` was recorded, if any.

    Args:
        baseline: ``current_error()`` captured when the scope was entered.
    """
    error = current_error()
    if error is None or error is baseline:
        return None
    return error


def is_unwinding_due_to_error(baseline: Optional[BaseException] = None) -> bool:
    """Return True while an exception raised after ``baseline`` is propagating.

    True inside a ``finally`` clause entered because of such an exception.
    An exception that was already in effect when ``baseline`` was recorded,
    e.g. the one handled by the surrounding ``except`` clause, does not count.
    Without a baseline any exception in effect counts, since the caller's own
    handler cannot be told apart from propagation.
    """
    return in_flight_error(baseline) is not None


def resolve_outcome(
    failed: Optional[bool], baseline: Optional[BaseException] = None
) -> tuple[bool, Optional[BaseException]]:
    """Turn an optional explicit outcome into ``(failed, in_flight_error)``.

    ``None`` defers to the ambient context relative to ``baseline``. An explicit
    ``False`` never carries an error, even when called from inside an exception
    handler.
    """
    error = in_flight_error(baseline)
    if failed is None:
        return error is not None, error
    return failed, error if failed else None
