"""Guard identifier generation.

Every ``ScopeGuard`` gets a 26-character ULID at construction. The id survives
``transfer()``, so log events from the original owner and the new owner share
it. Uses the ``python-ulid`` library; do not hand-roll ULID generation.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID as a 26-character uppercase string.

    Returns:
        str: Crockford Base32 ULID, e.g. ``"01KJ0JRVHYA7KX32VPN5ZSCTMV"``.
    """
    return str(ULID())
