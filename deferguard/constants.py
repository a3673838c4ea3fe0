"""Shared constants for deferguard.

Environment variable names, config search paths and the closed value sets used
by config validation live here. Other modules import from here rather than
repeating literals.
"""

import os

# ─── Environment variables ───────────────────────────────────────────────────

# Explicit config file path, tried before the default search paths.
ENV_CONFIG_PATH: str = "DEFERGUARD_CONFIG"

# Overrides logging.level from the config file (and the import-time default).
ENV_LOG_LEVEL: str = "DEFERGUARD_LOG_LEVEL"

# ─── Config file ─────────────────────────────────────────────────────────────

# Current supported config version
SUPPORTED_CONFIG_VERSION: int = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

# Default config search paths (DEFERGUARD_CONFIG prepended at runtime)
DEFAULT_CONFIG_PATHS: list[str] = [
    ".deferguard/config.yaml",
    os.path.expanduser("~/.deferguard/config.yaml"),
]

# ─── Logging ─────────────────────────────────────────────────────────────────

VALID_LOG_LEVELS: frozenset[str] = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
)

# Library default: guard lifecycle events are debug-level and stay quiet.
DEFAULT_LOG_LEVEL: str = "WARNING"

# ─── Guard behaviour ─────────────────────────────────────────────────────────

# What happens when an action raises while its guard fires during a failing exit.
#   raise — UnwindActionError carrying both exceptions
#   abort — log critical, then os.abort()
ACTION_ERROR_RAISE: str = "raise"
ACTION_ERROR_ABORT: str = "abort"
VALID_ACTION_ERROR_MODES: frozenset[str] = frozenset(
    {ACTION_ERROR_RAISE, ACTION_ERROR_ABORT}
)

# Actions slower than this are logged at warning level.
DEFAULT_SLOW_ACTION_MS: float = 50.0
