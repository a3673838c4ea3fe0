"""Config loading for deferguard.

Reads `.deferguard/config.yaml` (or `~/.deferguard/config.yaml`).
Raises SystemExit on parse errors or missing `version` field.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (if provided — for testing or explicit override)
  2. DEFERGUARD_CONFIG environment variable (if set)
  3. `.deferguard/config.yaml` (working directory)
  4. `~/.deferguard/config.yaml` (home directory)

Environment variable overrides:
  DEFERGUARD_LOG_LEVEL — overrides logging.level
  DEFERGUARD_CONFIG — sets an explicit config file path to try first

The library never loads config on its own. Guards read the active config
(``get_config()``) at firing time; ``configure()`` loads a file, installs it
and reconfigures logging.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import NoReturn, Optional

import yaml

from deferguard.constants import (
    ACTION_ERROR_RAISE,
    DEFAULT_CONFIG_PATHS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SLOW_ACTION_MS,
    ENV_CONFIG_PATH,
    ENV_LOG_LEVEL,
    SUPPORTED_CONFIG_VERSION,
    SUPPORTED_VERSIONS,
    VALID_ACTION_ERROR_MODES,
    VALID_LOG_LEVELS,
)
from deferguard.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class LoggingConfig:
    """structlog output settings."""

    level: str = DEFAULT_LOG_LEVEL
    json: bool = True


@dataclass
class GuardConfig:
    """Firing behaviour shared by all guards.

    on_action_error: "raise" | "abort" — compound-failure handling when an
                     action raises while its scope is already failing.
    slow_action_ms:  actions running longer than this are logged as slow.
    """

    on_action_error: str = ACTION_ERROR_RAISE
    slow_action_ms: float = DEFAULT_SLOW_ACTION_MS


@dataclass
class Config:
    """Root configuration object populated from .deferguard/config.yaml.

    All fields have safe defaults — deferguard works without any config file.
    """

    version: int = SUPPORTED_CONFIG_VERSION
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    guard: GuardConfig = field(default_factory=GuardConfig)
    path: Optional[str] = None  # Path to the loaded config file

    @classmethod
    def defaults(cls) -> "Config":
        """Return a fully-default Config (no file required)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Args:
            raw:  Parsed YAML dict (must already be validated for version field).
            path: Path to the config file.

        Returns:
            Config with all fields populated from raw + defaults for missing fields.

        Raises:
            SystemExit(1): On invalid logging.level, guard.on_action_error
                           or guard.slow_action_ms.
        """
        # ── Logging ───────────────────────────────────────────────────────────
        logging_raw = raw.get("logging") or {}
        level = str(logging_raw.get("level", DEFAULT_LOG_LEVEL)).upper()
        if level not in VALID_LOG_LEVELS:
            _fail(
                f"CONFIG ERROR: Invalid logging.level: '{level}'. "
                f"Supported values: {sorted(VALID_LOG_LEVELS)}."
            )
        logging_config = LoggingConfig(
            level=level,
            json=bool(logging_raw.get("json", True)),
        )

        # ── Guard ─────────────────────────────────────────────────────────────
        guard_raw = raw.get("guard") or {}
        mode = guard_raw.get("on_action_error", ACTION_ERROR_RAISE)
        if mode not in VALID_ACTION_ERROR_MODES:
            _fail(
                f"CONFIG ERROR: Invalid guard.on_action_error: '{mode}'. "
                f"Supported values: {sorted(VALID_ACTION_ERROR_MODES)}."
            )
        slow_ms = guard_raw.get("slow_action_ms", DEFAULT_SLOW_ACTION_MS)
        if isinstance(slow_ms, bool) or not isinstance(slow_ms, (int, float)) or slow_ms < 0:
            _fail(
                f"CONFIG ERROR: guard.slow_action_ms must be a non-negative number, "
                f"got: {slow_ms!r}."
            )
        guard = GuardConfig(on_action_error=mode, slow_action_ms=float(slow_ms))

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            logging=logging_config,
            guard=guard,
            path=path,
        )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate deferguard configuration.

    Search order:
      1. ``config_path`` argument (if provided)
      2. ``DEFERGUARD_CONFIG`` environment variable (if set)
      3. ``.deferguard/config.yaml`` (current working directory)
      4. ``~/.deferguard/config.yaml`` (home directory)

    If no file is found at any of these paths, returns default Config (not an error).
    If a file is found but invalid, writes error to stderr and raises SystemExit(1).

    After loading (or defaulting), ``DEFERGUARD_LOG_LEVEL`` is applied as an
    override to ``config.logging.level``.

    Returns:
        Config object with all values populated (file values merged onto defaults).

    Raises:
        SystemExit(1): On YAML parse error, missing ``version`` field, unsupported
                       version, any invalid field, or invalid ``DEFERGUARD_LOG_LEVEL``.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get(ENV_CONFIG_PATH)
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    # ── No config file found ─────────────────────────────────────────────────
    if found_path is None:
        logger.debug("No config file found — using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        return config

    # ── Parse config file ─────────────────────────────────────────────────────
    logger.debug("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _fail(
            f"CONFIG ERROR: Failed to parse {found_path}: {exc}\n"
            "Check the YAML syntax and try again."
        )
    except OSError as exc:
        _fail(f"CONFIG ERROR: Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _fail(
                f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _fail(
            f"CONFIG ERROR: {found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    # ── Version validation ────────────────────────────────────────────────────
    version = raw.get("version")
    if version is None:
        _fail(
            f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _fail(
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)

    logger.debug(
        "Config loaded",
        path=found_path,
        version=config.version,
        on_action_error=config.guard.on_action_error,
    )
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Currently handles:
      DEFERGUARD_LOG_LEVEL — overrides config.logging.level

    Raises:
        SystemExit(1): If DEFERGUARD_LOG_LEVEL is set but not a known level.
    """
    env_level = os.environ.get(ENV_LOG_LEVEL)
    if env_level is not None:
        level = env_level.upper()
        if level not in VALID_LOG_LEVELS:
            _fail(
                f"CONFIG ERROR: {ENV_LOG_LEVEL} environment variable is not a valid "
                f"log level: '{env_level}'"
            )
        config.logging.level = level


def _fail(msg: str) -> NoReturn:
    print(msg, file=sys.stderr)
    raise SystemExit(1)


# ─── Active config ────────────────────────────────────────────────────────────

_active_config: Config = Config.defaults()


def get_config() -> Config:
    """Return the config guards consult when they fire."""
    return _active_config


def set_config(config: Config) -> None:
    """Install ``config`` as the active config (logging is left untouched)."""
    global _active_config
    _active_config = config


def configure(config_path: Optional[str] = None) -> Config:
    """Load config, install it as active and reconfigure logging to match.

    Raises:
        SystemExit(1): Propagated from load_config() on invalid config.
    """
    config = load_config(config_path)
    set_config(config)
    configure_logging(log_level=config.logging.level, json_output=config.logging.json)
    return config
