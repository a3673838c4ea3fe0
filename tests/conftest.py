"""Root test configuration for deferguard.

Every test starts from the default active config with no DEFERGUARD_*
environment overrides, and with structlog configured at DEBUG without logger
caching so ``structlog.testing.capture_logs`` sees guard lifecycle events.
"""

import pytest

from deferguard.config import Config, set_config
from deferguard.utils.logger import configure_logging


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove config env vars that would leak from the developer's shell."""
    monkeypatch.delenv("DEFERGUARD_CONFIG", raising=False)
    monkeypatch.delenv("DEFERGUARD_LOG_LEVEL", raising=False)


@pytest.fixture(autouse=True)
def reset_active_config():
    """Install a fresh default Config around each test."""
    set_config(Config.defaults())
    yield
    set_config(Config.defaults())


@pytest.fixture(autouse=True)
def debug_logging() -> None:
    configure_logging(log_level="DEBUG", json_output=True, cache_loggers=False)


@pytest.fixture
def calls() -> list:
    """Shared list actions append markers to."""
    return []
