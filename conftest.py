"""
Repository-level pytest configuration.

Why this exists:
  - Configure loguru once for every suite, from testsuites/config/config.yaml
  - Give fixtures a stable handle on the repository root

Credentials never live here. Live suites read TAIGA_USERNAME / TAIGA_PASSWORD
(or TAIGA_TOKEN) and TAIGA_PROJECT_ID from the environment or the config file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest

from testsuites.api_testing.framework.logging_setup import init_logger


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(scope="session", autouse=True)
def _configure_logging() -> Generator[None, None, None]:
    """Route loguru output through the configured sinks for the whole run."""
    init_logger()
    yield
