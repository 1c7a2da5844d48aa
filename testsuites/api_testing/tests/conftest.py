"""
================================================================================
API Testing Pytest Configuration
================================================================================

Shared fixtures for the live Taiga API suites.

Fixtures:
    - config: Configuration loader instance
    - taiga_ctx: Context from setup_client(), torn down after the session
    - taiga_client / project_id: shortcuts into the context
    - data_factory: Unique test data with automatic cleanup

The suites need a reachable Taiga, credentials (or a token) and a project;
without them every test here is skipped.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Generator

import allure
import pytest
from loguru import logger

from ..framework import ConfigLoader, ConfigurationError, TaigaError
from ..framework.data_factory import EntityDataFactory
from ..framework.session import TaigaTestContext, setup_client, teardown_client
from ..taiga import TaigaClient


# =============================================================================
# Session-Scoped Fixtures (Shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def config() -> ConfigLoader:
    """
    Provide configuration loader instance.

    Session-scoped to ensure configuration is loaded only once.
    """
    return ConfigLoader()


@pytest.fixture(scope="session")
def taiga_ctx(config: ConfigLoader) -> Generator[TaigaTestContext, None, None]:
    """
    Open one Taiga client for the whole run and resolve the project under test.
    """
    if not (config.get("taiga.username") or config.get("taiga.token")):
        pytest.skip("Taiga credentials not configured (TAIGA_USERNAME/TAIGA_PASSWORD or TAIGA_TOKEN)")

    try:
        ctx = setup_client(config)
    except ConfigurationError as e:
        pytest.skip(str(e))
    except TaigaError as e:
        pytest.fail(f"Taiga setup failed: {e}")

    yield ctx

    teardown_client(ctx)


@pytest.fixture(scope="session")
def taiga_client(taiga_ctx: TaigaTestContext) -> TaigaClient:
    return taiga_ctx.client


@pytest.fixture(scope="session")
def project_id(taiga_ctx: TaigaTestContext) -> int:
    return taiga_ctx.project_id


# =============================================================================
# Function-Scoped Fixtures (Fresh for each test)
# =============================================================================

@pytest.fixture
def data_factory(taiga_ctx: TaigaTestContext) -> Generator[EntityDataFactory, None, None]:
    """
    Provide a data factory whose tracked entities are deleted after the test.

    Usage:
        def test_example(taiga_client, data_factory):
            epic = taiga_client.epic.create(data_factory.epic())
            data_factory.track_epic(taiga_client, epic)
    """
    factory = EntityDataFactory(
        project_id=taiga_ctx.project_id,
        seed=taiga_ctx.config.get("data.seed"),
    )
    yield factory

    if factory.tracked_count:
        logger.debug(f"Cleaning up {factory.tracked_count} Taiga entities")
    factory.cleanup_all()


# =============================================================================
# Allure Reporting Hooks
# =============================================================================

def pytest_exception_interact(node, call, report):
    """Attach additional info on test failure."""
    if report.failed:
        allure.attach(
            str(call.excinfo.value),
            name="Error Details",
            attachment_type=allure.attachment_type.TEXT
        )
