"""
Fixtures for the offline unit suite: an isolated configuration, a private
token cache and an in-memory Taiga mounted into the client's transport.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Generator

import pytest
import yaml

from testsuites.api_testing.framework import token_manager
from testsuites.api_testing.framework.config_loader import ConfigLoader
from testsuites.api_testing.framework.session import TaigaTestContext, setup_client, teardown_client
from testsuites.api_testing.taiga import TaigaClient

from .fake_taiga import PASSWORD, USERNAME, FakeTaiga


PROJECT_ID = 1
PROJECT_SLUG = "taigo-test"

ISOLATED_ENV = (
    "TAIGA_BASE_URL",
    "TAIGA_API_PREFIX",
    "TAIGA_USERNAME",
    "TAIGA_PASSWORD",
    "TAIGA_TOKEN",
    "TAIGA_PROJECT_ID",
    "TAIGA_PROJECT_SLUG",
    "API_TIMEOUT",
    "AUTH_TTL",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path: Path) -> None:
    """Keep developer env vars and the shared token cache out of unit tests."""
    for key in ISOLATED_ENV:
        monkeypatch.delenv(key, raising=False)

    cache_dir = tmp_path / "token_cache"
    monkeypatch.setattr(token_manager, "TOKEN_CACHE_DIR", cache_dir)
    monkeypatch.setattr(token_manager, "TOKEN_CACHE_FILE", cache_dir / "cache.json")
    monkeypatch.setattr(token_manager, "TOKEN_LOCK_FILE", cache_dir / "cache.lock")


@pytest.fixture
def config_data() -> Dict[str, Any]:
    return {
        "taiga": {
            "base_url": "http://taiga.test",
            "api_prefix": "/api/v1",
            "username": USERNAME,
            "password": PASSWORD,
            "project_id": PROJECT_ID,
        },
        "api": {"timeout": 5},
    }


@pytest.fixture
def config(tmp_path: Path, config_data: Dict[str, Any]) -> ConfigLoader:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.dump(config_data), encoding="utf-8")
    return ConfigLoader(config_path=config_path)


@pytest.fixture
def fake_taiga() -> FakeTaiga:
    fake = FakeTaiga()
    fake.add_project(PROJECT_ID, PROJECT_SLUG)
    return fake


@pytest.fixture
def client(config: ConfigLoader, fake_taiga: FakeTaiga) -> Generator[TaigaClient, None, None]:
    with TaigaClient(config, transport=fake_taiga.transport) as taiga_client:
        yield taiga_client


@pytest.fixture
def taiga_ctx(config: ConfigLoader, fake_taiga: FakeTaiga) -> Generator[TaigaTestContext, None, None]:
    ctx = setup_client(config, transport=fake_taiga.transport)
    yield ctx
    teardown_client(ctx)
