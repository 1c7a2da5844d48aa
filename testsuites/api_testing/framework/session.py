"""
================================================================================
Taiga Test Session Setup / Teardown
================================================================================

Builds the state a Taiga API test needs (configuration, an open client and
the resolved project under test) and hands it back as one value. Tests
receive it through a fixture instead of reading module-level globals.

Usage:
    >>> ctx = setup_client()
    >>> try:
    ...     ctx.client.epic.list(EpicsQueryParams(project=ctx.project_id))
    ... finally:
    ...     teardown_client(ctx)

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from loguru import logger

from ..taiga.client import TaigaClient
from ..taiga.models import Project
from .config_loader import ConfigLoader, ConfigurationError


@dataclass
class TaigaTestContext:
    """Everything a test case needs to talk to the project under test."""

    config: ConfigLoader
    client: TaigaClient
    project: Project

    @property
    def project_id(self) -> int:
        return self.project.id


def setup_client(
    config: Optional[ConfigLoader] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> TaigaTestContext:
    """
    Open a Taiga client and resolve the project under test.

    The project comes from ``taiga.project_id`` or, failing that,
    ``taiga.project_slug``.

    Raises:
        ConfigurationError: Neither project setting is present
        TaigaError: The project lookup failed
    """
    config = config or ConfigLoader()
    project_id = config.get("taiga.project_id", 0)
    project_slug = config.get("taiga.project_slug")
    if not project_id and not project_slug:
        raise ConfigurationError(
            "Set taiga.project_id or taiga.project_slug to choose the project under test"
        )

    client = TaigaClient(config, transport=transport)
    client.open()
    try:
        if project_id:
            project = client.project.get(project_id)
        else:
            project = client.project.get_by_slug(project_slug)
    except Exception:
        client.close()
        raise

    logger.info(f"Taiga client ready for project {project.slug or project.id} at {client.http.base_url}")
    return TaigaTestContext(config=config, client=client, project=project)


def teardown_client(ctx: TaigaTestContext) -> None:
    """Close the client opened by setup_client()."""
    ctx.client.close()
    logger.info(f"Taiga client for project {ctx.project.slug or ctx.project.id} closed")


__all__ = [
    "TaigaTestContext",
    "setup_client",
    "teardown_client",
]
