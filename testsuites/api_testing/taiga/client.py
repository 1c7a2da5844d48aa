"""
================================================================================
Taiga Client
================================================================================

Facade bundling one authenticated transport with the resource clients.

Usage:
    >>> with TaigaClient(ConfigLoader()) as client:
    ...     epic = client.epic.create(Epic(project=1, subject="Checkout"))
    ...     client.epic.get_by_ref(epic.ref, project=1)

================================================================================
"""

from __future__ import annotations

from typing import Optional

import httpx

from ..framework.config_loader import ConfigLoader
from ..framework.http_client import HttpClient
from .epics import EpicResource
from .projects import ProjectResource
from .user_stories import UserStoryResource


class TaigaClient:
    """Entry point to the Taiga API: ``client.epic``, ``client.user_story``, ``client.project``."""

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.http = HttpClient(config, transport=transport)
        self.config = self.http.config
        self.epic = EpicResource(self.http)
        self.user_story = UserStoryResource(self.http)
        self.project = ProjectResource(self.http)

    def __enter__(self) -> "TaigaClient":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        self.http.open()

    def close(self) -> None:
        self.http.close()

    @property
    def is_open(self) -> bool:
        return self.http.session is not None


__all__ = [
    "TaigaClient",
]
