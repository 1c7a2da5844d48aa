"""
================================================================================
Test Data Factory
================================================================================

This module provides factories for Taiga test data: unique, recognisable
subjects for epics and user stories, plus tracking of everything a test
created so it can be removed afterwards.

Features:
- Unique subjects prefixed with "autotest_" for easy manual cleanup
- Reproducible random parts via an optional seed
- Reverse-order cleanup through the Taiga client

================================================================================
"""

from typing import Callable, List, Optional
from dataclasses import dataclass, field
from uuid import uuid4
from datetime import datetime
import random
import string

from loguru import logger

from ..taiga.client import TaigaClient
from ..taiga.models import Epic, UserStory
from .errors import NotFoundError, TaigaError


# ================================================================================
# Data Models
# ================================================================================

@dataclass
class TrackedEntity:
    """An entity created during a test, with the way to remove it."""
    kind: str
    entity_id: int
    created_at: datetime = field(default_factory=datetime.now)
    cleanup_handler: Optional[Callable[[int], None]] = None


# ================================================================================
# Factory
# ================================================================================

class EntityDataFactory:
    """
    Builds epic and user story payloads and tracks what was created.

    Usage:
        factory = EntityDataFactory(project_id=ctx.project_id)
        epic = client.epic.create(factory.epic())
        factory.track_epic(client, epic)
        ...
        factory.cleanup_all()
    """

    # Prefix for all auto-generated test data
    PREFIX = "autotest_"

    def __init__(self, project_id: int, seed: Optional[int] = None):
        """
        Args:
            project_id: Project every generated entity belongs to
            seed: Random seed for reproducible data generation
        """
        self.project_id = project_id
        self._random = random.Random(seed)
        self._tracked: List[TrackedEntity] = []

    def unique_subject(self, label: str) -> str:
        """Generate a subject no other test run will produce."""
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        return f"{self.PREFIX}{label} {timestamp}_{uuid4().hex[:8]}"

    def _random_string(self, length: int = 10) -> str:
        chars = string.ascii_lowercase + string.digits
        return ''.join(self._random.choice(chars) for _ in range(length))

    def epic(self, subject: Optional[str] = None, **kwargs) -> Epic:
        """Unsaved epic in the factory's project."""
        return Epic(
            project=self.project_id,
            subject=subject or self.unique_subject("epic"),
            **kwargs,
        )

    def user_story(self, subject: Optional[str] = None, **kwargs) -> UserStory:
        """Unsaved user story in the factory's project."""
        return UserStory(
            project=self.project_id,
            subject=subject or self.unique_subject("us"),
            **kwargs,
        )

    def epic_description(self) -> str:
        return f"Generated description {self._random_string(12)}"

    # --------------------------------------------------------------------------
    # Tracking
    # --------------------------------------------------------------------------

    def track(self, kind: str, entity_id: int,
              cleanup_handler: Optional[Callable[[int], None]] = None) -> TrackedEntity:
        tracked = TrackedEntity(kind=kind, entity_id=entity_id, cleanup_handler=cleanup_handler)
        self._tracked.append(tracked)
        return tracked

    def track_epic(self, client: TaigaClient, epic: Epic) -> Epic:
        self.track("epic", epic.id, client.epic.delete)
        return epic

    def track_user_story(self, client: TaigaClient, story: UserStory) -> UserStory:
        self.track("user story", story.id, client.user_story.delete)
        return story

    def forget(self, kind: str, entity_id: int) -> None:
        """Stop tracking an entity the test already deleted itself."""
        self._tracked = [
            t for t in self._tracked
            if not (t.kind == kind and t.entity_id == entity_id)
        ]

    def cleanup_all(self) -> None:
        """
        Delete every tracked entity, newest first.

        Entities that are already gone are skipped; other failures are
        logged so one broken delete does not hide the rest.
        """
        for item in reversed(self._tracked):
            if not item.cleanup_handler:
                continue
            try:
                item.cleanup_handler(item.entity_id)
                logger.debug(f"Cleaned up {item.kind}: {item.entity_id}")
            except NotFoundError:
                logger.debug(f"{item.kind} {item.entity_id} already deleted")
            except TaigaError as e:
                logger.warning(f"Failed to cleanup {item.kind} {item.entity_id}: {e}")

        self._tracked.clear()

    @property
    def tracked_count(self) -> int:
        return len(self._tracked)


__all__ = [
    "EntityDataFactory",
    "TrackedEntity",
]
