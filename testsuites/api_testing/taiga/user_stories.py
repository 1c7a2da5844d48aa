"""User story CRUD against /userstories."""

from __future__ import annotations

from typing import List, Optional

from .models import UserStory, UserStoryQueryParams
from .resources import EntityResource


class UserStoryResource(EntityResource[UserStory]):
    endpoint = "/userstories"
    model = UserStory
    label = "user story"

    def list(self, query: Optional[UserStoryQueryParams] = None) -> List[UserStory]:
        return super().list(query)


__all__ = [
    "UserStoryResource",
]
