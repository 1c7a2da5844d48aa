"""
================================================================================
Epic Client
================================================================================

Epic CRUD plus the relation sub-API linking epics to user stories.

Relation endpoints:
    POST   /epics/{id}/related_userstories
    GET    /epics/{id}/related_userstories
    GET    /epics/{id}/related_userstories/{user_story_id}
    DELETE /epics/{id}/related_userstories/{user_story_id}
    GET    /userstories?epic={id}

================================================================================
"""

from __future__ import annotations

from typing import List, Optional

import allure
from loguru import logger

from ..framework.errors import ConflictError, NotFoundError, ValidationError
from .models import Epic, EpicRelatedUserStory, EpicsQueryParams, UserStory, UserStoryQueryParams
from .resources import EntityResource


# Taiga answers a duplicate link with 400 and one of these phrases.
DUPLICATE_RELATION_MARKERS = ("already related", "already exists", "must make a unique set")


class EpicResource(EntityResource[Epic]):
    endpoint = "/epics"
    model = Epic
    label = "epic"

    def list(self, query: Optional[EpicsQueryParams] = None) -> List[Epic]:
        """
        List the epics of one project.

        Raises:
            ValidationError: No project filter given
        """
        if query is None or (query.project is None and query.project__slug is None):
            raise ValidationError("Listing epics requires a project filter")
        return super().list(query)

    # ----------------------------------------------------------------------------
    # Related user stories
    # ----------------------------------------------------------------------------

    def _relations_url(self, epic_id: int) -> str:
        return f"{self._item_url(epic_id)}/related_userstories"

    def create_related_user_story(self, epic_id: int, user_story_id: int) -> EpicRelatedUserStory:
        """
        Link a user story to an epic.

        Raises:
            ValidationError: The epic or the user story does not exist
            ConflictError: The two are already linked
        """
        body = {"epic": epic_id, "user_story": user_story_id}
        try:
            with allure.step(f"Relate user story {user_story_id} to epic {epic_id}"):
                payload = self.http.post(self._relations_url(epic_id), json=body)
        except ValidationError as e:
            if _is_duplicate_relation(e):
                raise ConflictError(
                    f"User story {user_story_id} is already related to epic {epic_id}",
                    status_code=e.status_code,
                    method=e.method,
                    url=e.url,
                    detail=e.detail,
                ) from e
            raise
        except NotFoundError as e:
            raise ValidationError(
                f"Epic {epic_id} does not exist",
                status_code=e.status_code,
                method=e.method,
                url=e.url,
                detail=e.detail,
            ) from e

        relation = EpicRelatedUserStory.from_wire(payload)
        logger.info(f"Related user story {user_story_id} to epic {epic_id}")
        return relation

    def list_related_user_stories(self, epic_id: int) -> List[UserStory]:
        """Return the user stories linked to an epic, in server order."""
        query = UserStoryQueryParams(epic=epic_id)
        with allure.step(f"List user stories related to epic {epic_id}"):
            payload = self.http.get("/userstories", params=query.to_params())
        return UserStory.from_wire_list(payload)

    def list_relations(self, epic_id: int) -> List[EpicRelatedUserStory]:
        payload = self.http.get(self._relations_url(epic_id))
        return EpicRelatedUserStory.from_wire_list(payload)

    def get_related_user_story(self, epic_id: int, user_story_id: int) -> EpicRelatedUserStory:
        payload = self.http.get(f"{self._relations_url(epic_id)}/{user_story_id}")
        return EpicRelatedUserStory.from_wire(payload)

    def delete_related_user_story(self, epic_id: int, user_story_id: int) -> None:
        with allure.step(f"Unrelate user story {user_story_id} from epic {epic_id}"):
            self.http.delete(f"{self._relations_url(epic_id)}/{user_story_id}")
        logger.info(f"Removed user story {user_story_id} from epic {epic_id}")


def _is_duplicate_relation(error: ValidationError) -> bool:
    text = str(error.detail).lower()
    return any(marker in text for marker in DUPLICATE_RELATION_MARKERS)


__all__ = [
    "EpicResource",
]
