"""
================================================================================
Taiga API Client
================================================================================

Thin binding over the Taiga REST API used by the API test suites.

Modules:
    - models: Epic, UserStory, Project, relation and patch types
    - resources: generic entity CRUD
    - epics: epic CRUD and the related user story sub-API
    - user_stories: user story CRUD
    - projects: project lookup
    - client: TaigaClient facade

Author: Automation Team
License: MIT
================================================================================
"""

from .client import TaigaClient
from .epics import EpicResource
from .models import (
    Epic,
    EpicRelatedUserStory,
    EpicsQueryParams,
    EntityPatch,
    Project,
    UserStory,
    UserStoryQueryParams,
)
from .projects import ProjectResource
from .user_stories import UserStoryResource

__all__ = [
    "TaigaClient",
    "EpicResource",
    "UserStoryResource",
    "ProjectResource",
    "Epic",
    "EpicRelatedUserStory",
    "EpicsQueryParams",
    "EntityPatch",
    "Project",
    "UserStory",
    "UserStoryQueryParams",
]
