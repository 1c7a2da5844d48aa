"""
================================================================================
Entity Resource Client
================================================================================

Generic CRUD binding shared by every Taiga work-item endpoint. Each method
is one HTTP call against the transport, except edit, which first reads
the current version:

    list        GET    /{endpoint}?{filters}
    create      POST   /{endpoint}
    get         GET    /{endpoint}/{id}
    get_by_ref  GET    /{endpoint}/by_ref?ref={ref}&project={project}
    edit        GET + PATCH /{endpoint}/{id}
    delete      DELETE /{endpoint}/{id}

================================================================================
"""

from __future__ import annotations

from typing import Any, Dict, Generic, List, Type, TypeVar, Union

import allure
from loguru import logger

from ..framework.errors import ValidationError
from ..framework.http_client import HttpClient
from .models import EntityPatch, Project, WorkItem


T = TypeVar("T", bound=WorkItem)

ProjectRef = Union[Project, int]


def project_id_of(project: ProjectRef) -> int:
    """Accept either a Project snapshot or a bare project id."""
    project_id = project.id if isinstance(project, Project) else project
    if not project_id:
        raise ValidationError("A project id is required")
    return int(project_id)


class EntityResource(Generic[T]):
    """
    CRUD operations for one Taiga entity kind.

    Subclasses set ``endpoint``, ``model`` and ``label``.
    """

    endpoint: str = ""
    model: Type[T]
    label: str = "entity"

    def __init__(self, http: HttpClient) -> None:
        self.http = http

    def _item_url(self, entity_id: int) -> str:
        return f"{self.endpoint}/{entity_id}"

    def list(self, query: Any = None) -> List[T]:
        """
        List entities matching the query; empty list when nothing matches.
        """
        params: Dict[str, Any] = query.to_params() if query is not None else {}
        with allure.step(f"List {self.label}s {params}"):
            payload = self.http.get(self.endpoint, params=params)
        items = self.model.from_wire_list(payload)
        logger.debug(f"Listed {len(items)} {self.label}(s) with {params}")
        return items

    def create(self, entity: T) -> T:
        """
        Create an entity; the returned snapshot carries the server-assigned
        id and ref.
        """
        body = entity.to_create_payload()
        logger.debug(f"Creating {self.label} in project {entity.project}")
        with allure.step(f"Create {self.label} '{entity.subject}'"):
            payload = self.http.post(self.endpoint, json=body)
        created = self.model.from_wire(payload)
        logger.info(f"Created {self.label} id={created.id} ref={created.ref}")
        return created

    def get(self, entity_id: int) -> T:
        with allure.step(f"Get {self.label} {entity_id}"):
            payload = self.http.get(self._item_url(entity_id))
        return self.model.from_wire(payload)

    def get_by_ref(self, ref: int, project: ProjectRef) -> T:
        """
        Resolve an entity by its project-scoped ref.

        Refs are only unique inside a project, so the project is mandatory.
        """
        params = {"ref": ref, "project": project_id_of(project)}
        with allure.step(f"Get {self.label} by ref {params}"):
            payload = self.http.get(f"{self.endpoint}/by_ref", params=params)
        return self.model.from_wire(payload)

    def edit(self, entity_id: int, patch: EntityPatch) -> T:
        """
        Send a partial update and return the server's view of the entity.

        Taiga rejects a PATCH without the entity's current ``version``, so it is
        read just before the update. Concurrent edits still resolve as last
        write wins; the client does no optimistic-lock check of its own.
        """
        if patch.entity_type is not self.model:
            raise ValidationError(
                f"Cannot apply a {patch.entity_type.__name__} patch to a {self.label}"
            )
        body = patch.to_payload()
        logger.debug(f"Patching {self.label} {entity_id}: {sorted(body)}")
        with allure.step(f"Edit {self.label} {entity_id}"):
            current = self.get(entity_id)
            if current.version is not None:
                body["version"] = current.version
            payload = self.http.patch(self._item_url(entity_id), json=body)
        return self.model.from_wire(payload)

    def edit_snapshot(self, base: T, changed: T) -> T:
        """Diff two snapshots of one entity and send only what changed."""
        if base.id is None:
            raise ValidationError(f"Cannot edit a {self.label} without an id")
        return self.edit(base.id, EntityPatch.diff(base, changed))

    def delete(self, entity_id: int) -> None:
        with allure.step(f"Delete {self.label} {entity_id}"):
            self.http.delete(self._item_url(entity_id))
        logger.info(f"Deleted {self.label} id={entity_id}")


__all__ = [
    "EntityResource",
    "ProjectRef",
    "project_id_of",
]
