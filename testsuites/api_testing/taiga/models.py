"""
================================================================================
Taiga Entity Models
================================================================================

Detached snapshots of Taiga entities and the helpers that move them on and
off the wire.

Models:
    - Project: the container scoping epics, user stories and refs
    - Epic: large unit of work grouping user stories
    - UserStory: a feature or requirement
    - EpicRelatedUserStory: the (epic, user_story) link
    - EntityPatch: explicit partial update sent by Edit
    - EpicsQueryParams / UserStoryQueryParams: list filters

================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, TypeVar

from ..framework.errors import ValidationError


E = TypeVar("E", bound="TaigaEntity")


# ================================================================================
# Base
# ================================================================================

@dataclass
class TaigaEntity:
    """
    Common wire handling for Taiga entities.

    Subclasses declare which fields the client may change (MUTABLE_FIELDS).
    Anything the server returns that is not a declared field lands in
    ``extra`` so a round trip loses nothing. Every subclass declares ``extra``.
    """

    MUTABLE_FIELDS: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def from_wire(cls: Type[E], payload: Dict[str, Any]) -> E:
        known = {f.name for f in fields(cls) if f.name != "extra"}
        values = {k: v for k, v in payload.items() if k in known}
        extra = {k: v for k, v in payload.items() if k not in known}
        return cls(**values, extra=extra)

    @classmethod
    def from_wire_list(cls: Type[E], payload: Optional[List[Dict[str, Any]]]) -> List[E]:
        return [cls.from_wire(item) for item in payload or []]


@dataclass
class Project(TaigaEntity):
    id: Optional[int] = None
    name: str = ""
    slug: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass
class WorkItem(TaigaEntity):
    """
    Shared shape of epics and user stories.

    ``id`` and ``ref`` are server-assigned; ``project`` is fixed at creation.
    """

    MUTABLE_FIELDS: ClassVar[Tuple[str, ...]] = ("subject", "description")

    id: Optional[int] = None
    ref: Optional[int] = None
    project: Optional[int] = None
    subject: str = ""
    description: str = ""
    version: Optional[int] = None
    status: Optional[int] = None
    assigned_to: Optional[int] = None
    tags: List[Any] = field(default_factory=list)
    is_closed: Optional[bool] = None
    created_date: Optional[str] = None
    modified_date: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def to_create_payload(self) -> Dict[str, Any]:
        """
        Build the POST body for a new entity.

        Raises:
            ValidationError: project/subject missing, or id/ref already set
        """
        if self.id is not None or self.ref is not None:
            raise ValidationError(
                f"{type(self).__name__} to create must not carry id/ref "
                f"(got id={self.id}, ref={self.ref})"
            )
        if not self.project:
            raise ValidationError(f"{type(self).__name__} requires a project")
        if not self.subject:
            raise ValidationError(f"{type(self).__name__} requires a subject")

        payload: Dict[str, Any] = {"project": self.project, "subject": self.subject}
        if self.description:
            payload["description"] = self.description
        if self.tags:
            payload["tags"] = list(self.tags)
        if self.assigned_to is not None:
            payload["assigned_to"] = self.assigned_to
        if self.status is not None:
            payload["status"] = self.status
        return payload


@dataclass
class Epic(WorkItem):
    color: Optional[str] = None
    user_stories_counts: Optional[Dict[str, Any]] = None

    def to_create_payload(self) -> Dict[str, Any]:
        payload = super().to_create_payload()
        if self.color:
            payload["color"] = self.color
        return payload


@dataclass
class UserStory(WorkItem):
    milestone: Optional[int] = None

    def to_create_payload(self) -> Dict[str, Any]:
        payload = super().to_create_payload()
        if self.milestone is not None:
            payload["milestone"] = self.milestone
        return payload


@dataclass
class EpicRelatedUserStory(TaigaEntity):
    epic: Optional[int] = None
    user_story: Optional[int] = None
    order: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def key(self) -> Tuple[Optional[int], Optional[int]]:
        return (self.epic, self.user_story)


# ================================================================================
# Partial Updates
# ================================================================================

@dataclass
class EntityPatch:
    """
    The changed mutable fields of one entity.

    Example:
        >>> patch = EntityPatch.of(Epic, subject="New subject")
        >>> patch.to_payload()
        {'subject': 'New subject'}
    """

    entity_type: Type[WorkItem]
    changes: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        allowed = self.entity_type.MUTABLE_FIELDS
        illegal = sorted(set(self.changes) - set(allowed))
        if illegal:
            raise ValidationError(
                f"Cannot patch {self.entity_type.__name__} fields {illegal}; "
                f"mutable fields are {list(allowed)}"
            )

    @classmethod
    def of(cls, entity_type: Type[WorkItem], **changes: Any) -> "EntityPatch":
        return cls(entity_type, dict(changes))

    @classmethod
    def diff(cls, base: WorkItem, changed: WorkItem) -> "EntityPatch":
        """
        Compare two snapshots of the same entity over its mutable fields.
        """
        if type(base) is not type(changed):
            raise ValidationError(
                f"Cannot diff {type(base).__name__} against {type(changed).__name__}"
            )
        if base.id != changed.id:
            raise ValidationError(
                f"Cannot diff snapshots of different entities ({base.id} != {changed.id})"
            )
        changes = {
            name: getattr(changed, name)
            for name in type(base).MUTABLE_FIELDS
            if getattr(base, name) != getattr(changed, name)
        }
        return cls(type(base), changes)

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def to_payload(self) -> Dict[str, Any]:
        if self.is_empty:
            raise ValidationError(
                f"Refusing to send an empty {self.entity_type.__name__} patch"
            )
        return dict(self.changes)


# ================================================================================
# Query Parameters
# ================================================================================

@dataclass
class EpicsQueryParams:
    project: Optional[int] = None
    project__slug: Optional[str] = None
    assigned_to: Optional[int] = None
    status__is_closed: Optional[bool] = None

    def to_params(self) -> Dict[str, Any]:
        return _params_of(self)


@dataclass
class UserStoryQueryParams:
    project: Optional[int] = None
    epic: Optional[int] = None
    milestone: Optional[int] = None
    status__is_closed: Optional[bool] = None

    def to_params(self) -> Dict[str, Any]:
        return _params_of(self)


def _params_of(query: Any) -> Dict[str, Any]:
    params = {}
    for f in fields(query):
        value = getattr(query, f.name)
        if value is None:
            continue
        if isinstance(value, bool):
            value = str(value).lower()
        params[f.name] = value
    return params


__all__ = [
    "Project",
    "WorkItem",
    "Epic",
    "UserStory",
    "EpicRelatedUserStory",
    "EntityPatch",
    "EpicsQueryParams",
    "UserStoryQueryParams",
]
