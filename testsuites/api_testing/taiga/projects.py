"""Project lookup, used to resolve the project under test."""

from __future__ import annotations

from ..framework.http_client import HttpClient
from .models import Project


class ProjectResource:
    endpoint = "/projects"

    def __init__(self, http: HttpClient) -> None:
        self.http = http

    def get(self, project_id: int) -> Project:
        return Project.from_wire(self.http.get(f"{self.endpoint}/{project_id}"))

    def get_by_slug(self, slug: str) -> Project:
        payload = self.http.get(f"{self.endpoint}/by_slug", params={"slug": slug})
        return Project.from_wire(payload)


__all__ = [
    "ProjectResource",
]
