"""
In-memory stand-in for the Taiga REST API, mounted into httpx through
``httpx.MockTransport`` so the client runs end to end without a server.

Only the endpoints the client uses are modelled. Refs are shared between
epics and user stories of one project, as on a real Taiga.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx


API_PREFIX = "/api/v1"

USERNAME = "taigo"
PASSWORD = "s3cret"
AUTH_TOKEN = "fake-auth-token"

MUTABLE = ("subject", "description")


@dataclass
class RecordedRequest:
    method: str
    path: str
    params: Dict[str, str]
    body: Any
    headers: Dict[str, str]


@dataclass
class FakeTaiga:
    projects: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    epics: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    user_stories: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    relations: List[Dict[str, int]] = field(default_factory=list)
    requests: List[RecordedRequest] = field(default_factory=list)
    login_count: int = 0
    require_auth: bool = True

    def __post_init__(self) -> None:
        self._next_id = 100
        self._next_ref: Dict[int, int] = {}
        self._routes: List[Tuple[str, re.Pattern, Callable]] = [
            ("POST", re.compile(r"^/auth$"), self._login),
            ("GET", re.compile(r"^/projects/by_slug$"), self._project_by_slug),
            ("GET", re.compile(r"^/projects/(\d+)$"), self._get_project),
            ("GET", re.compile(r"^/epics/(\d+)/related_userstories$"), self._list_relations),
            ("POST", re.compile(r"^/epics/(\d+)/related_userstories$"), self._create_relation),
            ("GET", re.compile(r"^/epics/(\d+)/related_userstories/(\d+)$"), self._get_relation),
            ("DELETE", re.compile(r"^/epics/(\d+)/related_userstories/(\d+)$"), self._delete_relation),
        ]
        for name, store in (("epics", self.epics), ("userstories", self.user_stories)):
            self._routes += [
                ("GET", re.compile(rf"^/{name}$"), self._lister(store)),
                ("POST", re.compile(rf"^/{name}$"), self._creator(store)),
                ("GET", re.compile(rf"^/{name}/by_ref$"), self._by_ref(store)),
                ("GET", re.compile(rf"^/{name}/(\d+)$"), self._getter(store)),
                ("PATCH", re.compile(rf"^/{name}/(\d+)$"), self._patcher(store)),
                ("DELETE", re.compile(rf"^/{name}/(\d+)$"), self._deleter(store)),
            ]

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def add_project(self, project_id: int, slug: str, name: Optional[str] = None) -> Dict[str, Any]:
        project = {"id": project_id, "slug": slug, "name": name or slug.title()}
        self.projects[project_id] = project
        self._next_ref.setdefault(project_id, 1)
        return project

    def requests_to(self, method: str, path: str) -> List[RecordedRequest]:
        return [r for r in self.requests if r.method == method and r.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        params = dict(request.url.params)
        body = json.loads(request.content) if request.content else None
        self.requests.append(
            RecordedRequest(request.method, path, params, body, dict(request.headers))
        )

        if self.require_auth and path != "/auth":
            if request.headers.get("Authorization") != f"Bearer {AUTH_TOKEN}":
                return _error(401, "Authentication credentials were not provided.")

        for method, pattern, handler in self._routes:
            match = pattern.match(path)
            if method == request.method and match:
                return handler(*[int(g) for g in match.groups()], params=params, body=body)
        return _error(404, "No route")

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    # ------------------------------------------------------------------
    # Auth & projects
    # ------------------------------------------------------------------

    def _login(self, params, body) -> httpx.Response:
        if body.get("type") != "normal" or body.get("username") != USERNAME or body.get("password") != PASSWORD:
            return _error(401, "Username or password does not matches user.")
        self.login_count += 1
        return httpx.Response(200, json={
            "id": 1, "username": USERNAME, "auth_token": AUTH_TOKEN, "refresh": "fake-refresh",
        })

    def _get_project(self, project_id, params, body) -> httpx.Response:
        if project_id not in self.projects:
            return _error(404, "No Project matches the given query.")
        return httpx.Response(200, json=self.projects[project_id])

    def _project_by_slug(self, params, body) -> httpx.Response:
        for project in self.projects.values():
            if project["slug"] == params.get("slug"):
                return httpx.Response(200, json=project)
        return _error(404, "No Project matches the given query.")

    # ------------------------------------------------------------------
    # Work items
    # ------------------------------------------------------------------

    def _lister(self, store):
        def handler(params, body) -> httpx.Response:
            items = list(store.values())
            if "project" in params:
                items = [i for i in items if i["project"] == int(params["project"])]
            if "epic" in params:
                linked = [r["user_story"] for r in self.relations if r["epic"] == int(params["epic"])]
                items = sorted(
                    (i for i in items if i["id"] in linked), key=lambda i: linked.index(i["id"])
                )
            return httpx.Response(200, json=items)
        return handler

    def _creator(self, store):
        def handler(params, body) -> httpx.Response:
            errors = {}
            if not body.get("subject"):
                errors["subject"] = ["This field is required."]
            if body.get("project") not in self.projects:
                errors["project"] = ["Invalid pk - object does not exist."]
            if errors:
                return httpx.Response(400, json=errors)
            project_id = body["project"]
            ref = self._next_ref[project_id]
            self._next_ref[project_id] = ref + 1
            item = {
                "id": self._new_id(),
                "ref": ref,
                "project": project_id,
                "subject": body["subject"],
                "description": body.get("description", ""),
                "version": 1,
                "tags": body.get("tags", []),
                "is_closed": False,
                "owner": 1,
            }
            store[item["id"]] = item
            return httpx.Response(201, json=item)
        return handler

    def _by_ref(self, store):
        def handler(params, body) -> httpx.Response:
            for item in store.values():
                if item["ref"] == int(params.get("ref", 0)) and item["project"] == int(params.get("project", 0)):
                    return httpx.Response(200, json=item)
            return _error(404, "No matches the given query.")
        return handler

    def _getter(self, store):
        def handler(item_id, params, body) -> httpx.Response:
            if item_id not in store:
                return _error(404, "No matches the given query.")
            return httpx.Response(200, json=store[item_id])
        return handler

    def _patcher(self, store):
        def handler(item_id, params, body) -> httpx.Response:
            if item_id not in store:
                return _error(404, "No matches the given query.")
            item = store[item_id]
            if "version" not in body:
                return httpx.Response(400, json={"version": ["The version parameter is not valid"]})
            if body["version"] != item["version"]:
                return httpx.Response(400, json={"version": ["The version doesn't match with the current one"]})
            for key in MUTABLE:
                if key in body:
                    item[key] = body[key]
            item["version"] += 1
            return httpx.Response(200, json=item)
        return handler

    def _deleter(self, store):
        def handler(item_id, params, body) -> httpx.Response:
            if item_id not in store:
                return _error(404, "No matches the given query.")
            del store[item_id]
            key = "epic" if store is self.epics else "user_story"
            self.relations = [r for r in self.relations if r[key] != item_id]
            return httpx.Response(204)
        return handler

    # ------------------------------------------------------------------
    # Epic <-> user story relations
    # ------------------------------------------------------------------

    def _list_relations(self, epic_id, params, body) -> httpx.Response:
        if epic_id not in self.epics:
            return _error(404, "No Epic matches the given query.")
        return httpx.Response(200, json=[r for r in self.relations if r["epic"] == epic_id])

    def _create_relation(self, epic_id, params, body) -> httpx.Response:
        if epic_id not in self.epics:
            return _error(404, "No Epic matches the given query.")
        us_id = body.get("user_story")
        if us_id not in self.user_stories:
            return httpx.Response(400, json={"user_story": ["Invalid pk - object does not exist."]})
        if any(r["epic"] == epic_id and r["user_story"] == us_id for r in self.relations):
            return httpx.Response(400, json={
                "non_field_errors": ["The fields user_story, epic must make a unique set."]
            })
        order = sum(1 for r in self.relations if r["epic"] == epic_id) + 1
        relation = {"epic": epic_id, "user_story": us_id, "order": order}
        self.relations.append(relation)
        return httpx.Response(201, json=relation)

    def _get_relation(self, epic_id, us_id, params, body) -> httpx.Response:
        for r in self.relations:
            if r["epic"] == epic_id and r["user_story"] == us_id:
                return httpx.Response(200, json=r)
        return _error(404, "No RelatedUserStory matches the given query.")

    def _delete_relation(self, epic_id, us_id, params, body) -> httpx.Response:
        before = len(self.relations)
        self.relations = [
            r for r in self.relations if not (r["epic"] == epic_id and r["user_story"] == us_id)
        ]
        if len(self.relations) == before:
            return _error(404, "No RelatedUserStory matches the given query.")
        return httpx.Response(204)


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"_error_message": message, "_error_type": "taiga.base.exceptions"})
