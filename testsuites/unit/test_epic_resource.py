from dataclasses import replace

import pytest

from testsuites.api_testing.framework.errors import ConflictError, NotFoundError, ValidationError
from testsuites.api_testing.taiga import Epic, EpicsQueryParams, EntityPatch, Project, UserStory

from .conftest import PROJECT_ID


@pytest.fixture
def epic(client):
    return client.epic.create(Epic(project=PROJECT_ID, subject="Test Epic by Taigo"))


@pytest.fixture
def user_story(client):
    return client.user_story.create(UserStory(project=PROJECT_ID, subject="A US related to an Epic"))


class TestEpicCrud:

    def test_list_without_project_is_rejected_locally(self, client, fake_taiga):
        with pytest.raises(ValidationError):
            client.epic.list(EpicsQueryParams())
        with pytest.raises(ValidationError):
            client.epic.list()
        assert fake_taiga.requests_to("GET", "/epics") == []

    def test_list_of_empty_project_is_empty(self, client):
        assert client.epic.list(EpicsQueryParams(project=PROJECT_ID)) == []

    def test_list_returns_project_epics_in_order(self, client, fake_taiga):
        fake_taiga.add_project(2, "other")
        first = client.epic.create(Epic(project=PROJECT_ID, subject="first"))
        second = client.epic.create(Epic(project=PROJECT_ID, subject="second"))
        client.epic.create(Epic(project=2, subject="elsewhere"))

        epics = client.epic.list(EpicsQueryParams(project=PROJECT_ID))

        assert [e.id for e in epics] == [first.id, second.id]

    def test_create_populates_id_and_ref(self, epic):
        assert epic.id
        assert epic.ref
        assert epic.subject == "Test Epic by Taigo"
        assert epic.project == PROJECT_ID

    def test_create_rejected_by_server_raises_validation_error(self, client):
        with pytest.raises(ValidationError) as excinfo:
            client.epic.create(Epic(project=999, subject="Unknown project"))
        assert "project" in excinfo.value.detail

    def test_create_with_preset_id_never_reaches_server(self, client, fake_taiga):
        with pytest.raises(ValidationError):
            client.epic.create(Epic(id=3, project=PROJECT_ID, subject="x"))
        assert fake_taiga.requests_to("POST", "/epics") == []

    def test_get_returns_same_entity(self, client, epic):
        fetched = client.epic.get(epic.id)
        assert fetched.id == epic.id
        assert fetched.ref == epic.ref

    def test_get_by_ref_accepts_project_or_id(self, client, epic):
        by_project = client.epic.get_by_ref(epic.ref, Project(id=PROJECT_ID))
        by_id = client.epic.get_by_ref(epic.ref, PROJECT_ID)
        assert by_project.id == by_id.id == epic.id

    def test_get_by_ref_is_scoped_to_project(self, client, fake_taiga, epic):
        fake_taiga.add_project(2, "other")
        with pytest.raises(NotFoundError):
            client.epic.get_by_ref(epic.ref, 2)

    def test_get_by_ref_requires_project(self, client, epic):
        with pytest.raises(ValidationError):
            client.epic.get_by_ref(epic.ref, Project())

    def test_get_missing_epic_raises_not_found(self, client):
        with pytest.raises(NotFoundError):
            client.epic.get(123456)

    def test_edit_sends_only_patched_fields(self, client, fake_taiga, epic):
        patch = EntityPatch.of(Epic, description="Added some text here via edit")

        edited = client.epic.edit(epic.id, patch)

        assert edited.description == "Added some text here via edit"
        assert edited.subject == epic.subject
        sent = fake_taiga.requests_to("PATCH", f"/epics/{epic.id}")[-1]
        assert sent.body == {"description": "Added some text here via edit", "version": 1}

    def test_edit_sends_current_server_version(self, client, fake_taiga, epic):
        fake_taiga.epics[epic.id]["version"] = 5

        edited = client.epic.edit(epic.id, EntityPatch.of(Epic, subject="y"))

        sent = fake_taiga.requests_to("PATCH", f"/epics/{epic.id}")[-1]
        assert sent.body["version"] == 5
        assert edited.version == 6

    def test_server_rejects_patch_without_version(self, client, epic):
        with pytest.raises(ValidationError) as excinfo:
            client.http.patch(f"/epics/{epic.id}", json={"subject": "y"})
        assert "version" in excinfo.value.detail

    def test_edit_snapshot_diffs_against_base(self, client, fake_taiga, epic):
        changed = Epic.from_wire({**fake_taiga.epics[epic.id], "subject": "This is the updated Subject"})

        edited = client.epic.edit_snapshot(epic, changed)

        assert edited.subject == "This is the updated Subject"
        assert client.epic.get(epic.id).subject == "This is the updated Subject"
        sent = fake_taiga.requests_to("PATCH", f"/epics/{epic.id}")[-1]
        assert sent.body == {"subject": "This is the updated Subject", "version": 1}

    def test_edit_snapshot_from_stale_base_still_applies(self, client, epic):
        client.epic.edit(epic.id, EntityPatch.of(Epic, description="someone else"))
        changed = replace(epic, subject="late writer")

        edited = client.epic.edit_snapshot(epic, changed)

        assert edited.subject == "late writer"
        assert edited.description == "someone else"

    def test_edit_rejects_foreign_patch(self, client, epic):
        with pytest.raises(ValidationError):
            client.epic.edit(epic.id, EntityPatch.of(UserStory, subject="x"))

    def test_last_write_wins(self, client, epic):
        client.epic.edit(epic.id, EntityPatch.of(Epic, subject="first writer"))
        client.epic.edit(epic.id, EntityPatch.of(Epic, subject="second writer"))
        assert client.epic.get(epic.id).subject == "second writer"

    def test_delete_then_get_raises_not_found(self, client, epic):
        client.epic.delete(epic.id)
        with pytest.raises(NotFoundError):
            client.epic.get(epic.id)

    def test_second_delete_raises_not_found(self, client, epic):
        client.epic.delete(epic.id)
        with pytest.raises(NotFoundError):
            client.epic.delete(epic.id)


class TestRelatedUserStories:

    def test_relate_and_list(self, client, epic, user_story):
        relation = client.epic.create_related_user_story(epic.id, user_story.id)

        related = client.epic.list_related_user_stories(epic.id)

        assert relation.key == (epic.id, user_story.id)
        assert len(related) == 1
        assert related[0].id == user_story.id
        assert isinstance(related[0], UserStory)

    def test_epic_without_relations_lists_nothing(self, client, epic):
        assert client.epic.list_related_user_stories(epic.id) == []

    def test_relation_is_not_implied_by_project(self, client, epic, user_story):
        assert user_story.project == epic.project
        assert client.epic.list_related_user_stories(epic.id) == []

    def test_duplicate_relation_raises_conflict(self, client, epic, user_story):
        client.epic.create_related_user_story(epic.id, user_story.id)
        with pytest.raises(ConflictError):
            client.epic.create_related_user_story(epic.id, user_story.id)
        assert len(client.epic.list_related_user_stories(epic.id)) == 1

    def test_relating_missing_user_story_raises_validation_error(self, client, epic):
        with pytest.raises(ValidationError) as excinfo:
            client.epic.create_related_user_story(epic.id, 987654)
        assert not isinstance(excinfo.value, ConflictError)

    def test_relating_to_missing_epic_raises_validation_error(self, client, user_story):
        with pytest.raises(ValidationError) as excinfo:
            client.epic.create_related_user_story(987654, user_story.id)
        assert excinfo.value.status_code == 404

    def test_list_relations_get_and_delete(self, client, epic, user_story):
        client.epic.create_related_user_story(epic.id, user_story.id)

        relations = client.epic.list_relations(epic.id)
        assert [r.key for r in relations] == [(epic.id, user_story.id)]
        assert client.epic.get_related_user_story(epic.id, user_story.id).user_story == user_story.id

        client.epic.delete_related_user_story(epic.id, user_story.id)

        assert client.epic.list_related_user_stories(epic.id) == []
        with pytest.raises(NotFoundError):
            client.epic.get_related_user_story(epic.id, user_story.id)
