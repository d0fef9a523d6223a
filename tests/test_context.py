from datetime import datetime

import pytest

from core.context import WorkspaceContext
from core.exceptions import NoActiveProjectError, PersistenceError, ValidationError
from core.project_manager import ProjectManager
from core.schemas import Project, SaveStatus


def test_collection_path_is_namespaced(context):
    assert context.collection_path == "/artifacts/test-app/users/user-1/projects"


def test_collection_path_requires_user(gateway):
    with pytest.raises(NoActiveProjectError):
        WorkspaceContext(gateway).collection_path


def test_initialize_loads_projects(gateway, clock):
    other = WorkspaceContext(gateway, clock=clock)
    other.initialize("user-1", "test-app")
    ProjectManager.create_project(other, "Novel")

    fresh = WorkspaceContext(gateway, clock=clock)
    fresh.initialize("user-1", "test-app")

    assert not fresh.is_loading
    assert [p.name for p in fresh.projects] == ["Novel"]


def test_project_list_is_most_recent_first(context):
    context._on_projects_changed([
        Project(id="old", name="Old", created_at=datetime(2024, 1, 1)),
        Project(id="new", name="New", created_at=datetime(2024, 1, 1), last_modified=datetime(2024, 2, 1)),
        Project(id="mid", name="Mid", created_at=datetime(2024, 1, 15)),
    ])
    assert [p.id for p in context.projects] == ["new", "mid", "old"]


def test_remote_delete_clears_current_project(context, project):
    context._on_projects_changed([])
    assert context.current_project is None
    assert context.active_scene_id is None


def test_create_project_rejects_blank_name(context):
    with pytest.raises(ValidationError):
        ProjectManager.create_project(context, "   ")


def test_transaction_rolls_back_on_persistence_failure(context, project):
    with pytest.raises(PersistenceError):
        with context.transaction("test") as current:
            current.name = "Renamed"
            raise PersistenceError("boom")

    assert context.current_project.name == "Novel"
    assert context.save_status == SaveStatus.ERROR


def test_transaction_marks_saved(context, project):
    with context.transaction("test") as current:
        context.persist(current, ["name"])
    assert context.save_status == SaveStatus.SAVED


def test_teardown_clears_state(context, project):
    context.teardown()
    assert context.current_project is None
    assert context.projects == []
    assert context.user_id is None
