import pytest

from core.exceptions import PersistenceError, SceneNotFoundError
from services.scene_service import SceneService
from services.session_service import SessionService
from services.snapshot_service import SnapshotService


def _write_session(context, clock, content, minutes=1):
    SessionService.start_session(context)
    clock.advance(minutes=minutes)
    context.editor_content = content
    return SessionService.end_session(context)


def test_append_session_updates_history_and_time(context, project, clock):
    scene_id = project.scenes[0].id
    session = SnapshotService.append_session(context, 1500, 10, scene_id, "<p>draft</p>", start_time=clock())

    current = context.current_project
    assert current.sessions == [session]
    assert current.total_time == 1500
    assert session.snapshot.scene_id == scene_id
    assert session.start_time == clock()


def test_revert_restores_content_at_session_end(context, project, clock, gateway):
    scene_id = project.scenes[0].id
    SceneService.update_content(context, scene_id, "first version")
    context.set_active_scene(scene_id)

    session = _write_session(context, clock, "second version with more words")
    SceneService.update_content(context, scene_id, "third")

    total = SnapshotService.revert(context, session)

    scene = context.current_project.find_scene(scene_id)
    assert scene.content == "second version with more words"
    assert scene.word_count == 5
    assert total == 5
    assert context.current_project.total_words == 5
    stored = gateway.load_projects(context.collection_path)[0]
    assert stored.scenes[0].content == "second version with more words"


def test_revert_activates_scene_and_loads_editor(context, project, clock):
    first = project.scenes[0]
    session = _write_session(context, clock, "snapshot text")
    second = SceneService.create_scene(context, "Chapter 2")
    assert context.active_scene_id == second.id

    SnapshotService.revert(context, session)

    assert context.active_scene_id == first.id
    assert context.editor_content == "snapshot text"


def test_revert_keeps_history_and_can_repeat(context, project, clock):
    scene_id = project.scenes[0].id
    session = _write_session(context, clock, "keep me")

    SnapshotService.revert(context, session)
    SceneService.update_content(context, scene_id, "changed again")
    SnapshotService.revert(context, session)

    current = context.current_project
    assert current.find_scene(scene_id).content == "keep me"
    assert current.sessions == [session]


def test_revert_into_deleted_scene_fails_without_change(context, project, clock, gateway):
    first = project.scenes[0]
    session = _write_session(context, clock, "orphaned snapshot")
    second = SceneService.create_scene(context, "Chapter 2")
    SceneService.update_content(context, second.id, "survivor")
    SceneService.delete_scene(context, first.id)
    writes = len(gateway.writes)

    with pytest.raises(SceneNotFoundError):
        SnapshotService.revert(context, session)

    current = context.current_project
    assert current.scene_ids() == [second.id]
    assert current.find_scene(second.id).content == "survivor"
    assert context.active_scene_id == second.id
    assert len(gateway.writes) == writes


def test_revert_failure_restores_editor_state(context, project, clock, gateway):
    first = project.scenes[0]
    session = _write_session(context, clock, "old words")
    second = SceneService.create_scene(context, "Chapter 2")
    context.editor_content = "unsaved typing"
    SceneService.update_content(context, first.id, "new words")
    gateway.fail_writes = True

    with pytest.raises(PersistenceError):
        SnapshotService.revert(context, session)

    assert context.active_scene_id == second.id
    assert context.editor_content == "unsaved typing"
    assert context.current_project.find_scene(first.id).content == "new words"
