from datetime import datetime

import pytest

from core.schemas import Project, Scene, SceneSnapshot, WritingSession
from services.stats_service import StatsService, format_time


def _session(session_id, scene_id, start, duration, words):
    return WritingSession(
        id=session_id,
        start_time=start,
        duration=duration,
        words_written=words,
        snapshot=SceneSnapshot(scene_id=scene_id, content=""),
    )


@pytest.fixture
def sample_project():
    sessions = [
        _session("s1", "a", datetime(2024, 3, 1, 9), 60000, 100),
        _session("s2", "b", datetime(2024, 3, 1, 14), 120000, 50),
        _session("s3", "a", datetime(2024, 3, 2, 8), 30000, 0),
    ]
    return Project(
        id="p1",
        name="Novel",
        scenes=[Scene(id="a", title="A", word_count=120), Scene(id="b", title="B", word_count=30)],
        sessions=sessions,
        total_time=210000,
        total_words=150,
    )


@pytest.mark.parametrize("ms, expected", [
    (0, "0:00"),
    (999, "0:00"),
    (61000, "1:01"),
    (3599000, "59:59"),
    (3600000, "1:00:00"),
    (3723000, "1:02:03"),
])
def test_format_time(ms, expected):
    assert format_time(ms) == expected


def test_recalculate_total_words(sample_project):
    sample_project.scenes[1].word_count = 80
    assert StatsService.recalculate_total_words(sample_project) == 200
    assert sample_project.total_words == 200


def test_totals_consistent(sample_project):
    assert StatsService.totals_consistent(sample_project)
    sample_project.total_time += 1
    assert not StatsService.totals_consistent(sample_project)


def test_scene_history_is_newest_first(sample_project):
    history = StatsService.sessions_for_scene(sample_project, "a")
    assert [s.id for s in history] == ["s3", "s1"]
    assert StatsService.time_on_scene(sample_project, "a") == 90000
    assert StatsService.session_count_for_scene(sample_project, "a") == 2
    assert StatsService.sessions_for_scene(sample_project, "missing") == []


def test_project_summary(sample_project):
    assert StatsService.project_summary(sample_project) == {
        "total_words": 150,
        "total_scenes": 2,
        "total_time": "3:30",
        "total_sessions": 3,
    }


def test_daily_progress(sample_project):
    daily = StatsService.daily_progress(sample_project)

    assert list(daily.columns) == ["date", "sessions", "words_written", "minutes"]
    assert len(daily) == 2
    first = daily.iloc[0]
    assert first["date"] == datetime(2024, 3, 1).date()
    assert first["sessions"] == 2
    assert first["words_written"] == 150
    assert first["minutes"] == 3.0


def test_daily_progress_without_sessions():
    daily = StatsService.daily_progress(Project(id="p", name="Empty"))
    assert daily.empty


def test_sessions_without_start_time_are_tolerated(sample_project):
    legacy = WritingSession.from_dict({
        "id": "legacy",
        "start_time": None,
        "duration": 1000,
        "words_written": 5,
        "snapshot": {"scene_id": "a", "content": ""},
    })
    sample_project.sessions.append(legacy)

    history = StatsService.sessions_for_scene(sample_project, "a")
    assert [s.id for s in history] == ["s3", "s1", "legacy"]

    daily = StatsService.daily_progress(sample_project)
    assert len(daily) == 2
    assert daily["sessions"].sum() == 3


def test_daily_progress_only_undated_sessions():
    project = Project(id="p", name="Legacy", sessions=[_session("old", "a", None, 1000, 5)])
    assert StatsService.daily_progress(project).empty
