from datetime import datetime, timedelta

import pytest

from core.context import WorkspaceContext
from core.exceptions import PersistenceError
from core.project_manager import ProjectManager
from infra.storage.sql_db import SqlProjectGateway
from services.workflow import EditorWorkflow


class FakeClock:
    def __init__(self, start=datetime(2024, 3, 1, 9, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeTimer:
    """threading.Timer 的替身，只有调用 fire() 才会执行"""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.cancelled or self.fired:
            return
        self.fired = True
        self.function(*self.args, **self.kwargs)


class TimerRecorder:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    def live(self):
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def fire_all(self):
        for timer in self.live():
            timer.fire()


class FlakyGateway(SqlProjectGateway):
    """可以按需让写入失败的网关，并记录每次写入的字段"""

    def __init__(self, database_url):
        super().__init__(database_url)
        self.fail_writes = False
        self.fail_fields = set()
        self.writes = []

    def replace_project_fields(self, collection_path, project_id, fields):
        if self.fail_writes or self.fail_fields & set(fields):
            raise PersistenceError("backend unavailable")
        self.writes.append(sorted(fields))
        super().replace_project_fields(collection_path, project_id, fields)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return TimerRecorder()


@pytest.fixture
def gateway(tmp_path):
    return FlakyGateway(f"sqlite:///{tmp_path / 'content.db'}")


@pytest.fixture
def context(gateway, clock):
    ctx = WorkspaceContext(gateway, clock=clock)
    ctx.initialize("user-1", "test-app")
    yield ctx
    ctx.teardown()


@pytest.fixture
def project(context):
    project_id = ProjectManager.create_project(context, "Novel")
    return ProjectManager.open_project(context, project_id)


@pytest.fixture
def workflow(context, project, timers):
    return EditorWorkflow(context, autosave_delay=1.5, status_reset_delay=2.0, timer_factory=timers)
