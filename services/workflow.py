"""
编辑器工作流协调中心 (Editor Workflow)
系统的 Facade 层，负责把编辑器界面的动作分发到具体的 Service，
并协调自动保存与写作会话之间的先后顺序。
"""
from __future__ import annotations
import logging
import threading
from typing import Callable, List, Optional

from core.context import WorkspaceContext
from core.project_manager import ProjectManager
from core.schemas import Project, SaveStatus, Scene, WritingSession
from core.exceptions import PersistenceError, SceneNotFoundError
from services.autosave import AutosaveScheduler
from services.scene_service import SceneService
from services.session_service import SessionService
from services.snapshot_service import SnapshotService
from services.stats_service import StatsService

logger = logging.getLogger(__name__)


class EditorWorkflow:
    def __init__(
        self,
        context: WorkspaceContext,
        autosave_delay: float = 1.5,
        status_reset_delay: float = 2.0,
        timer_factory=threading.Timer,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        """
        Args:
            context: 工作区上下文。
            autosave_delay: 编辑器静默多少秒后自动保存。
            status_reset_delay: 保存成功后多少秒把状态从 saved 恢复为 idle。
            timer_factory: 与 threading.Timer 同签名的工厂。
            on_error: 后台自动保存失败时的回调（没有调用方可以接收异常）。
        """
        self.context = context
        self.status_reset_delay = status_reset_delay
        self.timer_factory = timer_factory
        self.on_error = on_error
        self.autosave = AutosaveScheduler(
            self._autosave, delay=autosave_delay, timer_factory=timer_factory, run_lock=context.lock
        )

    # --- 项目 ---

    def create_project(self, name: str) -> str:
        return ProjectManager.create_project(self.context, name)

    def open_project(self, project_id: str) -> Project:
        if self.context.current_project is not None:
            self.leave_project()
        return ProjectManager.open_project(self.context, project_id)

    def delete_project(self, project_id: str):
        current = self.context.current_project
        if current is not None and current.id == project_id:
            self.leave_project()
        ProjectManager.delete_project(self.context, project_id)

    def leave_project(self):
        """
        离开当前项目：进行中的会话先结束，待写入的自动保存先落盘，最后关闭项目。
        """
        try:
            if self.context.session.is_writing:
                self.end_session()
        finally:
            try:
                self.autosave.flush()
            finally:
                self.context.set_current_project(None)
                self.autosave.forget()

    def close(self):
        """关闭工作区"""
        if self.context.current_project is not None:
            self.leave_project()
        self.autosave.shutdown()
        self.context.teardown()

    # --- 场景 ---

    def select_scene(self, scene_id: str):
        project = self.context.require_project()
        if project.find_scene(scene_id) is None:
            raise SceneNotFoundError(scene_id)
        outgoing_id = self.context.active_scene_id
        if outgoing_id is not None and outgoing_id != scene_id:
            self._save_outgoing_scene(outgoing_id)
        self.context.set_active_scene(scene_id)

    def _save_outgoing_scene(self, scene_id: str):
        """切换场景前把编辑器缓冲区落盘，否则载入新场景会覆盖未保存的内容"""
        self.autosave.flush(scene_id)
        with self.context.lock:
            project = self.context.require_project()
            scene = project.find_scene(scene_id)
            # 会话期间没有自动保存，缓冲区只能在这里写回
            if scene is not None and scene.content != self.context.editor_content:
                SceneService.update_content(self.context, scene_id, self.context.editor_content)

    def create_scene(self, title: str) -> Scene:
        return SceneService.create_scene(self.context, title)

    def rename_scene(self, scene_id: str, new_title: str) -> bool:
        return SceneService.rename_scene(self.context, scene_id, new_title)

    def reorder_scenes(self, new_order) -> List[Scene]:
        return SceneService.reorder(self.context, new_order)

    def move_scene(self, source_index: int, destination_index: int) -> List[Scene]:
        return SceneService.move_scene(self.context, source_index, destination_index)

    def delete_scene(self, scene_id: str):
        # 先落盘，删除失败回滚时不会丢字
        self.autosave.flush(scene_id)
        SceneService.delete_scene(self.context, scene_id)
        self.autosave.forget(scene_id)

    # --- 编辑器 ---

    def on_editor_change(self, content: str):
        """编辑器内容变化。写作会话进行中不排自动保存，结束会话时统一落盘"""
        with self.context.lock:
            self.context.editor_content = content
            project = self.context.current_project
            scene_id = self.context.active_scene_id
            if project is None or scene_id is None or self.context.session.is_writing:
                return
            project_id = project.id
        self.autosave.schedule(project_id, scene_id, content)

    def save_now(self):
        self.autosave.flush()

    # --- 写作会话 ---

    def start_session(self):
        # 清空待写入任务，避免与会话结束时的落盘竞争
        self.autosave.flush()
        SessionService.start_session(self.context)

    def end_session(self) -> Optional[WritingSession]:
        self.autosave.flush()
        return SessionService.end_session(self.context)

    def elapsed_ms(self) -> int:
        return SessionService.elapsed_ms(self.context)

    @property
    def is_writing(self) -> bool:
        return self.context.session.is_writing

    # --- 版本还原 ---

    def revert_to_snapshot(self, session: WritingSession, confirm: Callable[[WritingSession], bool]) -> bool:
        """
        把场景还原为会话快照。confirm 返回 False 时不做任何事。

        Returns:
            bool: 是否执行了还原。
        """
        if not confirm(session):
            logger.info(f"用户取消了还原: {session.id}")
            return False
        # 目标场景尚未落盘的内容会被快照覆盖，直接作废
        self.autosave.cancel(session.snapshot.scene_id)
        self.autosave.flush()
        SnapshotService.revert(self.context, session)
        return True

    # --- 统计 ---

    def scene_history(self, scene_id: Optional[str] = None) -> List[WritingSession]:
        project = self.context.require_project()
        return StatsService.sessions_for_scene(project, scene_id or self.context.active_scene_id)

    def statistics(self) -> dict:
        project = self.context.require_project()
        stats = {"project": StatsService.project_summary(project)}
        scene = project.find_scene(self.context.active_scene_id) if self.context.active_scene_id else None
        if scene is not None:
            stats["active_scene"] = {
                "title": scene.title,
                "word_count": scene.word_count,
                "time_spent": StatsService.time_on_scene(project, scene.id),
                "sessions": StatsService.session_count_for_scene(project, scene.id),
            }
        return stats

    # --- 后台任务 ---

    def _autosave(self, project_id: str, scene_id: str, content: str):
        with self.context.lock:
            project = self.context.current_project
            if project is None or project.id != project_id:
                logger.info(f"项目已切换，忽略场景 {scene_id} 的延迟保存。")
                return
            if project.find_scene(scene_id) is None:
                logger.info(f"场景 {scene_id} 已不存在，忽略延迟保存。")
                return
            try:
                SceneService.update_content(self.context, scene_id, content)
            except PersistenceError as e:
                logger.error(f"自动保存失败: {e}")
                if self.on_error:
                    self.on_error(e)
                return
        self._schedule_status_reset()

    def _schedule_status_reset(self):
        timer = self.timer_factory(self.status_reset_delay, self._reset_saved_status)
        if hasattr(timer, "daemon"):
            timer.daemon = True
        timer.start()

    def _reset_saved_status(self):
        with self.context.lock:
            if self.context.save_status == SaveStatus.SAVED:
                self.context.save_status = SaveStatus.IDLE
