"""
快照业务服务 (Snapshot Service)
会话结束时保存场景内容的不可变副本，并支持把场景还原到某个历史快照。
"""
from __future__ import annotations
import uuid
import logging
from datetime import datetime
from typing import Optional

from core.context import WorkspaceContext
from core.schemas import SceneSnapshot, WritingSession
from core.exceptions import SceneNotFoundError
from services.scene_service import SceneService
from services.stats_service import StatsService

logger = logging.getLogger(__name__)


class SnapshotService:
    @staticmethod
    def append_session(
        context: WorkspaceContext,
        duration_ms: int,
        words_written: int,
        scene_id: str,
        content: str,
        start_time: Optional[datetime] = None,
    ) -> WritingSession:
        """
        构造会话记录并追加到项目历史，同时累加总时长。
        start_time 为会话真正开始的时刻；缺省时才使用提交时刻。
        """
        session = WritingSession(
            id=f"session_{uuid.uuid4().hex}",
            start_time=start_time or context.clock(),
            duration=duration_ms,
            words_written=words_written,
            snapshot=SceneSnapshot(scene_id=scene_id, content=content),
        )
        with context.transaction("追加写作会话") as project:
            project.sessions.append(session)
            StatsService.add_session_time(project, duration_ms)
            context.persist(project, ["sessions", "total_time"])
        return session

    @staticmethod
    def revert(context: WorkspaceContext, session: WritingSession) -> int:
        """
        用会话快照覆盖场景当前内容。这是破坏性操作，调用方必须事先确认。
        会话历史保持不变，同一快照可以反复还原。

        Returns:
            int: 还原后的项目总字数。
        """
        scene_id = session.snapshot.scene_id
        content = session.snapshot.content
        with context.lock:
            project = context.require_project()
            if project.find_scene(scene_id) is None:
                logger.warning(f"还原失败，场景已不存在: {scene_id}")
                raise SceneNotFoundError(scene_id)

            backup_active = context.active_scene_id
            backup_editor = context.editor_content
            context.editor_content = content
            context.active_scene_id = scene_id
            try:
                total_words = SceneService.update_content(context, scene_id, content)
            except Exception:
                context.active_scene_id = backup_active
                context.editor_content = backup_editor
                raise
        logger.info(f"场景 {scene_id} 已还原到会话 {session.id} 的快照。")
        return total_words
