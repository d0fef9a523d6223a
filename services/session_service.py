"""
写作会话服务 (Session Service)
两状态状态机 Idle / Writing：记录开始时刻与项目总字数，
结束时先落盘编辑器内容，再计算时长与字数增量并交给快照服务记账。
"""
from __future__ import annotations
import logging
from typing import Optional

from core.context import WorkspaceContext
from core.schemas import WritingSession
from core.exceptions import SessionStateError
from services.scene_service import SceneService
from services.snapshot_service import SnapshotService

logger = logging.getLogger(__name__)


class SessionService:
    @staticmethod
    def start_session(context: WorkspaceContext):
        """开始计时。字数基线取整个项目的总字数，而不只是当前场景"""
        with context.lock:
            if context.session.is_writing:
                raise SessionStateError("写作会话已在进行中")
            project = context.require_project()
            context.session.start_time = context.clock()
            context.session.initial_word_count = project.total_words
        logger.info(f"写作会话开始，基线字数 {context.session.initial_word_count}")

    @staticmethod
    def elapsed_ms(context: WorkspaceContext) -> int:
        """当前会话已进行的毫秒数，仅用于显示"""
        start = context.session.start_time
        if start is None:
            return 0
        return _ms_between(start, context.clock())

    @staticmethod
    def end_session(context: WorkspaceContext) -> Optional[WritingSession]:
        """
        结束会话并记录。

        Returns:
            WritingSession: 新追加的会话；没有项目或激活场景时视为中止，返回 None。
        """
        with context.lock:
            state = context.session
            if not state.is_writing:
                raise SessionStateError("当前没有进行中的写作会话")

            scene_id = context.active_scene_id
            if context.current_project is None or scene_id is None:
                logger.warning("没有项目或激活场景，写作会话已中止且不会记录。")
                state.clear()
                return None

            try:
                content = context.editor_content
                # 1. 先把编辑器内容落盘，拿到权威的总字数
                final_total = SceneService.update_content(context, scene_id, content)
                # 2. 时长以捕获的开始时刻为准，而不是累加计时器
                duration = _ms_between(state.start_time, context.clock())
                # 3. 净删减的会话记为 0 而不是负数
                words_written = max(0, final_total - state.initial_word_count)
                # 4. 追加会话记录
                session = SnapshotService.append_session(
                    context,
                    duration_ms=duration,
                    words_written=words_written,
                    scene_id=scene_id,
                    content=content,
                    start_time=state.start_time,
                )
            finally:
                # 5. 无论成败都回到 Idle
                state.clear()

        logger.info(f"写作会话结束: {duration} ms, {words_written} 字")
        return session


def _ms_between(start, end) -> int:
    return max(0, int((end - start).total_seconds() * 1000))
