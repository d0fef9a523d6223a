"""
场景业务服务 (Scene Service)
负责当前项目中有序场景列表的创建、重命名、重排、删除与正文更新。
所有写操作都遵循乐观更新：先改内存，再持久化，失败即回滚。
"""
from __future__ import annotations
import uuid
import logging
from typing import List, Sequence, Union

from core.context import WorkspaceContext
from core.schemas import Scene
from core.word_counter import count_words
from core.exceptions import (
    InvalidReorderError, LastSceneDeletionError, SceneNotFoundError,
)
from services.stats_service import StatsService

logger = logging.getLogger(__name__)


class SceneService:
    @staticmethod
    def create_scene(context: WorkspaceContext, title: str) -> Scene:
        """在场景列表末尾追加一个空场景，并将其设为激活场景"""
        scene = Scene(
            id=f"scene_{uuid.uuid4().hex}",
            title=title,
            created_at=context.clock(),
        )
        with context.transaction("创建场景") as project:
            project.scenes.append(scene)
            context.set_active_scene(scene.id)
            context.persist(project, ["scenes"])
        logger.info(f"场景已创建: {scene.title} ({scene.id})")
        return scene

    @staticmethod
    def rename_scene(context: WorkspaceContext, scene_id: str, new_title: str) -> bool:
        """
        重命名场景。标题去除空白后为空时不做任何事。

        Returns:
            bool: 是否发生了修改。
        """
        new_title = (new_title or "").strip()
        project = context.require_project()
        if not new_title:
            return False
        if project.find_scene(scene_id) is None:
            raise SceneNotFoundError(scene_id)

        with context.transaction("重命名场景") as project:
            project.find_scene(scene_id).title = new_title
            context.persist(project, ["scenes"])
        return True

    @staticmethod
    def update_content(context: WorkspaceContext, scene_id: str, content: str) -> int:
        """
        更新场景正文，重新计算字数与项目总字数。

        Returns:
            int: 更新后的项目总字数；会话字数统计依赖这个返回值。
        """
        content = content or ""
        with context.lock:
            project = context.require_project()
            scene = project.find_scene(scene_id)
            if scene is None:
                raise SceneNotFoundError(scene_id)
            if scene.content == content and scene.word_count == count_words(content):
                # 内容未变，无需写入
                return project.total_words

            with context.transaction("更新场景内容") as project:
                scene = project.find_scene(scene_id)
                scene.content = content
                scene.word_count = count_words(content)
                total_words = StatsService.recalculate_total_words(project)
                context.persist(project, ["scenes", "total_words"])
        logger.debug(f"场景 {scene_id} 已保存，项目总字数 {total_words}")
        return total_words

    @staticmethod
    def reorder(context: WorkspaceContext, new_order: Sequence[Union[str, Scene]]) -> List[Scene]:
        """
        按给定顺序重排场景。只接受现有场景 id 的一个排列，
        场景对象取自当前项目，因此重排不会改动任何正文或字数。
        """
        ids = [s.id if isinstance(s, Scene) else s for s in new_order]
        project = context.require_project()
        if len(ids) != len(project.scenes) or set(ids) != set(project.scene_ids()):
            raise InvalidReorderError("新顺序必须是现有场景的一个排列")

        with context.transaction("重排场景") as project:
            by_id = {s.id: s for s in project.scenes}
            project.scenes = [by_id[i] for i in ids]
            context.persist(project, ["scenes"])
        return project.scenes

    @staticmethod
    def move_scene(context: WorkspaceContext, source_index: int, destination_index: int) -> List[Scene]:
        """拖拽排序：把 source_index 处的场景移动到 destination_index"""
        project = context.require_project()
        ids = project.scene_ids()
        if not (0 <= source_index < len(ids) and 0 <= destination_index < len(ids)):
            raise InvalidReorderError(f"位置越界: {source_index} -> {destination_index}")
        moved = ids.pop(source_index)
        ids.insert(destination_index, moved)
        return SceneService.reorder(context, ids)

    @staticmethod
    def delete_scene(context: WorkspaceContext, scene_id: str):
        """
        删除场景并重算总字数。
        若删除的是激活场景，改为激活剩余的第一个场景。
        项目中最后一个场景不允许删除。
        """
        project = context.require_project()
        if project.find_scene(scene_id) is None:
            raise SceneNotFoundError(scene_id)
        if len(project.scenes) <= 1:
            raise LastSceneDeletionError("不能删除最后一个场景")

        with context.transaction("删除场景") as project:
            project.scenes = [s for s in project.scenes if s.id != scene_id]
            StatsService.recalculate_total_words(project)
            if context.active_scene_id == scene_id:
                context.set_active_scene(project.scenes[0].id)
            context.persist(project, ["scenes", "total_words"])
        logger.info(f"场景已删除: {scene_id}")
