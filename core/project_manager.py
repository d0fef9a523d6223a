"""
项目核心管理模块 (Core Project Manager)
负责项目生命周期的统一调度：创建、删除与切换当前项目。
"""
import copy
import uuid
import logging

from core.context import WorkspaceContext
from core.schemas import Project, Scene, SaveStatus
from core.exceptions import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

FIRST_SCENE_TITLE = "Chapter 1"

class ProjectManager:
    """
    统一管理项目的生命周期。
    项目列表本身由存储订阅推送，这里只发起写入。
    """

    @staticmethod
    def create_project(context: WorkspaceContext, name: str) -> str:
        """
        创建一个只含一个空场景的新项目。

        Args:
            context (WorkspaceContext): 工作区上下文。
            name (str): 项目名称。

        Returns:
            str: 新项目 id。
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("项目名称不能为空")

        first_scene = Scene(
            id=f"scene_{uuid.uuid4().hex}",
            title=FIRST_SCENE_TITLE,
            created_at=context.clock(),
        )
        fields = {
            "name": name,
            "scenes": [first_scene.to_dict()],
            "sessions": [],
            "total_time": 0,
            "total_words": 0,
        }
        with context.lock:
            context.save_status = SaveStatus.SAVING
            try:
                project_id = context.gateway.create_project(context.collection_path, fields)
            except PersistenceError:
                context.save_status = SaveStatus.ERROR
                raise
            context.save_status = SaveStatus.SAVED
        logger.info(f"项目 '{name}' 已创建 ({project_id})。")
        return project_id

    @staticmethod
    def delete_project(context: WorkspaceContext, project_id: str):
        """删除项目；若它是当前项目，先关闭它"""
        with context.lock:
            context.save_status = SaveStatus.SAVING
            if context.current_project and context.current_project.id == project_id:
                context.set_current_project(None)
            try:
                context.gateway.delete_project(context.collection_path, project_id)
            except PersistenceError:
                context.save_status = SaveStatus.ERROR
                raise
            context.save_status = SaveStatus.SAVED

    @staticmethod
    def open_project(context: WorkspaceContext, project_id: str) -> Project:
        """从已加载的项目列表中打开一个项目"""
        with context.lock:
            for project in context.projects:
                if project.id == project_id:
                    # 当前项目与推送来的列表互不共享对象
                    context.set_current_project(copy.deepcopy(project))
                    logger.info(f"已打开项目: {project.name}")
                    return context.current_project
        raise ValidationError(f"未找到项目: {project_id}")
