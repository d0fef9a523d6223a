"""
工作区运行时上下文 (Workspace Context)
取代全局单例：持有当前用户、项目列表、当前项目、激活场景、编辑器缓冲区与保存状态。
由顶层应用创建，通过引用传给需要它的服务，并具有显式的 initialize / teardown 生命周期。
"""
from __future__ import annotations
import copy
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from core.schemas import Project, SaveStatus, SessionState
from core.exceptions import NoActiveProjectError, PersistenceError
from infra.storage.base import ProjectGateway

logger = logging.getLogger(__name__)

DEFAULT_APP_ID = "default-app-id"


class WorkspaceContext:
    def __init__(self, gateway: ProjectGateway, clock: Callable[[], datetime] = datetime.now):
        self.gateway = gateway
        self.clock = clock
        # 自动保存在定时器线程中触发，所有变更都必须持有这把锁
        self.lock = threading.RLock()

        self.user_id: Optional[str] = None
        self.app_id: str = DEFAULT_APP_ID
        self.projects: List[Project] = []
        self.current_project: Optional[Project] = None
        self.active_scene_id: Optional[str] = None
        self.editor_content: str = ""
        self.save_status: str = SaveStatus.IDLE
        self.is_loading: bool = True
        self.session = SessionState()

        self._unsubscribe: Optional[Callable[[], None]] = None

    # --- 生命周期 ---

    @property
    def collection_path(self) -> str:
        if not self.user_id:
            raise NoActiveProjectError("用户未登录")
        return f"/artifacts/{self.app_id}/users/{self.user_id}/projects"

    def initialize(self, user_id: str, app_id: str = DEFAULT_APP_ID):
        """绑定用户身份并订阅其项目集合"""
        if self._unsubscribe:
            self.teardown()
        with self.lock:
            self.user_id = user_id
            self.app_id = app_id
            self.is_loading = True
        self._unsubscribe = self.gateway.subscribe_to_projects(
            self.collection_path, self._on_projects_changed, self._on_subscription_error
        )
        logger.info(f"工作区已初始化: user={user_id}, app={app_id}")

    def teardown(self):
        """取消订阅并清空所有运行时状态"""
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        with self.lock:
            self.projects = []
            self.current_project = None
            self.active_scene_id = None
            self.editor_content = ""
            self.session.clear()
            self.save_status = SaveStatus.IDLE
            self.user_id = None
        logger.info("工作区已关闭。")

    def _on_projects_changed(self, projects: List[Project]):
        # 每次推送都是完整、权威的项目列表
        ordered = sorted(
            projects,
            key=lambda p: p.last_modified or p.created_at or datetime.min,
            reverse=True,
        )
        with self.lock:
            self.projects = ordered
            self.is_loading = False
            if self.current_project and all(p.id != self.current_project.id for p in ordered):
                logger.warning(f"当前项目 {self.current_project.id} 已在远端被删除。")
                self.set_current_project(None)

    def _on_subscription_error(self, error: Exception):
        logger.error(f"获取项目列表失败: {error}")
        with self.lock:
            self.is_loading = False
            self.save_status = SaveStatus.ERROR

    # --- 当前项目与场景 ---

    def require_project(self) -> Project:
        if self.current_project is None:
            raise NoActiveProjectError("当前没有打开的项目")
        return self.current_project

    def set_current_project(self, project: Optional[Project]):
        """切换当前项目，并激活其第一个场景"""
        with self.lock:
            self.current_project = project
            if project and project.scenes:
                self.set_active_scene(project.scenes[0].id)
            else:
                self.set_active_scene(None)

    def set_active_scene(self, scene_id: Optional[str]):
        """激活场景，并把它的内容载入编辑器缓冲区"""
        with self.lock:
            project = self.current_project
            scene = project.find_scene(scene_id) if (project and scene_id) else None
            if scene is None:
                self.active_scene_id = None
                self.editor_content = ""
            else:
                self.active_scene_id = scene.id
                self.editor_content = scene.content

    # --- 乐观更新 ---

    @contextmanager
    def transaction(self, action: str):
        """
        乐观更新事务：先备份当前状态，再在块内修改内存并持久化。
        块内抛出任何异常都会把内存状态回滚到备份；
        存储失败额外将 save_status 置为 error 并以 PersistenceError 抛出。
        """
        with self.lock:
            project = self.require_project()
            backup = copy.deepcopy(project)
            backup_active = self.active_scene_id
            backup_editor = self.editor_content
            self.save_status = SaveStatus.SAVING
            try:
                yield project
            except Exception as e:
                # 只有目标仍是当前项目时才回滚，避免覆盖用户已切换到的其他项目
                if self.current_project is project:
                    self.current_project = backup
                    self.active_scene_id = backup_active
                    self.editor_content = backup_editor
                else:
                    logger.info(f"{action}: 当前项目已切换，跳过回滚。")
                if isinstance(e, PersistenceError):
                    self.save_status = SaveStatus.ERROR
                    logger.error(f"{action} 失败，已回滚: {e}", exc_info=True)
                else:
                    self.save_status = SaveStatus.IDLE
                raise
            else:
                self.save_status = SaveStatus.SAVED

    def persist(self, project: Project, fields: Iterable[str]):
        """把项目的指定字段写入存储"""
        payload = {}
        for name in fields:
            if name == "scenes":
                payload[name] = [s.to_dict() for s in project.scenes]
            elif name == "sessions":
                payload[name] = [s.to_dict() for s in project.sessions]
            else:
                payload[name] = getattr(project, name)
        project.last_modified = self.clock()
        self.gateway.replace_project_fields(self.collection_path, project.id, payload)
