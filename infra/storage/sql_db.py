"""
SQLite 数据库管理器 (SQL Store)
基于 SQLAlchemy 实现项目文档的持久化网关。
"""
import uuid
import logging
import threading
from datetime import datetime
from functools import lru_cache
from typing import Callable, Dict, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from core.models import Base, ProjectDocument
from core.schemas import Project
from core.exceptions import PersistenceError
from infra.storage.base import ProjectGateway

logger = logging.getLogger(__name__)

# 允许通过 replace_project_fields 修改的字段
WRITABLE_FIELDS = {"name", "scenes", "sessions", "total_words", "total_time", "last_modified"}

@lru_cache(maxsize=5)
def get_engine(database_url: str):
    """
    获取指定数据库的引擎 (带缓存)。
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # 内存库必须在所有线程间共享同一个连接，否则自动保存线程看不到数据
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif database_url.startswith("sqlite"):
        engine = create_engine(database_url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(database_url)

    # 自动建表
    Base.metadata.create_all(engine)
    return engine

def get_session(database_url: str) -> Session:
    """获取一个新的数据库会话"""
    engine = get_engine(database_url)
    SessionLocal = sessionmaker(bind=engine)
    return SessionLocal()


class SqlProjectGateway(ProjectGateway):
    """
    SQLAlchemy 实现的持久化网关。
    每次成功提交后，向该集合的订阅者推送最新的完整项目列表。
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._listeners: Dict[str, list] = {}
        self._listeners_lock = threading.Lock()

    # --- 写操作 ---

    def create_project(self, collection_path: str, fields: dict) -> str:
        project_id = fields.get("id") or f"project_{uuid.uuid4().hex}"
        now = datetime.now()
        session = get_session(self.database_url)
        try:
            doc = ProjectDocument(
                id=project_id,
                collection_path=collection_path,
                name=fields["name"],
                scenes=fields.get("scenes", []),
                sessions=fields.get("sessions", []),
                total_words=fields.get("total_words", 0),
                total_time=fields.get("total_time", 0),
                created_at=now,
                last_modified=now,
            )
            session.add(doc)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"创建项目失败 {collection_path}: {e}", exc_info=True)
            raise PersistenceError(f"创建项目失败: {e}") from e
        finally:
            session.close()

        logger.info(f"项目已创建: {project_id} ({fields['name']})")
        self._notify(collection_path)
        return project_id

    def replace_project_fields(self, collection_path: str, project_id: str, fields: dict):
        unknown = set(fields) - WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"不可写入的字段: {sorted(unknown)}")

        session = get_session(self.database_url)
        try:
            doc = session.query(ProjectDocument).filter_by(
                id=project_id, collection_path=collection_path
            ).first()
            if doc is None:
                raise PersistenceError(f"项目不存在: {project_id}")
            for key, value in fields.items():
                setattr(doc, key, value)
            # 等价于服务端时间戳
            doc.last_modified = datetime.now()
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"更新项目字段失败 {project_id} {sorted(fields)}: {e}", exc_info=True)
            raise PersistenceError(f"更新项目失败: {e}") from e
        finally:
            session.close()

        logger.debug(f"项目 {project_id} 字段已更新: {sorted(fields)}")
        self._notify(collection_path)

    def delete_project(self, collection_path: str, project_id: str):
        session = get_session(self.database_url)
        try:
            session.query(ProjectDocument).filter_by(
                id=project_id, collection_path=collection_path
            ).delete()
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"删除项目失败 {project_id}: {e}", exc_info=True)
            raise PersistenceError(f"删除项目失败: {e}") from e
        finally:
            session.close()

        logger.info(f"项目已删除: {project_id}")
        self._notify(collection_path)

    # --- 读操作 ---

    def load_projects(self, collection_path: str) -> List[Project]:
        session = get_session(self.database_url)
        try:
            docs = session.query(ProjectDocument).filter_by(collection_path=collection_path).all()
            return [Project.from_dict(d.to_dict()) for d in docs]
        except SQLAlchemyError as e:
            logger.error(f"加载项目列表失败 {collection_path}: {e}", exc_info=True)
            raise PersistenceError(f"加载项目列表失败: {e}") from e
        finally:
            session.close()

    # --- 订阅 ---

    def subscribe_to_projects(
        self,
        collection_path: str,
        on_change: Callable[[List[Project]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Callable[[], None]:
        listener = (on_change, on_error)
        with self._listeners_lock:
            self._listeners.setdefault(collection_path, []).append(listener)

        # 订阅时立即推送一次当前列表
        self._deliver(collection_path, [listener])

        def unsubscribe():
            with self._listeners_lock:
                listeners = self._listeners.get(collection_path, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def _notify(self, collection_path: str):
        with self._listeners_lock:
            listeners = list(self._listeners.get(collection_path, []))
        if listeners:
            self._deliver(collection_path, listeners)

    def _deliver(self, collection_path: str, listeners: list):
        try:
            projects = self.load_projects(collection_path)
        except PersistenceError as e:
            for _, on_error in listeners:
                if on_error:
                    on_error(e)
            return
        for on_change, _ in listeners:
            on_change(projects)
