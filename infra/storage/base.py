from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from core.schemas import Project


class ProjectGateway(ABC):
    """
    存储后端的唯一入口。引擎只通过这里读写项目文档，从不直接访问数据库。
    所有写入失败都以 PersistenceError 抛出。
    """

    @abstractmethod
    def create_project(self, collection_path: str, fields: dict) -> str:
        """
        Returns: 新项目的 id
        """
        pass

    @abstractmethod
    def replace_project_fields(self, collection_path: str, project_id: str, fields: dict):
        """
        以一次原子写入替换项目文档的部分字段，未列出的字段保持不变。
        """
        pass

    @abstractmethod
    def delete_project(self, collection_path: str, project_id: str):
        pass

    @abstractmethod
    def load_projects(self, collection_path: str) -> List[Project]:
        pass

    @abstractmethod
    def subscribe_to_projects(
        self,
        collection_path: str,
        on_change: Callable[[List[Project]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Callable[[], None]:
        """
        每当该用户的项目集合变化时推送完整的项目列表。
        Returns: 取消订阅的函数
        """
        pass
