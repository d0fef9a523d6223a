"""
核心数据模型 (Data Models)
定义存储在 SQLite (content.db) 中的表结构。
每个项目是一份文档：场景与会话以 JSON 形式整体存放，便于按字段整体替换。
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class ProjectDocument(Base):
    """
    项目文档表
    collection_path 形如 /artifacts/{app_id}/users/{user_id}/projects，用于按用户隔离。
    """
    __tablename__ = 'projects'

    id = Column(String, primary_key=True)
    collection_path = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    scenes = Column(JSON, nullable=False, default=list) # 有序场景列表
    sessions = Column(JSON, nullable=False, default=list) # 写作会话记录
    total_words = Column(Integer, default=0)
    total_time = Column(Integer, default=0) # 毫秒
    created_at = Column(DateTime, nullable=True)
    last_modified = Column(DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "scenes": list(self.scenes or []),
            "sessions": list(self.sessions or []),
            "total_words": self.total_words or 0,
            "total_time": self.total_time or 0,
            "created_at": self.created_at,
            "last_modified": self.last_modified,
        }
