"""
业务对象定义 (Schemas)
定义引擎各层级间传递的强类型数据结构：场景、写作会话、快照与项目。
所有对象都可以与存储层使用的普通字典互相转换。
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _str_to_dt(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class SaveStatus:
    """保存状态指示 (供 UI 显示)"""
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


@dataclass
class Scene:
    """
    场景：项目中有标题、有顺序的一段正文。
    word_count 始终由 count_words(content) 推导，不允许单独修改。
    """
    id: str
    title: str
    content: str = ""
    word_count: int = 0
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "word_count": self.word_count,
            "created_at": _dt_to_str(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scene":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            content=data.get("content") or "",
            word_count=int(data.get("word_count") or 0),
            created_at=_str_to_dt(data.get("created_at")),
        )


@dataclass(frozen=True)
class SceneSnapshot:
    """会话结束时某个场景内容的不可变副本，仅按 id 弱引用场景"""
    scene_id: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"scene_id": self.scene_id, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SceneSnapshot":
        return cls(scene_id=data["scene_id"], content=data.get("content") or "")


@dataclass(frozen=True)
class WritingSession:
    """一次计时写作的记录，创建后不可修改"""
    id: str
    start_time: datetime
    duration: int  # 毫秒
    words_written: int
    snapshot: SceneSnapshot

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_time": _dt_to_str(self.start_time),
            "duration": self.duration,
            "words_written": self.words_written,
            "snapshot": self.snapshot.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WritingSession":
        return cls(
            id=data["id"],
            start_time=_str_to_dt(data.get("start_time")),
            duration=int(data.get("duration") or 0),
            words_written=int(data.get("words_written") or 0),
            snapshot=SceneSnapshot.from_dict(data["snapshot"]),
        )


@dataclass
class Project:
    """
    项目：拥有一组有序场景和一组写作会话。
    场景顺序即书稿顺序；会话按创建顺序追加。
    """
    id: str
    name: str
    scenes: List[Scene] = field(default_factory=list)
    sessions: List[WritingSession] = field(default_factory=list)
    total_time: int = 0
    total_words: int = 0
    created_at: Optional[datetime] = None
    last_modified: Optional[datetime] = None

    def find_scene(self, scene_id: str) -> Optional[Scene]:
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        return None

    def scene_ids(self) -> List[str]:
        return [s.id for s in self.scenes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "scenes": [s.to_dict() for s in self.scenes],
            "sessions": [s.to_dict() for s in self.sessions],
            "total_time": self.total_time,
            "total_words": self.total_words,
            "created_at": _dt_to_str(self.created_at),
            "last_modified": _dt_to_str(self.last_modified),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        # 旧文档可能缺少 scenes / sessions 字段
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            scenes=[Scene.from_dict(s) for s in data.get("scenes") or []],
            sessions=[WritingSession.from_dict(s) for s in data.get("sessions") or []],
            total_time=int(data.get("total_time") or 0),
            total_words=int(data.get("total_words") or 0),
            created_at=_str_to_dt(data.get("created_at")),
            last_modified=_str_to_dt(data.get("last_modified")),
        )


@dataclass
class SessionState:
    """
    写作会话状态机的运行时状态。
    start_time 为 None 表示 Idle，否则为 Writing。
    """
    start_time: Optional[datetime] = None
    initial_word_count: int = 0

    @property
    def is_writing(self) -> bool:
        return self.start_time is not None

    def clear(self):
        self.start_time = None
        self.initial_word_count = 0
