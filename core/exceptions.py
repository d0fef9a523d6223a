"""
自定义异常类
用于在引擎的不同层之间传递具有明确语义的错误信息。
"""

class InkwellError(Exception):
    """所有业务异常的基类"""
    pass

# --- 校验类错误：本地拒绝，不触发任何持久化 ---

class ValidationError(InkwellError):
    """当操作的前置条件不满足时发生错误"""
    pass

class NoActiveProjectError(ValidationError):
    """当前没有打开的项目"""
    pass

class NoActiveSceneError(ValidationError):
    """当前没有激活的场景"""
    pass

class InvalidReorderError(ValidationError):
    """重排结果不是现有场景的一个排列"""
    pass

class LastSceneDeletionError(ValidationError):
    """试图删除项目中最后一个场景"""
    pass

class SessionStateError(ValidationError):
    """写作会话状态机的非法转换（例如重复开始）"""
    pass

# --- 引用类错误 ---

class SceneNotFoundError(InkwellError):
    """目标场景在当前项目中已不存在"""

    def __init__(self, scene_id: str):
        super().__init__(f"场景已不存在: {scene_id}")
        self.scene_id = scene_id

# --- 持久化错误 ---

class PersistenceError(InkwellError):
    """当与存储后端交互时发生错误"""
    pass

class ConfigurationError(InkwellError):
    """当应用配置不正确或缺失时发生错误"""
    pass
