"""
应用入口 (Bootstrap)
加载环境与配置、初始化日志，并为指定用户组装工作区与编辑器工作流。
界面层通过 create_workspace 得到 EditorWorkflow 后只与它交互。
"""
import os
import logging

from config import load_environment
from config import loader as config_manager
from core import logger as logger_config
from core.context import WorkspaceContext
from infra.storage.sql_db import SqlProjectGateway
from services.workflow import EditorWorkflow

app_logger = logging.getLogger(__name__)

def _ensure_sqlite_dir(database_url: str):
    prefix = "sqlite:///"
    if database_url.startswith(prefix) and database_url != "sqlite:///:memory:":
        db_dir = os.path.dirname(database_url[len(prefix):])
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

def create_workspace(user_id: str, app_id: str = None, config: dict = None, **workflow_kwargs) -> EditorWorkflow:
    """
    为一个已登录用户创建工作区。

    Args:
        user_id (str): 外部认证提供的稳定用户标识。
        app_id (str): 存储命名空间，缺省取配置中的 storage.app_id。
        config (dict): 已加载的配置，缺省从 config.yaml 读取。

    Returns:
        EditorWorkflow: 已订阅该用户项目列表的编辑器工作流。
    """
    load_environment()
    full_config = config or config_manager.load_config()
    logger_config.setup_logging(full_config["logging"]["dir"], full_config["logging"]["level"])

    database_url = full_config["storage"]["database_url"]
    _ensure_sqlite_dir(database_url)
    gateway = SqlProjectGateway(database_url)

    context = WorkspaceContext(gateway)
    context.initialize(user_id, app_id or full_config["storage"]["app_id"])

    autosave_config = full_config["autosave"]
    workflow_kwargs.setdefault("autosave_delay", autosave_config["delay_seconds"])
    workflow_kwargs.setdefault("status_reset_delay", autosave_config["status_reset_seconds"])
    app_logger.info(f"工作区已就绪: {user_id} ({len(context.projects)} 个项目)")
    return EditorWorkflow(context, **workflow_kwargs)
