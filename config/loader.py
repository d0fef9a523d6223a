import yaml
import os
import sys
import copy
import logging

from core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

def get_resource_path(relative_path: str) -> str:
    """
    获取资源的正确路径
    """
    try:
        base_path = sys._MEIPASS
    except Exception:
        base_path = os.path.abspath(".")

    return os.path.join(base_path, relative_path)

CONFIG_PATH = get_resource_path("config.yaml")
USER_CONFIG_PATH = get_resource_path("user_config.yaml")

DEFAULT_CONFIG = {
    "storage": {
        "database_url": "sqlite:///data/content.db",
        "app_id": "default-app-id",
    },
    "autosave": {
        "delay_seconds": 1.5,
        "status_reset_seconds": 2.0,
    },
    "logging": {
        "dir": "logs",
        "level": "INFO",
    },
}

MERGED_SECTIONS = ("storage", "autosave", "logging")

def _merge_configs(base_config: dict, user_config: dict) -> dict:
    """
    合并基础配置和用户配置。
    用户配置中的各个分区会按键覆盖基础配置。
    """
    merged_config = copy.deepcopy(base_config)
    for section in MERGED_SECTIONS:
        if section in user_config:
            merged_config[section] = merged_config.get(section, {})
            merged_config[section].update(user_config[section] or {})
    return merged_config

def _read_yaml(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if data else {}
    except yaml.YAMLError as e:
        logger.error(f"解析 {path} 文件失败: {e}", exc_info=True)
        raise ConfigurationError(f"错误: 解析 {path} 文件失败: {e}")

def _apply_env_overrides(config: dict) -> dict:
    """环境变量优先于配置文件"""
    if os.getenv("DATABASE_URL"):
        config["storage"]["database_url"] = os.getenv("DATABASE_URL")
    if os.getenv("APP_ID"):
        config["storage"]["app_id"] = os.getenv("APP_ID")
    if os.getenv("LOG_LEVEL"):
        config["logging"]["level"] = os.getenv("LOG_LEVEL").upper()
    return config

def load_user_config(path: str = None) -> dict:
    """
    加载并解析 user_config.yaml 文件。
    """
    path = path or USER_CONFIG_PATH
    if not os.path.exists(path):
        return {}
    return _read_yaml(path)

def load_config(path: str = None, user_path: str = None) -> dict:
    """
    加载并解析 config.yaml 和 user_config.yaml 文件，并进行合并。
    """
    path = path or CONFIG_PATH
    if os.path.exists(path):
        base_config = _merge_configs(DEFAULT_CONFIG, _read_yaml(path))
    else:
        logger.warning(f"配置文件 {path} 未找到，使用默认配置。")
        base_config = copy.deepcopy(DEFAULT_CONFIG)

    merged_config = _merge_configs(base_config, load_user_config(user_path))
    return _apply_env_overrides(merged_config)

def save_user_config(user_config_data: dict, path: str = None):
    """
    将用户配置字典写回到 user_config.yaml 文件。

    Args:
        user_config_data (dict): 要保存的用户配置数据（例如 storage 和 autosave）。
    """
    path = path or USER_CONFIG_PATH
    try:
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(user_config_data, f, allow_unicode=True, sort_keys=False)
        logger.info(f"用户配置已成功保存到 {path}。")
    except OSError as e:
        logger.error(f"写入 {path} 文件失败: {e}", exc_info=True)
        raise ConfigurationError(f"错误: 写入 {path} 文件失败: {e}")
