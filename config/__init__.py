from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

def load_environment(env_file: str = None) -> bool:
    """
    从 .env 文件加载环境变量 (DATABASE_URL / APP_ID / LOG_LEVEL)。
    已存在的环境变量不会被覆盖。
    """
    loaded = load_dotenv(env_file) if env_file else load_dotenv()
    if loaded:
        logger.debug("环境变量已从 .env 文件加载。")
    return loaded
