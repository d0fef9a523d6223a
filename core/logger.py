import logging
import logging.handlers
import os
import sys

LOG_DIR = "logs"
LOG_FILE_NAME = "app.log"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def setup_logging(log_dir: str = LOG_DIR, level: str = None):
    """
    初始化根 logger：按大小轮转的 app.log 加标准输出。
    重复调用会替换之前安装的 handler。

    Args:
        log_dir: 日志目录，不存在时自动创建。
        level: 日志级别，缺省时读 LOG_LEVEL 环境变量，再缺省为 INFO。
    """
    os.makedirs(log_dir, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())

    file_handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE_NAME),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    console_handler = logging.StreamHandler(sys.stdout)
    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.captureWarnings(True)
