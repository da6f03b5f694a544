"""
日志配置

控制台彩色输出 + 按日期分文件（全部日志 portal_*.log，错误日志 error_*.log）。
重复调用 setup_logging() 只替换本模块安装的处理器，不影响其他处理器。
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 第三方库只保留警告以上
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "apscheduler", "multipart")

_HANDLER_MARK = "_portal_handler"


class ColoredFormatter(logging.Formatter):
    """控制台按级别着色"""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # 在副本上着色，文件处理器拿到的仍是原始级别名
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno)
        if color:
            colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARK, True)
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return _mark(handler)


def setup_logging(log_level: str = "INFO", log_dir: Union[str, Path] = "logs"):
    """
    配置日志系统

    Args:
        log_level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: 日志文件目录，不存在时自动创建
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in [h for h in root_logger.handlers if getattr(h, _HANDLER_MARK, False)]:
        root_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(_mark(console))

    today = date.today().isoformat()
    root_logger.addHandler(_file_handler(log_path / f"portal_{today}.log", logging.INFO))
    root_logger.addHandler(_file_handler(log_path / f"error_{today}.log", logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"📋 日志系统初始化完成 (级别 {log_level.upper()}, 目录 {log_path})")


def get_logger(name: str) -> logging.Logger:
    """获取命名日志器"""
    return logging.getLogger(name)
