"""日志配置模块：为用户组数据访问层提供统一的日志格式与输出目标。

本包作为库被宿主应用加载，只配置自身命名空间（``app.packages.eperson``）
与 SQLAlchemy 引擎日志，不接管根日志器。
"""

import json
import logging
import logging.config
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from .config import Settings, get_settings

PACKAGE_LOGGER = "app.packages.eperson"

# LogRecord 自带的属性；其余属性都来自调用方的 ``extra=``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class _TZFormatter(logging.Formatter):
    """按 Settings.timezone 渲染时间戳。"""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: D401
        dt = datetime.fromtimestamp(record.created, get_settings().timezone_info)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(sep=" ", timespec="milliseconds")


class ColorFormatter(_TZFormatter):
    """终端输出时按日志级别着色，重定向到文件或管道时输出纯文本。"""

    RESET = "\033[0m"
    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }

    def __init__(self, fmt: str, datefmt: Optional[str] = None, use_colors: Optional[bool] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = sys.stderr.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{message}{self.RESET}" if color else message


class JsonFormatter(_TZFormatter):
    """每条日志输出一行 JSON，``extra=`` 传入的字段（如 group_id）原样附加。"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "msg": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """根据配置生成 dictConfig 字典。

    - ``LOG_JSON`` 切换控制台与文件的格式；
    - ``LOG_TO_FILE`` 关闭时不创建滚动文件处理器；
    - ``DATABASE_ECHO`` 打开时 SQL 日志降到 INFO 并走同一组处理器。
    """
    formatter_name = "json" if settings.log_json else "console"
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter_name,
        },
    }
    if settings.log_to_file:
        handlers["file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "formatter": "json" if settings.log_json else "plain",
            "filename": str(settings.log_file_path),
            "when": "midnight",
            "backupCount": 14,
            "encoding": "utf-8",
            "delay": True,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": ColorFormatter,
                "fmt": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
            "plain": {
                "()": _TZFormatter,
                "fmt": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
            "json": {"()": JsonFormatter},
        },
        "handlers": handlers,
        "loggers": {
            PACKAGE_LOGGER: {
                "handlers": list(handlers),
                "level": settings.log_level,
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "handlers": list(handlers),
                "level": "INFO" if settings.database_echo else "WARNING",
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Optional[Settings] = None) -> None:
    """初始化本包的日志输出。"""
    settings = settings or get_settings()
    if settings.log_to_file:
        settings.log_directory.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings))


logger = logging.getLogger(PACKAGE_LOGGER)
