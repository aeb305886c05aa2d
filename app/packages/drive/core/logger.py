"""日志配置模块：统一控制台、滚动文件与 JSON 输出，并为每条记录注入请求 ID。"""

import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Dict, Optional

from .config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

# LogRecord 自带的属性，JSON 输出时其余属性视为 extra 字段
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "request_id"}

# 与应用共用处理器的第三方日志器
_LIBRARY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class _LocalTimeFormatter(logging.Formatter):
    """按配置时区输出时间，未指定 datefmt 时使用带毫秒的 ISO 格式。"""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, get_settings().timezone_info)
        if datefmt:
            return stamp.strftime(datefmt)
        return stamp.isoformat(sep=" ", timespec="milliseconds")


class ColorFormatter(_LocalTimeFormatter):
    """按级别为整行日志着色，仅在终端输出时生效。"""

    RESET = "\033[0m"
    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }

    def __init__(self, fmt: str = LOG_FORMAT, datefmt: Optional[str] = None, use_colors: Optional[bool] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = sys.stderr.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{text}{self.RESET}" if color else text


class JsonFormatter(_LocalTimeFormatter):
    """每条记录输出一行 JSON，``extra`` 传入的字段（如 owner_id）原样保留。"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", None),
            "msg": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class RequestIdFilter(logging.Filter):
    """从上下文变量读取当前请求 ID 并写入日志记录。"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_ctx.get()
        return True


def _build_config() -> Dict[str, Any]:
    settings = get_settings()
    level = settings.log_level
    console_formatter = "json" if settings.log_json else "color"
    file_formatter = "json" if settings.log_json else "plain"
    handler_names = ["console", "file"]

    loggers: Dict[str, Any] = {
        name: {"handlers": handler_names, "level": level, "propagate": False}
        for name in (*_LIBRARY_LOGGERS, "app")
    }
    if settings.database_echo:
        loggers["sqlalchemy.engine"] = {"handlers": handler_names, "level": "INFO", "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {
            "color": {"()": ColorFormatter},
            "plain": {"()": _LocalTimeFormatter, "fmt": LOG_FORMAT},
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": console_formatter,
                "filters": ["request_id"],
            },
            # 每日零点切分，保留两周
            "file": {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "level": level,
                "formatter": file_formatter,
                "filters": ["request_id"],
                "filename": str(settings.log_file_path),
                "when": "midnight",
                "backupCount": 14,
                "encoding": "utf-8",
                "delay": True,
            },
        },
        "loggers": loggers,
        "root": {"handlers": handler_names, "level": level},
    }


def setup_logging() -> None:
    """创建日志目录并应用日志配置，应在应用启动前调用一次。"""
    get_settings().log_directory.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(_build_config())


logger = logging.getLogger("app")


def set_request_id(request_id: Optional[str]) -> None:
    _request_id_ctx.set(request_id)