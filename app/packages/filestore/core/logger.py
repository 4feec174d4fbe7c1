"""日志配置模块：提供彩色输出能力并统一全局日志格式。"""

import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Optional

from .config import get_settings


class _TZFormatter(logging.Formatter):
    """Formatter that renders timestamps in Settings.timezone."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: D401
        tz = get_settings().timezone_info
        dt = datetime.fromtimestamp(record.created, tz)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(sep=" ", timespec="milliseconds")


class ColorFormatter(_TZFormatter):
    """ANSI 彩色格式化器：根据不同日志级别渲染不同颜色，便于快速辨识。"""

    RESET = "\033[0m"
    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }

    def __init__(
        self,
        fmt: str,
        datefmt: Optional[str] = None,
        style: str = "%",
        use_colors: Optional[bool] = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        if use_colors is None:
            use_colors = sys.stderr.isatty()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if not self.use_colors:
            return message
        color = self.COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{self.RESET}"


class JsonFormatter(_TZFormatter):
    """Structured JSON formatter for logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, datefmt=None),
            "logger": record.name,
            "level": record.levelname,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Injects request_id from contextvars into every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        setattr(record, "request_id", _request_id_ctx.get())
        return True


_FORMATTER_PATH = "app.packages.filestore.core.logger"
_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"
_OWN_LOGGERS = ("app", "uvicorn", "uvicorn.access")


def build_logging_config(settings) -> dict:
    """根据配置生成 ``dictConfig`` 字典：终端输出加按天轮转的文件输出。"""
    level = settings.log_level
    console_formatter = "json" if settings.log_json else "console"
    file_formatter = "json" if settings.log_json else "plain"
    handlers = ["console", "file"]

    loggers = {name: {"handlers": handlers, "level": level, "propagate": False} for name in _OWN_LOGGERS}
    # SQL 语句日志只在显式开启 DATABASE_ECHO 时输出
    loggers["sqlalchemy.engine"] = {
        "handlers": handlers,
        "level": "INFO" if settings.database_echo else "WARNING",
        "propagate": False,
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": f"{_FORMATTER_PATH}.RequestIdFilter"}},
        "formatters": {
            "console": {"()": f"{_FORMATTER_PATH}.ColorFormatter", "format": _LINE_FORMAT},
            "plain": {"()": f"{_FORMATTER_PATH}._TZFormatter", "format": _LINE_FORMAT},
            "json": {"()": f"{_FORMATTER_PATH}.JsonFormatter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": console_formatter,
                "filters": ["request_id"],
            },
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
        "root": {"handlers": handlers, "level": level},
    }


def setup_logging() -> None:
    """初始化日志系统，确保项目所有模块使用统一的输出格式与级别。"""
    settings = get_settings()
    settings.log_directory.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings))


logger = logging.getLogger("app")


def set_request_id(request_id: Optional[str]) -> None:
    _request_id_ctx.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id_ctx.get()
