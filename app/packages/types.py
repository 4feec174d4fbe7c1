"""业务包元数据定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import Logger
from typing import Any, Awaitable, Callable, Dict

from fastapi import APIRouter, FastAPI


@dataclass(frozen=True)
class AppPackage:
    """业务包向主应用暴露的装配信息。

    ``startup`` 在应用启动时执行一次：建表，并把进程内共享的资源挂到 ``app.state``。
    ``exception_handlers`` 按异常类型注册到应用上。
    """

    name: str
    api_router: APIRouter
    get_settings: Callable[[], Any]
    setup_logging: Callable[[], None]
    logger: Logger
    startup: Callable[[FastAPI], None]
    create_response: Callable[..., dict]
    exception_handlers: Dict[Any, Callable[..., Awaitable[Any]]] = field(default_factory=dict)
