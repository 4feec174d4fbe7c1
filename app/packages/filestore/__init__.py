"""文件存储业务包：文件/版本元数据与对象存储的一致性协议。"""

from fastapi import FastAPI, HTTPException

from app.packages.types import AppPackage

from .api.v1 import api_router
from .core.config import get_settings
from .core.exceptions import generic_exception_handler, http_exception_handler
from .core.logger import logger, setup_logging
from .core.responses import create_response
from .db.init_db import init_db
from .services.object_store import build_object_store


def startup(app: FastAPI) -> None:
    """建表并构建对象存储客户端；已注入（如测试替身）时保持不变。"""
    init_db()
    if getattr(app.state, "object_store", None) is None:
        app.state.object_store = build_object_store(get_settings())


package = AppPackage(
    name="filestore",
    api_router=api_router,
    get_settings=get_settings,
    setup_logging=setup_logging,
    logger=logger,
    startup=startup,
    create_response=create_response,
    exception_handlers={
        HTTPException: http_exception_handler,
        Exception: generic_exception_handler,
    },
)

__all__ = ["package", "api_router", "get_settings"]
