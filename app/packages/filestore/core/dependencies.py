"""依赖注入模块：封装 FastAPI 中复用度高的依赖函数。

对象存储客户端在应用启动时构建一次并挂在 ``app.state`` 上，
服务实例按请求组装，显式持有其依赖的对象存储。
"""

from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.packages.filestore.db import session as db_session
from app.packages.filestore.services.file_service import FileService
from app.packages.filestore.services.file_version_service import FileVersionService
from app.packages.filestore.services.object_store import ObjectStore
from app.packages.filestore.services.orphan_service import OrphanCleanupService


def get_db() -> Generator[Session, None, None]:
    """生成一个数据库会话，并在请求结束后自动关闭。"""
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_file_service(object_store: ObjectStore = Depends(get_object_store)) -> FileService:
    return FileService(object_store)


def get_file_version_service(object_store: ObjectStore = Depends(get_object_store)) -> FileVersionService:
    return FileVersionService(object_store)


def get_orphan_service(object_store: ObjectStore = Depends(get_object_store)) -> OrphanCleanupService:
    return OrphanCleanupService(object_store)
