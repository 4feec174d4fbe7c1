"""异常处理模块：定义统一的业务异常与响应格式。

元数据与对象存储是两个独立失败的系统，这里为每一类失败提供独立的异常类型：

- ``NotFoundError``：文件/版本不存在；
- ``ReferentialViolationError``：新版本指向不存在的文件；
- ``DuplicateKeyError``：调用方指定的对象 key 已被其他版本占用；
- ``TransientStoreError``：数据库或对象存储暂时不可用，可重试；
- ``UploadCapabilityError``：元数据已提交，但上传签名 URL 生成失败；
- ``InvalidCursorError``：分页游标非法。
"""

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.packages.filestore.core.constants import (
    HTTP_STATUS_BAD_GATEWAY,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CONFLICT,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_SERVICE_UNAVAILABLE,
)
from app.packages.filestore.core.logger import logger


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data=None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data


class NotFoundError(AppException):
    def __init__(self, msg: str = "记录不存在", data=None) -> None:
        super().__init__(msg, HTTP_STATUS_NOT_FOUND, data)


class ReferentialViolationError(AppException):
    def __init__(self, msg: str = "关联的文件不存在", data=None) -> None:
        super().__init__(msg, HTTP_STATUS_CONFLICT, data)


class DuplicateKeyError(AppException):
    def __init__(self, key: str) -> None:
        super().__init__(f"对象 key 已存在: {key}", HTTP_STATUS_CONFLICT, {"key": key})


class TransientStoreError(AppException):
    """存储系统暂时不可用；调用方可以重试。"""

    def __init__(self, msg: str = "存储服务暂时不可用，请稍后重试", data=None) -> None:
        super().__init__(msg, HTTP_STATUS_SERVICE_UNAVAILABLE, data)


class UploadCapabilityError(AppException):
    """元数据已落库但未能签发上传 URL。

    记录本身不会回滚；调用方应通过重新申请上传 URL 完成补救，而不是重新创建。
    """

    def __init__(
        self,
        msg: str = "文件记录已创建，但上传链接生成失败，请重新申请上传链接",
        *,
        file_id: Optional[int] = None,
        version_id: Optional[int] = None,
        key: Optional[str] = None,
    ) -> None:
        data: dict[str, Any] = {"fileId": file_id, "versionId": version_id, "key": key}
        super().__init__(msg, HTTP_STATUS_BAD_GATEWAY, data)
        self.file_id = file_id
        self.version_id = version_id
        self.key = key


class InvalidCursorError(AppException):
    def __init__(self, msg: str = "cursor 非法") -> None:
        super().__init__(msg, HTTP_STATUS_BAD_REQUEST)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 FastAPI 的 ``HTTPException`` 转换为统一响应格式。"""
    payload = {"msg": exc.detail, "data": getattr(exc, "data", None), "code": exc.status_code}
    return JSONResponse(status_code=exc.status_code, content=payload)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构。"""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    payload = {
        "msg": "服务器内部错误",
        "data": None,
        "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)
