"""文件版本服务：为已有文件追加版本、分页查询版本、签发上传/下载 URL。"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.packages.filestore.core.config import get_settings
from app.packages.filestore.core.constants import HTTP_STATUS_BAD_REQUEST
from app.packages.filestore.core.enums import SignedUrlMode
from app.packages.filestore.core.exceptions import (
    AppException,
    InvalidCursorError,
    NotFoundError,
    ReferentialViolationError,
)
from app.packages.filestore.core.logger import logger
from app.packages.filestore.crud.file import file_crud
from app.packages.filestore.crud.file_version import file_version_crud
from app.packages.filestore.models.file_version import FileVersion
from app.packages.filestore.services.consistency import (
    ensure_key_available,
    issue_upload_url,
    metadata_read,
    metadata_transaction,
)
from app.packages.filestore.services.key_generator import KeyGenerator, key_generator as default_key_generator
from app.packages.filestore.services.object_store import ObjectStore
from app.packages.filestore.services.results import CreateFileVersionResult, Pagination, VersionPage


class FileVersionService:
    def __init__(
        self,
        object_store: ObjectStore,
        *,
        key_generator: Optional[KeyGenerator] = None,
        default_page_size: Optional[int] = None,
        max_page_size: Optional[int] = None,
    ):
        settings = get_settings()
        self.object_store = object_store
        self.key_generator = key_generator or default_key_generator
        self.default_page_size = default_page_size or settings.default_page_size
        self.max_page_size = max_page_size or settings.max_page_size

    def create_file_version(
        self,
        db: Session,
        *,
        file_id: int,
        name: str,
        mime_type: str,
        size: int,
        key: Optional[str] = None,
    ) -> CreateFileVersionResult:
        key = key or self.key_generator.generate()
        self.object_store.validate_key(key)
        try:
            with metadata_transaction(db):
                if file_crud.get(db, file_id) is None:
                    raise ReferentialViolationError(f"文件不存在，无法创建版本: {file_id}")
                ensure_key_available(db, key)
                version = file_version_crud.create(
                    db,
                    {
                        "file_id": file_id,
                        "name": name,
                        "key": key,
                        "mime_type": mime_type,
                        "size": size,
                    },
                    auto_commit=False,
                )
        except IntegrityError as exc:
            # 校验与写入之间文件被并发删除时，由外键约束兜底
            raise ReferentialViolationError(f"文件不存在，无法创建版本: {file_id}") from exc

        with metadata_read():
            db.refresh(version)
        logger.info("File version created id=%s file_id=%s key=%s", version.id, file_id, key)
        url = issue_upload_url(self.object_store, key, file_id=file_id, version_id=version.id)
        return CreateFileVersionResult(version=version, upload_url=url)

    def get_file_version(self, db: Session, version_id: int) -> FileVersion:
        with metadata_read():
            version = file_version_crud.get(db, version_id)
        if version is None:
            raise NotFoundError("文件版本不存在")
        return version

    def get_file_versions(
        self,
        db: Session,
        file_id: int,
        pagination: Optional[Pagination] = None,
    ) -> VersionPage:
        """按创建顺序分页返回某文件的版本；未指定分页时返回默认大小的第一页。"""
        pagination = pagination or Pagination()
        limit = pagination.limit or self.default_page_size
        limit = max(1, min(int(limit), self.max_page_size))
        after_id = _decode_cursor(pagination.cursor, file_id)

        with metadata_read():
            rows = file_version_crud.page_for_file(db, file_id, after_id=after_id, limit=limit)

        next_cursor = None
        has_more = len(rows) > limit
        if has_more:
            rows = rows[:limit]
            next_cursor = base64_urlsafe_encode({"fid": file_id, "id": rows[-1].id})
        return VersionPage(items=rows, next_cursor=next_cursor, has_more=has_more)

    def request_file_download(self, key: str) -> str:
        # 不校验 key 的归属：持有 key 即可申请下载链接
        if not key or not key.strip():
            raise AppException("key 不能为空", HTTP_STATUS_BAD_REQUEST)
        return self.object_store.get_signed_url(SignedUrlMode.DOWNLOAD, key)

    def request_file_upload(self, db: Session, version_id: int) -> str:
        """为已存在的版本重新签发上传 URL，用于创建后上传链接签发失败的补救。"""
        version = self.get_file_version(db, version_id)
        return issue_upload_url(self.object_store, version.key, file_id=version.file_id, version_id=version.id)


# 简单的 base64 urlsafe 编码/解码
def base64_urlsafe_encode(obj: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(obj).encode("utf-8")).decode("ascii")


def _decode_cursor(cursor: Optional[str], file_id: int) -> Optional[int]:
    if not cursor:
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8"))
        cursor_file_id = int(payload["fid"])
        last_id = int(payload["id"])
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as exc:
        raise InvalidCursorError() from exc
    if cursor_file_id != file_id:
        raise InvalidCursorError("cursor 与文件不匹配")
    return last_id
