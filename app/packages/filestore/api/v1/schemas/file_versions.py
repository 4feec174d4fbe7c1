"""文件管理 - 文件版本请求/响应模型与序列化。"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from app.packages.filestore.api.v1.schemas.common import ResponseEnvelope
from app.packages.filestore.models.file_version import FileVersion
from app.packages.filestore.models.orphaned_object import OrphanedObject
from app.packages.filestore.services.results import VersionPage


class FileVersionCreateBody(BaseModel):
    fileId: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=255)
    mimeType: str = Field(..., min_length=1, max_length=255)
    size: int = Field(..., ge=0)
    key: Optional[str] = Field(None, min_length=1, max_length=255)


FileVersionResponse = ResponseEnvelope[dict]
FileVersionPageResponse = ResponseEnvelope[dict]
SignedUrlResponse = ResponseEnvelope[dict]
OrphanListResponse = ResponseEnvelope[list]
CleanupResponse = ResponseEnvelope[Any]


def serialize_version(version: FileVersion) -> dict:
    return {
        "id": version.id,
        "fileId": version.file_id,
        "name": version.name,
        "mimeType": version.mime_type,
        "size": int(version.size or 0),
        "key": version.key,
        "createdAt": version.create_time.isoformat() if version.create_time else None,
        "updatedAt": version.update_time.isoformat() if version.update_time else None,
    }


def serialize_page(page: VersionPage) -> dict:
    return {
        "items": [serialize_version(v) for v in page.items],
        "nextCursor": page.next_cursor,
        "hasMore": page.has_more,
    }


def serialize_orphan(row: OrphanedObject) -> dict:
    return {
        "id": row.id,
        "key": row.key,
        "fileId": row.file_id,
        "reason": row.reason,
        "attempts": row.attempts,
        "lastError": row.last_error,
        "createdAt": row.create_time.isoformat() if row.create_time else None,
    }
