"""文件管理 - 文件请求/响应模型与序列化。"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from app.packages.filestore.api.v1.schemas.common import ResponseEnvelope
from app.packages.filestore.api.v1.schemas.file_versions import serialize_version
from app.packages.filestore.models.file import File


class FileCreateBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    directoryId: str = Field(..., min_length=1, max_length=64)
    mimeType: str = Field(..., min_length=1, max_length=255)
    size: int = Field(..., ge=0)
    key: Optional[str] = Field(None, min_length=1, max_length=255)


class FileMoveBody(BaseModel):
    directoryId: str = Field(..., min_length=1, max_length=64)


class FileRenameBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


FileDetailResponse = ResponseEnvelope[dict]
FileListResponse = ResponseEnvelope[list]
FileMutationResponse = ResponseEnvelope[Any]


def serialize_file(file: File) -> dict:
    return {
        "id": file.id,
        "name": file.name,
        "directoryId": file.directory_id,
        "createdAt": file.create_time.isoformat() if file.create_time else None,
        "updatedAt": file.update_time.isoformat() if file.update_time else None,
        "versions": [serialize_version(v) for v in file.versions],
    }
