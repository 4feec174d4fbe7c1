"""文件版本路由：新增版本、查询版本、申请上传/下载链接。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.packages.filestore.api.v1.schemas.file_versions import (
    FileVersionCreateBody,
    FileVersionResponse,
    SignedUrlResponse,
    serialize_version,
)
from app.packages.filestore.core.dependencies import get_db, get_file_version_service
from app.packages.filestore.core.responses import create_response
from app.packages.filestore.services.file_version_service import FileVersionService

router = APIRouter(tags=["file-versions"])


@router.post("/file-versions", response_model=FileVersionResponse)
def create_file_version(
    body: FileVersionCreateBody,
    db: Session = Depends(get_db),
    service: FileVersionService = Depends(get_file_version_service),
):
    result = service.create_file_version(
        db,
        file_id=body.fileId,
        name=body.name,
        mime_type=body.mimeType,
        size=body.size,
        key=body.key,
    )
    data = {**serialize_version(result.version), "url": result.upload_url}
    return create_response("文件版本创建成功", data)


# 需在 /file-versions/{version_id} 之前注册，避免被路径参数捕获
@router.get("/file-versions/download-url", response_model=SignedUrlResponse)
def request_file_download(
    key: str = Query(..., min_length=1),
    service: FileVersionService = Depends(get_file_version_service),
):
    return create_response("获取下载链接成功", {"key": key, "url": service.request_file_download(key)})


@router.get("/file-versions/{version_id}", response_model=FileVersionResponse)
def get_file_version(
    version_id: int,
    db: Session = Depends(get_db),
    service: FileVersionService = Depends(get_file_version_service),
):
    return create_response("获取文件版本成功", serialize_version(service.get_file_version(db, version_id)))


@router.post("/file-versions/{version_id}/upload-url", response_model=SignedUrlResponse)
def request_file_upload(
    version_id: int,
    db: Session = Depends(get_db),
    service: FileVersionService = Depends(get_file_version_service),
):
    """为已有版本重新签发上传链接。"""
    url = service.request_file_upload(db, version_id)
    return create_response("获取上传链接成功", {"versionId": version_id, "url": url})
