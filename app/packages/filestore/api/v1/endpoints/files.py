"""文件操作路由：创建、查询、移动、重命名与删除。"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.packages.filestore.api.v1.schemas.file_versions import FileVersionPageResponse, serialize_page
from app.packages.filestore.api.v1.schemas.files import (
    FileCreateBody,
    FileDetailResponse,
    FileListResponse,
    FileMoveBody,
    FileMutationResponse,
    FileRenameBody,
    serialize_file,
)
from app.packages.filestore.core.dependencies import get_db, get_file_service, get_file_version_service
from app.packages.filestore.core.enums import CleanupStatusEnum
from app.packages.filestore.core.responses import create_response
from app.packages.filestore.services.file_service import FileService
from app.packages.filestore.services.file_version_service import FileVersionService
from app.packages.filestore.services.results import Pagination

router = APIRouter(tags=["files"])


@router.post("/files", response_model=FileDetailResponse)
def create_file(
    body: FileCreateBody,
    db: Session = Depends(get_db),
    service: FileService = Depends(get_file_service),
):
    """创建文件及其首个版本，并返回用于上传字节的签名 URL。"""
    result = service.create_file(
        db,
        name=body.name,
        directory_id=body.directoryId,
        mime_type=body.mimeType,
        size=body.size,
        key=body.key,
    )
    data = {"file": serialize_file(result.file), "url": result.upload_url}
    return create_response("文件创建成功", data)


@router.get("/files", response_model=FileListResponse)
def find_files(
    query: Optional[str] = Query(None, max_length=255),
    db: Session = Depends(get_db),
    service: FileService = Depends(get_file_service),
):
    files = service.find_files(db, query)
    return create_response("获取文件列表成功", [serialize_file(f) for f in files])


@router.get("/files/{file_id}", response_model=FileDetailResponse)
def get_file(
    file_id: int,
    db: Session = Depends(get_db),
    service: FileService = Depends(get_file_service),
):
    return create_response("获取文件成功", serialize_file(service.get_file(db, file_id)))


@router.get("/files/{file_id}/versions", response_model=FileVersionPageResponse)
def get_file_versions(
    file_id: int,
    cursor: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    service: FileVersionService = Depends(get_file_version_service),
):
    page = service.get_file_versions(db, file_id, Pagination(cursor=cursor, limit=limit))
    return create_response("获取文件版本成功", serialize_page(page))


@router.patch("/files/{file_id}/move", response_model=FileDetailResponse)
def move_file(
    file_id: int,
    body: FileMoveBody,
    db: Session = Depends(get_db),
    service: FileService = Depends(get_file_service),
):
    file = service.move_file(db, file_id, body.directoryId)
    return create_response("文件移动成功", serialize_file(file))


@router.patch("/files/{file_id}/name", response_model=FileDetailResponse)
def rename_file(
    file_id: int,
    body: FileRenameBody,
    db: Session = Depends(get_db),
    service: FileService = Depends(get_file_service),
):
    file = service.rename_file(db, file_id, body.name)
    return create_response("文件重命名成功", serialize_file(file))


@router.delete("/files/{file_id}", response_model=FileMutationResponse)
def delete_file(
    file_id: int,
    db: Session = Depends(get_db),
    service: FileService = Depends(get_file_service),
):
    """删除文件：元数据删除成功即视为成功，对象清理结果随 ``cleanup`` 返回。"""
    result = service.delete_file(db, file_id)
    msg = "文件删除成功"
    if result.cleanup.status is not CleanupStatusEnum.COMPLETE:
        msg = "文件删除成功，部分存储对象待清理"
    return create_response(msg, {"id": result.file_id, "deleted": True, "cleanup": result.cleanup.to_dict()})
