"""孤儿对象路由：查看与重试清理删除文件后残留的对象。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.packages.filestore.api.v1.schemas.file_versions import CleanupResponse, OrphanListResponse, serialize_orphan
from app.packages.filestore.core.constants import DEFAULT_ORPHAN_BATCH_SIZE
from app.packages.filestore.core.dependencies import get_db, get_orphan_service
from app.packages.filestore.core.responses import create_response
from app.packages.filestore.services.orphan_service import OrphanCleanupService

router = APIRouter(tags=["orphaned-objects"])


@router.get("/orphaned-objects", response_model=OrphanListResponse)
def list_orphans(
    limit: int = Query(DEFAULT_ORPHAN_BATCH_SIZE, ge=1, le=1000),
    db: Session = Depends(get_db),
    service: OrphanCleanupService = Depends(get_orphan_service),
):
    rows = service.list_orphans(db, limit=limit)
    return create_response("获取待清理对象成功", [serialize_orphan(r) for r in rows])


@router.post("/orphaned-objects/purge", response_model=CleanupResponse)
def purge_orphans(
    limit: int = Query(DEFAULT_ORPHAN_BATCH_SIZE, ge=1, le=1000),
    db: Session = Depends(get_db),
    service: OrphanCleanupService = Depends(get_orphan_service),
):
    report = service.purge_orphans(db, limit=limit)
    return create_response("清理完成", report.to_dict())
