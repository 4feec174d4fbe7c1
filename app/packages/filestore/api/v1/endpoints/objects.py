"""本地存储的签名直链：仅在 ``STORAGE_TYPE=LOCAL`` 时提供对象的上传与下载。

令牌由 ``LocalObjectStore.get_signed_url`` 签发，载荷包含 key 与用途（put/get），
持有令牌即可在有效期内完成一次对应操作，无需其他认证。
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.packages.filestore.core.constants import OBJECT_TOKEN_PURPOSE
from app.packages.filestore.core.dependencies import get_db, get_object_store
from app.packages.filestore.core.enums import SignedUrlMode
from app.packages.filestore.core.logger import logger
from app.packages.filestore.core.responses import create_response
from app.packages.filestore.core.security import decode_and_verify_token
from app.packages.filestore.crud.file_version import file_version_crud
from app.packages.filestore.services.object_store import LocalObjectStore, ObjectStore

router = APIRouter(tags=["objects"])


def _verify(token: str, mode: SignedUrlMode, store: ObjectStore) -> Dict[str, Any]:
    if not isinstance(store, LocalObjectStore):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="当前存储类型不支持直链访问")
    payload = decode_and_verify_token(token, verify_exp=True)
    if not payload or payload.get("purpose") != OBJECT_TOKEN_PURPOSE or payload.get("mode") != mode.value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="签名无效或已过期")
    if not isinstance(payload.get("key"), str) or not payload["key"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="签名载荷不完整")
    return payload


@router.put("/objects/{token}")
async def upload_object(
    token: str,
    request: Request,
    store: ObjectStore = Depends(get_object_store),
):
    payload = _verify(token, SignedUrlMode.UPLOAD, store)
    content = await request.body()
    written = store.write_object(payload["key"], content)
    logger.info("Local object stored key=%s bytes=%s", payload["key"], written)
    return create_response("上传成功", {"key": payload["key"], "size": written})


@router.get("/objects/{token}")
def download_object(
    token: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    payload = _verify(token, SignedUrlMode.DOWNLOAD, store)
    key = payload["key"]
    path = store.object_path(key)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="对象不存在")
    version = file_version_crud.get_by_key(db, key)
    return FileResponse(
        str(path),
        media_type=(version.mime_type if version else None) or "application/octet-stream",
        filename=version.name if version else None,
    )
