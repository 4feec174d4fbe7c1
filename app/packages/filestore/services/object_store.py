"""对象存储抽象与实现：统一封装 S3 与本地目录的签名直链与删除操作。

服务层只依赖 ``ObjectStore`` 接口：

- ``get_signed_url(mode, key)``：签发上传或下载用的限时 URL；
- ``delete_object(key)``：按 key 删除对象。

任何底层失败都会被转换为 ``TransientStoreError``，由调用方决定是否重试。
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.packages.filestore.core.config import Settings
from app.packages.filestore.core.constants import HTTP_STATUS_BAD_REQUEST, OBJECT_TOKEN_PURPOSE
from app.packages.filestore.core.enums import SignedUrlMode, StorageTypeEnum
from app.packages.filestore.core.exceptions import AppException, TransientStoreError
from app.packages.filestore.core.logger import logger
from app.packages.filestore.core.security import create_temporary_token


class ObjectStore:
    """对象存储接口。"""

    def validate_key(self, key: str) -> None:
        """在写入元数据之前校验 key 能否被当前存储接受，非法时抛出 ``AppException``。"""
        if not key or not key.strip():
            raise AppException("非法的对象 key", HTTP_STATUS_BAD_REQUEST)

    def get_signed_url(self, mode: SignedUrlMode, key: str) -> str:
        raise NotImplementedError

    def delete_object(self, key: str) -> None:
        raise NotImplementedError


# ------------------------------------------
# S3 实现（boto3）
# ------------------------------------------


class S3ObjectStore(ObjectStore):
    _OPERATIONS = {
        SignedUrlMode.UPLOAD: "put_object",
        SignedUrlMode.DOWNLOAD: "get_object",
    }

    def __init__(
        self,
        *,
        bucket: str,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        prefix: Optional[str] = None,
        expires_in: int = 900,
        client=None,
    ):
        self.bucket = bucket
        self.prefix = (prefix or "").strip("/")
        self.expires_in = expires_in
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(signature_version="s3v4"),
        )

    # 拼接基于 path_prefix 的对象 key
    def _join_key(self, key: str) -> str:
        if self.prefix:
            return f"{self.prefix}/{key.lstrip('/')}"
        return key

    def get_signed_url(self, mode: SignedUrlMode, key: str) -> str:
        try:
            return self._client.generate_presigned_url(
                self._OPERATIONS[SignedUrlMode(mode)],
                Params={"Bucket": self.bucket, "Key": self._join_key(key)},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("S3 presign failed mode=%s key=%s: %s", mode, key, exc)
            raise TransientStoreError(f"签名 URL 生成失败: {exc}") from exc

    def delete_object(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=self._join_key(key))
        except (BotoCoreError, ClientError) as exc:
            logger.warning("S3 delete failed key=%s: %s", key, exc)
            raise TransientStoreError(f"对象删除失败: {exc}") from exc


# ------------------------------------------
# 本地目录实现（开发/测试用）
# ------------------------------------------


class LocalObjectStore(ObjectStore):
    """把对象保存在本地目录中，签名 URL 指向本服务的 ``/objects/{token}`` 接口。"""

    def __init__(self, root: str | Path, *, base_url: str, expires_in: int = 900):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")
        self.expires_in = expires_in
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:  # pragma: no cover - 极端情况下可能失败
            raise TransientStoreError(f"无法创建本地根目录: {exc}") from exc

    # 统一的安全路径拼接，防止路径遍历
    def resolve(self, key: str) -> Path:
        rel = (key or "").strip().lstrip("/")
        if not rel:
            raise AppException("非法的对象 key", HTTP_STATUS_BAD_REQUEST)
        candidate = (self.root / rel).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise AppException("非法路径: 越权访问", HTTP_STATUS_BAD_REQUEST) from exc
        return candidate

    def validate_key(self, key: str) -> None:
        self.resolve(key)

    def get_signed_url(self, mode: SignedUrlMode, key: str) -> str:
        self.resolve(key)
        token = create_temporary_token(
            {"purpose": OBJECT_TOKEN_PURPOSE, "key": key, "mode": SignedUrlMode(mode).value},
            expires_seconds=self.expires_in,
        )
        return f"{self.base_url}/objects/{token}"

    def delete_object(self, key: str) -> None:
        target = self.resolve(key)
        try:
            # 允许幂等：不存在则忽略
            target.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Local delete failed key=%s: %s", key, exc)
            raise TransientStoreError(f"对象删除失败: {exc}") from exc

    def write_object(self, key: str, content: bytes) -> int:
        target = self.resolve(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as f:
            f.write(content)
        return len(content)

    def object_path(self, key: str) -> Optional[Path]:
        target = self.resolve(key)
        if not target.is_file():
            return None
        return target


def build_object_store(settings: Settings) -> ObjectStore:
    """根据配置构建对象存储客户端；进程启动时调用一次。"""
    t = (settings.storage_type or "").upper()
    if t == StorageTypeEnum.LOCAL.value:
        return LocalObjectStore(
            settings.local_root_directory,
            base_url=f"{settings.public_base_url.rstrip('/')}{settings.api_v1_str}",
            expires_in=settings.signed_url_expire_seconds,
        )
    if t == StorageTypeEnum.S3.value:
        if not settings.s3_bucket_name:
            raise AppException("S3 配置不完整：缺少 S3_BUCKET_NAME", HTTP_STATUS_BAD_REQUEST)
        return S3ObjectStore(
            bucket=settings.s3_bucket_name,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            endpoint_url=settings.s3_endpoint_url,
            prefix=settings.s3_path_prefix,
            expires_in=settings.signed_url_expire_seconds,
        )
    raise AppException("不支持的存储类型", HTTP_STATUS_BAD_REQUEST)
