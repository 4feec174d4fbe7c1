"""元数据与对象存储之间的一致性辅助方法。

约定：
- 元数据事务是权威事件，必须先提交；对象存储操作只在提交之后发生；
- 事务内任何异常都会回滚，数据库连接类故障统一转换为 ``TransientStoreError``；
- 删除后的对象清理逐个执行，单个失败不会中断后续清理。
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.packages.filestore.core.enums import SignedUrlMode
from app.packages.filestore.core.exceptions import DuplicateKeyError, TransientStoreError, UploadCapabilityError
from app.packages.filestore.core.logger import logger
from app.packages.filestore.crud.file_version import file_version_crud
from app.packages.filestore.crud.orphaned_object import orphaned_object_crud
from app.packages.filestore.services.object_store import ObjectStore
from app.packages.filestore.services.results import CleanupReport


@contextmanager
def metadata_transaction(db: Session) -> Iterator[Session]:
    """在一个数据库事务中执行代码块：成功则提交，失败则回滚并抛出。"""
    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except OperationalError as exc:
        db.rollback()
        logger.warning("Metadata transaction failed: %s", exc)
        raise TransientStoreError("元数据存储暂时不可用，请稍后重试") from exc
    except Exception:
        db.rollback()
        raise


@contextmanager
def metadata_read() -> Iterator[None]:
    """只读查询的错误转换。"""
    try:
        yield
    except OperationalError as exc:
        logger.warning("Metadata read failed: %s", exc)
        raise TransientStoreError("元数据存储暂时不可用，请稍后重试") from exc


def ensure_key_available(db: Session, key: str) -> None:
    """key 既不能被现有版本占用，也不能是待清理的孤儿对象，否则清理时会删掉新版本的字节。"""
    if file_version_crud.get_by_key(db, key) is not None:
        raise DuplicateKeyError(key)
    if orphaned_object_crud.get_by_key(db, key) is not None:
        raise DuplicateKeyError(key)


def issue_upload_url(
    object_store: ObjectStore,
    key: str,
    *,
    file_id: Optional[int],
    version_id: Optional[int],
) -> str:
    """为已提交的版本签发上传 URL；失败时抛出 ``UploadCapabilityError``，不回滚元数据。"""
    try:
        return object_store.get_signed_url(SignedUrlMode.UPLOAD, key)
    except TransientStoreError as exc:
        logger.error(
            "Upload URL issuance failed after commit file_id=%s version_id=%s key=%s",
            file_id,
            version_id,
            key,
        )
        raise UploadCapabilityError(file_id=file_id, version_id=version_id, key=key) from exc


def delete_objects(object_store: ObjectStore, keys: Iterable[str]) -> CleanupReport:
    """按顺序删除对象，单个失败只记录不中断，最终返回汇总结果。"""
    report = CleanupReport()
    for key in keys:
        report.attempted_keys.append(key)
        try:
            object_store.delete_object(key)
        except Exception as exc:
            logger.warning("Object cleanup failed key=%s: %s", key, exc, exc_info=True)
            report.failed_keys.append(key)
            report.errors[key] = str(exc)
    return report
