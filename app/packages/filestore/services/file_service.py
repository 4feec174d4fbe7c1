"""文件服务：在元数据库与对象存储之间编排文件级操作。

创建：文件与首个版本在同一事务中写入，提交后才签发上传 URL。
删除：先读取全部版本 key，再在同一事务中删除版本与文件，提交后逐个清理对象。
元数据永远不会指向已删除的文件；清理失败只会留下孤儿对象，并登记到 ``orphaned_objects``。
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.packages.filestore.core.exceptions import DuplicateKeyError, NotFoundError, TransientStoreError
from app.packages.filestore.core.logger import logger
from app.packages.filestore.crud.file import file_crud
from app.packages.filestore.crud.file_version import file_version_crud
from app.packages.filestore.crud.orphaned_object import orphaned_object_crud
from app.packages.filestore.models.file import File
from app.packages.filestore.services.consistency import (
    delete_objects,
    ensure_key_available,
    issue_upload_url,
    metadata_read,
    metadata_transaction,
)
from app.packages.filestore.services.key_generator import KeyGenerator, key_generator as default_key_generator
from app.packages.filestore.services.object_store import ObjectStore
from app.packages.filestore.services.results import CleanupReport, CreateFileResult, DeleteFileResult


class FileService:
    def __init__(self, object_store: ObjectStore, *, key_generator: Optional[KeyGenerator] = None):
        self.object_store = object_store
        self.key_generator = key_generator or default_key_generator

    # ----------------------------
    # 创建
    # ----------------------------
    def create_file(
        self,
        db: Session,
        *,
        name: str,
        directory_id: str,
        mime_type: str,
        size: int,
        key: Optional[str] = None,
    ) -> CreateFileResult:
        key = key or self.key_generator.generate()
        # 提交之前校验 key，避免留下无法签发上传链接的记录
        self.object_store.validate_key(key)
        try:
            with metadata_transaction(db):
                ensure_key_available(db, key)
                file = file_crud.create(db, {"name": name, "directory_id": directory_id}, auto_commit=False)
                version = file_version_crud.create(
                    db,
                    {
                        "file_id": file.id,
                        "name": name,
                        "key": key,
                        "mime_type": mime_type,
                        "size": size,
                    },
                    auto_commit=False,
                )
        except IntegrityError as exc:
            raise DuplicateKeyError(key) from exc

        with metadata_read():
            db.refresh(file)
        logger.info("File created id=%s version_id=%s key=%s", file.id, version.id, key)
        url = issue_upload_url(self.object_store, key, file_id=file.id, version_id=version.id)
        return CreateFileResult(file=file, upload_url=url)

    # ----------------------------
    # 查询
    # ----------------------------
    def get_file(self, db: Session, file_id: int) -> File:
        with metadata_read():
            file = file_crud.get(db, file_id)
        if file is None:
            raise NotFoundError("文件不存在")
        return file

    def find_files(self, db: Session, query: Optional[str] = None) -> List[File]:
        with metadata_read():
            return file_crud.search(db, query)

    # ----------------------------
    # 修改
    # ----------------------------
    def move_file(self, db: Session, file_id: int, directory_id: str) -> File:
        with metadata_transaction(db):
            file = file_crud.get(db, file_id)
            if file is None:
                raise NotFoundError("文件不存在")
            file.directory_id = directory_id
            file_crud.save(db, file, auto_commit=False)
        db.refresh(file)
        logger.info("File moved id=%s directory_id=%s", file_id, directory_id)
        return file

    def rename_file(self, db: Session, file_id: int, name: str) -> File:
        with metadata_transaction(db):
            file = file_crud.get(db, file_id)
            if file is None:
                raise NotFoundError("文件不存在")
            file.name = name
            file_crud.save(db, file, auto_commit=False)
        db.refresh(file)
        logger.info("File renamed id=%s", file_id)
        return file

    # ----------------------------
    # 删除
    # ----------------------------
    def delete_file(self, db: Session, file_id: int) -> DeleteFileResult:
        # 1) 事务前快照：文件必须存在，并记下全部版本 key
        with metadata_read():
            if file_crud.get(db, file_id) is None:
                raise NotFoundError("文件不存在")
            keys = file_version_crud.list_keys(db, file_id)

        # 2) 单一事务删除版本与文件；文件行已被并发删除时整体回滚
        with metadata_transaction(db):
            # 快照之后新增的版本也会被删除，其 key 同样需要清理
            for key in file_version_crud.list_keys(db, file_id):
                if key not in keys:
                    keys.append(key)
            file_version_crud.delete_by_file(db, file_id, auto_commit=False)
            if file_crud.delete_by_id(db, file_id, auto_commit=False) == 0:
                raise NotFoundError("文件不存在")
        logger.info("File metadata deleted id=%s versions=%s", file_id, len(keys))

        # 3) 提交之后再清理对象存储
        report = delete_objects(self.object_store, keys)
        if not report.is_complete:
            logger.warning(
                "File %s deleted with incomplete object cleanup status=%s failed_keys=%s",
                file_id,
                report.status.value,
                report.failed_keys,
            )
            self._record_orphans(db, file_id, report)
        return DeleteFileResult(file_id=file_id, cleanup=report)

    def _record_orphans(self, db: Session, file_id: int, report: CleanupReport) -> None:
        try:
            with metadata_transaction(db):
                for key in report.failed_keys:
                    orphaned_object_crud.record(
                        db,
                        key=key,
                        file_id=file_id,
                        error=report.errors.get(key),
                        auto_commit=False,
                    )
        except TransientStoreError:
            # 逻辑删除已经成功；登记失败时 failed_keys 仍随结果返回给调用方
            logger.error("Failed to record orphaned objects for file %s: %s", file_id, report.failed_keys)
