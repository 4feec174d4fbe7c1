"""孤儿对象清理服务：重试删除那些元数据已删除、但对象存储清理失败的 key。"""

from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session

from app.packages.filestore.core.constants import DEFAULT_ORPHAN_BATCH_SIZE
from app.packages.filestore.core.logger import logger
from app.packages.filestore.crud.file_version import file_version_crud
from app.packages.filestore.crud.orphaned_object import orphaned_object_crud
from app.packages.filestore.models.orphaned_object import OrphanedObject
from app.packages.filestore.services.consistency import delete_objects, metadata_read, metadata_transaction
from app.packages.filestore.services.object_store import ObjectStore
from app.packages.filestore.services.results import CleanupReport


class OrphanCleanupService:
    def __init__(self, object_store: ObjectStore):
        self.object_store = object_store

    def list_orphans(self, db: Session, *, limit: int = DEFAULT_ORPHAN_BATCH_SIZE) -> List[OrphanedObject]:
        with metadata_read():
            return orphaned_object_crud.list_oldest(db, limit=limit)

    def purge_orphans(self, db: Session, *, limit: int = DEFAULT_ORPHAN_BATCH_SIZE) -> CleanupReport:
        rows = self.list_orphans(db, limit=limit)
        # key 已被现存版本重新使用时只删除登记，不能再删除对象
        with metadata_read():
            live_keys = {row.key for row in rows if file_version_crud.get_by_key(db, row.key) is not None}
        if live_keys:
            logger.warning("Skipping orphan keys now owned by live versions: %s", sorted(live_keys))
        report = delete_objects(self.object_store, [row.key for row in rows if row.key not in live_keys])
        failed = set(report.failed_keys)

        with metadata_transaction(db):
            for row in rows:
                if row.key in live_keys:
                    orphaned_object_crud.delete_by_id(db, row.id, auto_commit=False)
                elif row.key in failed:
                    row.attempts = (row.attempts or 0) + 1
                    row.last_error = report.errors.get(row.key)
                    orphaned_object_crud.save(db, row, auto_commit=False)
                else:
                    orphaned_object_crud.delete_by_id(db, row.id, auto_commit=False)

        logger.info(
            "Orphan purge finished attempted=%s failed=%s",
            len(report.attempted_keys),
            len(report.failed_keys),
        )
        return report
