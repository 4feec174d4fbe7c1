"""孤儿对象记录 CRUD。"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from app.packages.filestore.crud.base import CRUDBase
from app.packages.filestore.models.orphaned_object import OrphanedObject


class CRUDOrphanedObject(CRUDBase[OrphanedObject]):
    def get_by_key(self, db: Session, key: str) -> Optional[OrphanedObject]:
        return self.query(db).filter(OrphanedObject.key == key).first()

    def record(
        self,
        db: Session,
        *,
        key: str,
        file_id: Optional[int],
        error: Optional[str],
        auto_commit: bool = True,
    ) -> OrphanedObject:
        """登记一条清理失败的 key；已存在时累加尝试次数。"""
        existing = self.get_by_key(db, key)
        if existing is not None:
            existing.attempts = (existing.attempts or 0) + 1
            existing.last_error = error
            return self.save(db, existing, auto_commit=auto_commit)
        return self.create(
            db,
            {"key": key, "file_id": file_id, "last_error": error, "attempts": 1},
            auto_commit=auto_commit,
        )

    def list_oldest(self, db: Session, *, limit: int) -> List[OrphanedObject]:
        return self.query(db).order_by(OrphanedObject.id.asc()).limit(limit).all()

    def count(self, db: Session) -> int:
        return self.query(db).count()


orphaned_object_crud = CRUDOrphanedObject(OrphanedObject)
