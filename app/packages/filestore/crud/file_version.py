"""文件版本 CRUD。"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from app.packages.filestore.crud.base import CRUDBase
from app.packages.filestore.models.file_version import FileVersion


class CRUDFileVersion(CRUDBase[FileVersion]):
    def get_by_key(self, db: Session, key: str) -> Optional[FileVersion]:
        return self.query(db).filter(FileVersion.key == key).first()

    def list_keys(self, db: Session, file_id: int) -> List[str]:
        rows = (
            self.query(db)
            .with_entities(FileVersion.key)
            .filter(FileVersion.file_id == file_id)
            .order_by(FileVersion.id.asc())
            .all()
        )
        return [row[0] for row in rows]

    def delete_by_file(self, db: Session, file_id: int, *, auto_commit: bool = True) -> int:
        affected = (
            self.query(db)
            .filter(FileVersion.file_id == file_id)
            .delete(synchronize_session="fetch")
        )
        if auto_commit:
            db.commit()
        return int(affected or 0)

    def page_for_file(
        self,
        db: Session,
        file_id: int,
        *,
        after_id: Optional[int],
        limit: int,
    ) -> List[FileVersion]:
        """按创建顺序（自增 ID）做键集分页，多取一条用于判断是否还有下一页。"""
        q = self.query(db).filter(FileVersion.file_id == file_id)
        if after_id is not None:
            q = q.filter(FileVersion.id > after_id)
        return q.order_by(FileVersion.id.asc()).limit(limit + 1).all()


file_version_crud = CRUDFileVersion(FileVersion)
