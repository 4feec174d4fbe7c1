"""文件记录 CRUD。"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.packages.filestore.crud.base import CRUDBase
from app.packages.filestore.models.file import File


class CRUDFile(CRUDBase[File]):
    def search(self, db: Session, query: Optional[str]) -> List[File]:
        """按名称做大小写不敏感的子串匹配，结果按名称升序。"""
        q = self.query(db)
        needle = (query or "").strip().lower()
        if needle:
            # 转义 LIKE 通配符，保证按字面子串匹配
            escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            q = q.filter(func.lower(File.name).like(f"%{escaped}%", escape="\\"))
        return q.order_by(File.name.asc(), File.id.asc()).all()


file_crud = CRUDFile(File)
