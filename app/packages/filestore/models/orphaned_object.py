"""孤儿对象记录：元数据已删除但对象存储清理失败的 key。"""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.filestore.models.base import Base, TimestampMixin


class OrphanedObject(TimestampMixin, Base):
    __tablename__ = "orphaned_objects"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    key: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    # 所属文件已被删除，这里只保留原始 ID 便于排查
    file_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    reason: Mapped[str] = mapped_column(String(64), default="file_deleted")
    attempts: Mapped[int] = mapped_column(Integer, default=1)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
