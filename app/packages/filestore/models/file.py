"""文件模型：逻辑文件的元数据，字节内容由其版本指向对象存储。"""

from typing import List, TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.packages.filestore.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.packages.filestore.models.file_version import FileVersion


class File(TimestampMixin, Base):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    # 目录归属仅作为引用保存，不校验目录是否存在
    directory_id: Mapped[str] = mapped_column(String(64), index=True)

    versions: Mapped[List["FileVersion"]] = relationship(
        back_populates="file",
        order_by="FileVersion.id",
        lazy="selectin",
        passive_deletes=True,
    )
