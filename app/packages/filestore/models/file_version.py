"""文件版本模型：每个版本对应对象存储中的一个 key。"""

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.packages.filestore.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.packages.filestore.models.file import File


class FileVersion(TimestampMixin, Base):
    __tablename__ = "file_versions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    file_id: Mapped[int] = mapped_column(ForeignKey("files.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    mime_type: Mapped[str] = mapped_column(String(255))
    # 调用方声明的字节数，服务端不做校验
    size: Mapped[int] = mapped_column(BigInteger, default=0)
    key: Mapped[str] = mapped_column(String(255), unique=True, index=True)

    file: Mapped["File"] = relationship(back_populates="versions")
