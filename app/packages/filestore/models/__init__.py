"""模型包初始化，便于统一导入 ORM 实体并触发模型注册。"""

from app.packages.filestore.models.file import File
from app.packages.filestore.models.file_version import FileVersion
from app.packages.filestore.models.orphaned_object import OrphanedObject

__all__ = [
    "File",
    "FileVersion",
    "OrphanedObject",
]
