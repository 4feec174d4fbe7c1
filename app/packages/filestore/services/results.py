"""服务层返回的结果结构。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.packages.filestore.core.enums import CleanupStatusEnum
from app.packages.filestore.models.file import File
from app.packages.filestore.models.file_version import FileVersion


@dataclass
class CleanupReport:
    """对象存储清理的汇总结果。

    ``failed_keys`` 中的 key 仍留在对象存储中，需要后续清理。
    """

    attempted_keys: List[str] = field(default_factory=list)
    failed_keys: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def status(self) -> CleanupStatusEnum:
        if not self.failed_keys:
            return CleanupStatusEnum.COMPLETE
        if len(self.failed_keys) < len(self.attempted_keys):
            return CleanupStatusEnum.PARTIAL
        return CleanupStatusEnum.FAILED

    @property
    def succeeded_keys(self) -> List[str]:
        failed = set(self.failed_keys)
        return [key for key in self.attempted_keys if key not in failed]

    @property
    def is_complete(self) -> bool:
        return self.status is CleanupStatusEnum.COMPLETE

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "attemptedKeys": list(self.attempted_keys),
            "failedKeys": list(self.failed_keys),
        }


@dataclass
class CreateFileResult:
    file: File
    upload_url: str


@dataclass
class CreateFileVersionResult:
    version: FileVersion
    upload_url: str


@dataclass
class DeleteFileResult:
    file_id: int
    cleanup: CleanupReport


@dataclass
class Pagination:
    cursor: Optional[str] = None
    limit: Optional[int] = None


@dataclass
class VersionPage:
    items: List[FileVersion]
    next_cursor: Optional[str]
    has_more: bool
