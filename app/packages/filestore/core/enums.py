"""枚举定义：约束签名模式、存储类型以及清理结果的可选值。"""

from enum import Enum


class SignedUrlMode(str, Enum):
    """签名 URL 的用途：上传（PUT）或下载（GET）。"""

    UPLOAD = "put"
    DOWNLOAD = "get"


class StorageTypeEnum(str, Enum):
    S3 = "S3"
    LOCAL = "LOCAL"


class CleanupStatusEnum(str, Enum):
    """对象清理的汇总状态。"""

    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"
