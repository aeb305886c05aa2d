"""枚举定义：约束文件视图与对象删除任务状态的可选值。"""

from enum import Enum


class FileViewEnum(str, Enum):
    """文件列表的视图分类。"""

    ALL = "all"
    STARRED = "starred"
    TRASH = "trash"


class ObjectDeletionStatusEnum(str, Enum):
    """对象存储删除任务状态。"""

    PENDING = "pending"
    FAILED = "failed"


class ObjectStoreTypeEnum(str, Enum):
    LOCAL = "LOCAL"
    S3 = "S3"
    NONE = "NONE"
