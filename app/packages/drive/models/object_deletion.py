"""对象存储删除任务模型。

删除数据库行时在同一事务内写入一条任务，提交后再调用对象存储删除；
远端失败时任务保留为 pending，可在后续重试，避免对象泄漏。
"""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.drive.core.enums import ObjectDeletionStatusEnum
from app.packages.drive.models.base import Base, OwnedMixin, TimestampMixin


class ObjectDeletion(OwnedMixin, TimestampMixin, Base):
    __tablename__ = "object_deletions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # 被删除节点的 ID 与名称，仅用于排障
    node_id: Mapped[str] = mapped_column(String(36), nullable=False)
    node_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    path: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ObjectDeletionStatusEnum.PENDING.value, index=True
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
