"""统一的文件系统节点模型（文件与文件夹合并）。

存储规则：
- parent_id：指向同一用户的另一个节点（必须是文件夹），NULL 表示位于根目录；
  这是弱引用，不建外键约束，级联删除由服务层按策略完成；
- is_folder：创建后不可变；文件夹 size=0、path=""、mime_type="folder"、无 URL；
- path：对象存储中的引用路径，仅文件有意义；
- version：乐观锁版本号，并发切换星标/回收站时用于识别过期写入。
"""

import uuid
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.drive.models.base import Base, OwnedMixin, TimestampMixin


def _new_id() -> str:
    return str(uuid.uuid4())


class FileNode(OwnedMixin, TimestampMixin, Base):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # 对象存储引用，例如 "/uploads/user_1/resume.png"
    path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parent_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    is_folder: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_starred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_trashed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_files_owner_parent", "owner_id", "parent_id"),
        Index("ix_files_owner_trashed", "owner_id", "is_trashed"),
    )
