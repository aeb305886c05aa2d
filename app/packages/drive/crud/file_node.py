"""FileNode CRUD。"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from app.packages.drive.core.enums import FileViewEnum
from app.packages.drive.crud.base import CRUDBase
from app.packages.drive.models.file_node import FileNode


class CRUDFileNode(CRUDBase[FileNode]):
    def get_owned(self, db: Session, *, owner_id: str, id: str) -> FileNode | None:
        return self.owned(db, owner_id).filter(FileNode.id == id).first()

    def list_view(
        self,
        db: Session,
        *,
        owner_id: str,
        view: FileViewEnum = FileViewEnum.ALL,
        parent_id: Optional[str] = None,
    ) -> list[FileNode]:
        query = self.owned(db, owner_id)
        if view == FileViewEnum.TRASH:
            query = query.filter(FileNode.is_trashed.is_(True))
        elif view == FileViewEnum.STARRED:
            query = query.filter(FileNode.is_starred.is_(True), FileNode.is_trashed.is_(False))
        else:
            query = query.filter(FileNode.is_trashed.is_(False))
            if parent_id:
                query = query.filter(FileNode.parent_id == parent_id)
            else:
                query = query.filter(FileNode.parent_id.is_(None))
        return self._ordered(query).all()

    def list_children(self, db: Session, *, owner_id: str, parent_id: str) -> list[FileNode]:
        """列出直接子节点（不区分是否在回收站）。"""
        query = self.owned(db, owner_id).filter(FileNode.parent_id == parent_id)
        return self._ordered(query).all()

    def list_trashed(self, db: Session, *, owner_id: str) -> list[FileNode]:
        return self.owned(db, owner_id).filter(FileNode.is_trashed.is_(True)).all()

    def sum_used_bytes(self, db: Session, *, owner_id: str) -> int:
        total = (
            db.query(func.coalesce(func.sum(FileNode.size), 0))
            .filter(
                FileNode.owner_id == owner_id,
                FileNode.is_trashed.is_(False),
                FileNode.is_folder.is_(False),
            )
            .scalar()
        )
        return int(total or 0)

    # 文件夹优先，其次名称不区分大小写升序；原始名称与 ID 作为稳定的次级排序
    @staticmethod
    def _ordered(query: Query) -> Query:
        return query.order_by(
            FileNode.is_folder.desc(),
            func.lower(FileNode.name).asc(),
            FileNode.name.asc(),
            FileNode.id.asc(),
        )


file_node_crud = CRUDFileNode(FileNode)
