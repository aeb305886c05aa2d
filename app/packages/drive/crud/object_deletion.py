"""ObjectDeletion CRUD。"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.packages.drive.core.enums import ObjectDeletionStatusEnum
from app.packages.drive.crud.base import CRUDBase
from app.packages.drive.models.file_node import FileNode
from app.packages.drive.models.object_deletion import ObjectDeletion


class CRUDObjectDeletion(CRUDBase[ObjectDeletion]):
    def enqueue(self, db: Session, node: FileNode) -> ObjectDeletion:
        """为文件节点登记一条待删除任务，不提交事务。"""
        return self.create(
            db,
            {
                "owner_id": node.owner_id,
                "node_id": node.id,
                "node_name": node.name,
                "path": node.path,
                "status": ObjectDeletionStatusEnum.PENDING.value,
                "attempts": 0,
            },
            auto_commit=False,
        )

    def list_pending(
        self,
        db: Session,
        *,
        ids: Optional[Iterable[int]] = None,
        exclude_ids: Optional[Iterable[int]] = None,
        limit: Optional[int] = None,
    ) -> list[ObjectDeletion]:
        """按登记顺序列出待处理任务，最早登记的优先。"""
        query = self.query(db).filter(ObjectDeletion.status == ObjectDeletionStatusEnum.PENDING.value)
        if exclude_ids:
            query = query.filter(ObjectDeletion.id.notin_(list(exclude_ids)))
        if ids is not None:
            id_list = list(ids)
            if not id_list:
                return []
            query = query.filter(ObjectDeletion.id.in_(id_list))
        query = query.order_by(ObjectDeletion.id.asc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()


object_deletion_crud = CRUDObjectDeletion(ObjectDeletion)
