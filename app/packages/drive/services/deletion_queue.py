"""对象存储删除队列：把远端删除从数据库删除中解耦出来。

数据库行删除与任务登记在同一事务中完成；提交后再逐条调用对象存储。
远端失败只记录日志并累计重试次数，不会阻塞本地清理，也不会丢失待删对象。
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.enums import ObjectDeletionStatusEnum
from app.packages.drive.core.logger import logger
from app.packages.drive.crud.object_deletion import object_deletion_crud
from app.packages.drive.db import session as db_session
from app.packages.drive.services.object_store import ObjectStore, get_object_store


class DeletionQueueService:
    def drain(
        self,
        db: Session,
        store: ObjectStore,
        *,
        ids: Optional[Iterable[int]] = None,
        exclude_ids: Optional[Iterable[int]] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """处理待删除任务，返回本轮统计。每条任务单独提交，部分成功也会被保留。"""
        max_attempts = get_settings().object_delete_max_attempts
        deleted = 0
        retrying = 0
        failed = 0

        for task in object_deletion_crud.list_pending(db, ids=ids, exclude_ids=exclude_ids, limit=limit):
            try:
                store.delete(task.path)
            except Exception as exc:
                task.attempts += 1
                task.last_error = str(exc)[:2000]
                if task.attempts >= max_attempts:
                    task.status = ObjectDeletionStatusEnum.FAILED.value
                    failed += 1
                    logger.error(
                        "Giving up deleting object %s of node %s after %s attempts: %s",
                        task.path, task.node_id, task.attempts, exc,
                    )
                else:
                    retrying += 1
                    logger.warning(
                        "Failed to delete object %s of node %s (attempt %s): %s",
                        task.path, task.node_id, task.attempts, exc,
                    )
            else:
                deleted += 1
                logger.info("Deleted object %s of node %s", task.path, task.node_id)
                # 成功的任务直接删除，表中只保留待重试与失败的记录
                object_deletion_crud.hard_delete(db, task)
                continue
            object_deletion_crud.save(db, task)

        return {"deleted": deleted, "retrying": retrying, "failed": failed}

    def drain_after_commit(self, db: Session, store: ObjectStore, ids: Iterable[int]) -> Dict[str, Any]:
        """请求提交后的尽力而为删除。

        先处理本次请求登记的任务，再顺带重试至多 ``OBJECT_DELETE_BATCH_SIZE`` 条更早的待删任务，
        这样失败的任务在进程运行期间也会被持续重试。队列处理本身出错时只记录日志，任务保留待下次重试。
        """
        id_list = list(ids)
        stats = {"deleted": 0, "retrying": 0, "failed": 0}
        batch_size = get_settings().object_delete_batch_size
        try:
            if id_list:
                stats = self.drain(db, store, ids=id_list)
            if batch_size > 0:
                backlog = self.drain(db, store, exclude_ids=id_list, limit=batch_size)
                stats = {key: stats[key] + backlog[key] for key in stats}
        except Exception:
            db.rollback()
            logger.exception("Object deletion queue drain failed for tasks %s", id_list)
        return stats


deletion_queue_service = DeletionQueueService()


def drain_pending_deletions() -> None:
    """启动时重试上次进程退出前未完成的对象删除任务。"""
    with db_session.SessionLocal() as db:
        stats = deletion_queue_service.drain(db, get_object_store())
    if any(stats.values()):
        logger.info("Processed pending object deletions on startup: %s", stats)
