"""文件操作服务：文件/文件夹树的查询、星标、回收站与永久删除。

所有操作都以 ``owner_id`` 为边界：节点不存在与节点属于他人统一视为“不存在”。
多行变更（递归删除文件夹、清空回收站）包在单个事务中，失败时整体回滚；
对象存储中的文件实体通过删除队列在事务提交后清理。
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.constants import (
    FOLDER_MIME_TYPE,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CONFLICT,
    HTTP_STATUS_INTERNAL_SERVER_ERROR,
    HTTP_STATUS_OK,
)
from app.packages.drive.core.enums import FileViewEnum
from app.packages.drive.core.events import publish_storage_changed
from app.packages.drive.core.exceptions import (
    AppException,
    NodeNotFoundException,
    TreeStructureException,
    WrongNodeTypeException,
)
from app.packages.drive.core.logger import logger
from app.packages.drive.core.responses import create_response
from app.packages.drive.core.timezone import format_datetime
from app.packages.drive.crud.file_node import file_node_crud
from app.packages.drive.crud.object_deletion import object_deletion_crud
from app.packages.drive.models.file_node import FileNode
from app.packages.drive.services.deletion_queue import deletion_queue_service
from app.packages.drive.services.object_store import ObjectStore

DEFAULT_FILE_MIME_TYPE = "application/octet-stream"


class FileService:
    # ----------------------------
    # 查询
    # ----------------------------
    def list_files(
        self,
        db: Session,
        *,
        owner_id: str,
        view: FileViewEnum = FileViewEnum.ALL,
        parent_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """按视图列出用户的节点：文件夹在前，其次按名称（不区分大小写）升序。

        ``trash`` 与 ``starred`` 视图忽略 ``parent_id``；``all`` 视图未指定父目录时返回根目录内容。
        """
        with self._store_errors(db, "获取文件列表失败"):
            if view == FileViewEnum.ALL and parent_id:
                parent = self._get_owned_or_404(db, owner_id=owner_id, node_id=parent_id)
                if not parent.is_folder:
                    raise WrongNodeTypeException("指定的父级不是文件夹")
            nodes = file_node_crud.list_view(db, owner_id=owner_id, view=view, parent_id=parent_id)

        # 二次校验归属，防止过滤条件缺陷导致越权返回
        visible = [node for node in nodes if node.owner_id == owner_id]
        if len(visible) != len(nodes):
            logger.error(
                "files.list dropped %s rows not owned by %s (view=%s parent=%s)",
                len(nodes) - len(visible), owner_id, view.value, parent_id,
            )
        return create_response("获取文件列表成功", [self._serialize_node(n) for n in visible], HTTP_STATUS_OK)

    # ----------------------------
    # 新建节点
    # ----------------------------
    def create_folder(
        self,
        db: Session,
        *,
        owner_id: str,
        name: str,
        parent_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        folder_name = (name or "").strip()
        if not folder_name:
            raise AppException("文件夹名称不能为空", HTTP_STATUS_BAD_REQUEST)

        with self._store_errors(db, "创建文件夹失败"):
            self._ensure_parent_folder(db, owner_id=owner_id, parent_id=parent_id)
            folder = file_node_crud.create(
                db,
                {
                    "owner_id": owner_id,
                    "name": folder_name,
                    "path": "",
                    "size": 0,
                    "mime_type": FOLDER_MIME_TYPE,
                    "file_url": None,
                    "thumbnail_url": None,
                    "parent_id": parent_id or None,
                    "is_folder": True,
                },
            )
        logger.info("Created folder %s (%s) for owner %s under %s", folder.id, folder_name, owner_id, parent_id)
        return create_response("文件夹创建成功", self._serialize_node(folder), HTTP_STATUS_OK)

    def register_file(
        self,
        db: Session,
        *,
        owner_id: str,
        name: str,
        path: str,
        size: int,
        mime_type: Optional[str] = None,
        file_url: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """登记一个已经上传到对象存储的文件。"""
        file_name = (name or "").strip()
        if not file_name:
            raise AppException("文件名称不能为空", HTTP_STATUS_BAD_REQUEST)
        object_path = (path or "").strip()
        if not object_path:
            raise AppException("文件存储路径不能为空", HTTP_STATUS_BAD_REQUEST)
        if size is None or size < 0:
            raise AppException("文件大小不能为负数", HTTP_STATUS_BAD_REQUEST)
        final_mime = (mime_type or "").strip() or DEFAULT_FILE_MIME_TYPE
        if final_mime == FOLDER_MIME_TYPE:
            raise AppException(f"文件类型不能为保留值 {FOLDER_MIME_TYPE}", HTTP_STATUS_BAD_REQUEST)

        with self._store_errors(db, "登记文件失败"):
            self._ensure_parent_folder(db, owner_id=owner_id, parent_id=parent_id)
            node = file_node_crud.create(
                db,
                {
                    "owner_id": owner_id,
                    "name": file_name,
                    "path": object_path,
                    "size": int(size),
                    "mime_type": final_mime,
                    "file_url": file_url,
                    "thumbnail_url": thumbnail_url,
                    "parent_id": parent_id or None,
                    "is_folder": False,
                },
            )
        logger.info("Registered file %s (%s, %s bytes) for owner %s", node.id, file_name, size, owner_id)
        publish_storage_changed(owner_id, reason="file_registered")
        return create_response("文件登记成功", self._serialize_node(node), HTTP_STATUS_OK)

    # ----------------------------
    # 星标 / 回收站
    # ----------------------------
    def toggle_star(self, db: Session, *, owner_id: str, node_id: str) -> Dict[str, Any]:
        with self._store_errors(db, "更新星标失败"):
            node = self._get_owned_or_404(db, owner_id=owner_id, node_id=node_id)
            node.is_starred = not node.is_starred
            file_node_crud.save(db, node)
        logger.info("Node %s starred=%s by owner %s", node.id, node.is_starred, owner_id)
        msg = "已添加星标" if node.is_starred else "已取消星标"
        return create_response(msg, self._serialize_node(node), HTTP_STATUS_OK)

    def toggle_trash(self, db: Session, *, owner_id: str, node_id: str) -> Dict[str, Any]:
        """切换单个节点的回收站标记，不级联到子节点。"""
        with self._store_errors(db, "更新回收站状态失败"):
            node = self._get_owned_or_404(db, owner_id=owner_id, node_id=node_id)
            node.is_trashed = not node.is_trashed
            file_node_crud.save(db, node)
        logger.info("Node %s trashed=%s by owner %s", node.id, node.is_trashed, owner_id)
        publish_storage_changed(owner_id, reason="trash_toggled")
        msg = "已移入回收站" if node.is_trashed else "已从回收站恢复"
        return create_response(msg, self._serialize_node(node), HTTP_STATUS_OK)

    # ----------------------------
    # 永久删除
    # ----------------------------
    def delete_file(self, db: Session, store: ObjectStore, *, owner_id: str, node_id: str) -> Dict[str, Any]:
        with self._store_errors(db, "删除文件失败"):
            node = self._get_owned_or_404(db, owner_id=owner_id, node_id=node_id)
            if node.is_folder:
                raise WrongNodeTypeException("该 ID 对应的是文件夹，请使用文件夹删除接口")
            data = self._serialize_node(node)
            task_ids: List[int] = []
            self._remove_node(db, node, task_ids)
            db.commit()

        logger.info("Deleted file %s (%s) for owner %s", node_id, data["name"], owner_id, extra={"owner_id": owner_id})
        deletion_queue_service.drain_after_commit(db, store, task_ids)
        publish_storage_changed(owner_id, reason="file_deleted")
        return create_response("文件已永久删除", {"deletedFile": data}, HTTP_STATUS_OK)

    def delete_folder(self, db: Session, store: ObjectStore, *, owner_id: str, folder_id: str) -> Dict[str, Any]:
        """永久删除文件夹及其全部后代；整个子树在一个事务内删除。"""
        with self._store_errors(db, "删除文件夹失败"):
            folder = self._get_owned_or_404(db, owner_id=owner_id, node_id=folder_id)
            if not folder.is_folder:
                raise WrongNodeTypeException("该 ID 对应的是文件，而不是文件夹")
            data = self._serialize_node(folder)
            task_ids: List[int] = []
            removed = self._purge_subtree(db, owner_id=owner_id, root=folder, task_ids=task_ids, removed_ids=set())
            db.commit()

        logger.info(
            "Deleted folder %s (%s) with %s descendants for owner %s",
            folder_id, data["name"], removed - 1, owner_id,
            extra={"owner_id": owner_id},
        )
        deletion_queue_service.drain_after_commit(db, store, task_ids)
        publish_storage_changed(owner_id, reason="folder_deleted")
        return create_response("文件夹删除成功", {"deletedFolder": data, "deletedCount": removed}, HTTP_STATUS_OK)

    def empty_trash(self, db: Session, store: ObjectStore, *, owner_id: str) -> Dict[str, Any]:
        """删除所有带回收站标记的节点（不论所处层级）；被删文件夹下的后代一并清除。"""
        with self._store_errors(db, "清空回收站失败"):
            trashed = file_node_crud.list_trashed(db, owner_id=owner_id)
            task_ids: List[int] = []
            removed_ids: set[str] = set()
            removed = 0
            for node in trashed:
                if node.id in removed_ids:
                    continue
                if node.is_folder:
                    removed += self._purge_subtree(
                        db, owner_id=owner_id, root=node, task_ids=task_ids, removed_ids=removed_ids
                    )
                else:
                    self._remove_node(db, node, task_ids)
                    removed_ids.add(node.id)
                    removed += 1
            db.commit()

        logger.info("Emptied trash for owner %s: %s nodes removed", owner_id, removed, extra={"owner_id": owner_id})
        deletion_queue_service.drain_after_commit(db, store, task_ids)
        if removed:
            publish_storage_changed(owner_id, reason="trash_emptied")
        return create_response("回收站已清空", {"deletedCount": removed}, HTTP_STATUS_OK)

    # ----------------------------
    # 内部辅助
    # ----------------------------
    def _purge_subtree(
        self,
        db: Session,
        *,
        owner_id: str,
        root: FileNode,
        task_ids: List[int],
        removed_ids: set[str],
    ) -> int:
        """以显式栈深度优先删除 ``root`` 及其后代：文件夹先处理子节点再删除自身。

        子节点逐个串行处理；重复访问到同一节点（环）或层级超过上限时抛出
        ``TreeStructureException``，由调用方回滚事务。返回删除的行数。
        """
        max_depth = get_settings().max_folder_depth
        visited = {root.id}
        stack: list[tuple[FileNode, int, bool]] = [(root, 0, False)]
        removed = 0

        while stack:
            node, depth, expanded = stack.pop()
            if node.is_folder and not expanded:
                if depth >= max_depth:
                    logger.error("Folder %s exceeds max depth %s for owner %s", node.id, max_depth, owner_id)
                    raise TreeStructureException(f"目录层级超过上限（{max_depth}），操作已取消")
                stack.append((node, depth, True))
                children = file_node_crud.list_children(db, owner_id=owner_id, parent_id=node.id)
                # 逆序入栈，保证按列表顺序逐个处理
                for child in reversed(children):
                    if child.id in visited:
                        logger.error("Cycle detected at node %s under folder %s for owner %s", child.id, node.id, owner_id)
                        raise TreeStructureException("目录结构存在循环引用，操作已取消")
                    visited.add(child.id)
                    stack.append((child, depth + 1, False))
                continue

            self._remove_node(db, node, task_ids)
            removed_ids.add(node.id)
            removed += 1
        return removed

    @staticmethod
    def _remove_node(db: Session, node: FileNode, task_ids: List[int]) -> None:
        """删除单行；文件若有对象存储路径，先登记删除任务。不提交事务。"""
        if not node.is_folder and node.path:
            task = object_deletion_crud.enqueue(db, node)
            task_ids.append(task.id)
        file_node_crud.hard_delete(db, node, auto_commit=False)

    @staticmethod
    def _get_owned_or_404(db: Session, *, owner_id: str, node_id: str) -> FileNode:
        node = file_node_crud.get_owned(db, owner_id=owner_id, id=node_id)
        if node is None or node.owner_id != owner_id:
            raise NodeNotFoundException()
        return node

    def _ensure_parent_folder(self, db: Session, *, owner_id: str, parent_id: Optional[str]) -> None:
        if not parent_id:
            return
        parent = self._get_owned_or_404(db, owner_id=owner_id, node_id=parent_id)
        if not parent.is_folder:
            raise WrongNodeTypeException("父级节点必须是文件夹")

    @contextmanager
    def _store_errors(self, db: Session, msg: str) -> Iterator[None]:
        """把存储层异常转换为统一的业务异常：版本冲突返回 409，其余返回通用 500。"""
        try:
            yield
        except AppException:
            db.rollback()
            raise
        except StaleDataError as exc:
            db.rollback()
            logger.warning("%s: concurrent modification detected (%s)", msg, exc)
            raise AppException("文件已被其他请求修改，请刷新后重试", HTTP_STATUS_CONFLICT) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("%s: storage layer error", msg)
            raise AppException(msg, HTTP_STATUS_INTERNAL_SERVER_ERROR) from exc

    @staticmethod
    def _serialize_node(node: FileNode) -> Dict[str, Any]:
        return {
            "id": node.id,
            "name": node.name,
            "path": node.path,
            "size": int(node.size or 0),
            "mimeType": node.mime_type,
            "fileUrl": node.file_url,
            "thumbnailUrl": node.thumbnail_url,
            "ownerId": node.owner_id,
            "parentId": node.parent_id,
            "isFolder": bool(node.is_folder),
            "isStarred": bool(node.is_starred),
            "isTrashed": bool(node.is_trashed),
            "createdAt": format_datetime(node.create_time),
            "updatedAt": format_datetime(node.update_time),
        }


file_service = FileService()
