"""文件路由：列表、登记、星标、回收站、永久删除与清空回收站。

变更类接口的业务日志由服务层统一输出；路由层只负责参数解析与依赖注入。
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from app.packages.drive.api.v1.schemas.files import (
    EmptyTrashResponse,
    FileDeleteResponse,
    FileNodeResponse,
    FileRegisterBody,
    FilesListResponse,
)
from app.packages.drive.core.dependencies import get_current_owner_id, get_db, get_store
from app.packages.drive.core.enums import FileViewEnum
from app.packages.drive.core.logger import logger
from app.packages.drive.services.file_service import file_service
from app.packages.drive.services.object_store import ObjectStore

router = APIRouter(prefix="/files", tags=["files"])


@router.get("", response_model=FilesListResponse)
def list_files(
    view: FileViewEnum = Query(FileViewEnum.ALL),
    parent_id: Optional[str] = Query(None, alias="parentId"),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    logger.debug("files.list owner=%s view=%s parent=%s", owner_id, view.value, parent_id)
    return file_service.list_files(db, owner_id=owner_id, view=view, parent_id=parent_id or None)


@router.post("", response_model=FileNodeResponse)
def register_file(
    payload: FileRegisterBody,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    return file_service.register_file(
        db,
        owner_id=owner_id,
        name=payload.name,
        path=payload.path,
        size=payload.size,
        mime_type=payload.mimeType,
        file_url=payload.fileUrl,
        thumbnail_url=payload.thumbnailUrl,
        parent_id=payload.parentId,
    )


@router.delete("/empty-trash", response_model=EmptyTrashResponse)
def empty_trash(
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_store),
    owner_id: str = Depends(get_current_owner_id),
):
    return file_service.empty_trash(db, store, owner_id=owner_id)


@router.patch("/{file_id}/star", response_model=FileNodeResponse)
def toggle_star(
    file_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    return file_service.toggle_star(db, owner_id=owner_id, node_id=file_id)


@router.patch("/{file_id}/trash", response_model=FileNodeResponse)
def toggle_trash(
    file_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    return file_service.toggle_trash(db, owner_id=owner_id, node_id=file_id)


@router.delete("/{file_id}/delete", response_model=FileDeleteResponse)
def delete_file(
    file_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_store),
    owner_id: str = Depends(get_current_owner_id),
):
    return file_service.delete_file(db, store, owner_id=owner_id, node_id=file_id)
