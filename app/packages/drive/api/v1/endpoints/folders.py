"""文件夹路由：新建与递归删除。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.packages.drive.api.v1.schemas.files import FileNodeResponse, FolderCreateBody, FolderDeleteResponse
from app.packages.drive.core.dependencies import get_current_owner_id, get_db, get_store
from app.packages.drive.services.file_service import file_service
from app.packages.drive.services.object_store import ObjectStore

router = APIRouter(prefix="/folders", tags=["folders"])


@router.post("", response_model=FileNodeResponse)
def create_folder(
    payload: FolderCreateBody,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    return file_service.create_folder(db, owner_id=owner_id, name=payload.name, parent_id=payload.parentId)


@router.delete("/{folder_id}/delete", response_model=FolderDeleteResponse)
def delete_folder(
    folder_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_store),
    owner_id: str = Depends(get_current_owner_id),
):
    return file_service.delete_folder(db, store, owner_id=owner_id, folder_id=folder_id)
