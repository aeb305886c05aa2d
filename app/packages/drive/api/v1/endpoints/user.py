"""当前用户相关路由：存储用量。"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.packages.drive.api.v1.schemas.storage import StorageUsageResponse
from app.packages.drive.core.dependencies import get_current_owner_id, get_db
from app.packages.drive.services.storage_service import storage_service

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/storage", response_model=StorageUsageResponse)
def get_storage_usage(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    return storage_service.get_usage(db, owner_id=owner_id)
