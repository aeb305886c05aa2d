"""存储用量服务：按需统计用户已用空间并与配额比较。"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.constants import HTTP_STATUS_INTERNAL_SERVER_ERROR, HTTP_STATUS_OK
from app.packages.drive.core.exceptions import AppException
from app.packages.drive.core.logger import logger
from app.packages.drive.core.responses import create_response
from app.packages.drive.crud.file_node import file_node_crud


def usage_percentage(used: int, total: int) -> int:
    """``min(100, round(used / total * 100))``，0.5 向上取整。"""
    if total <= 0:
        return 100
    if used <= 0:
        return 0
    return min(100, (used * 200 + total) // (total * 2))


class StorageService:
    def get_usage(self, db: Session, *, owner_id: str) -> Dict[str, Any]:
        """统计未进回收站的文件（不含文件夹）大小之和，每次调用都从数据行重新计算。"""
        try:
            used = file_node_crud.sum_used_bytes(db, owner_id=owner_id)
        except SQLAlchemyError as exc:
            logger.exception("Failed to calculate storage for owner %s", owner_id)
            raise AppException("获取存储用量失败", HTTP_STATUS_INTERNAL_SERVER_ERROR) from exc

        total = get_settings().storage_quota_bytes
        data = {"used": used, "total": total, "percentage": usage_percentage(used, total)}
        return create_response("获取存储用量成功", data, HTTP_STATUS_OK)


storage_service = StorageService()
