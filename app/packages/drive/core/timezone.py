"""时间工具：数据库时间统一按 UTC 存储，对外输出时转换为配置时区。"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from app.packages.drive.core.config import get_settings


def to_local(value: Optional[datetime]) -> Optional[datetime]:
    """转换到配置时区；SQLite 等返回的无时区时间视为 UTC。"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(get_settings().timezone_info)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    """输出带时区偏移的 ISO-8601 字符串，空值返回 ``None``。"""
    localized = to_local(value)
    return localized.isoformat() if localized is not None else None
