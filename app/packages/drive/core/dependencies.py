"""依赖注入模块：封装 FastAPI 中复用度高的依赖函数。"""

from collections.abc import Generator
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.packages.drive.core.constants import ACCESS_TOKEN_TYPE
from app.packages.drive.core.exceptions import UnauthorizedException
from app.packages.drive.core.security import decode_and_verify_token, extract_owner_id
from app.packages.drive.db import session as db_session
from app.packages.drive.services.object_store import ObjectStore, get_object_store

security_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """生成一个数据库会话，并在请求结束后自动关闭。"""
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_owner_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> str:
    """解析 ``Authorization`` 头部并返回当前请求的归属用户标识，缺失或非法时抛出 401。"""
    if not credentials:
        raise UnauthorizedException("缺少认证信息")

    if credentials.scheme.lower() != ACCESS_TOKEN_TYPE:
        raise UnauthorizedException("认证类型无效")

    payload = decode_and_verify_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Token 无效或已过期")

    owner_id = extract_owner_id(payload)
    if owner_id is None:
        raise UnauthorizedException("Token 无效")
    return owner_id


def get_store() -> ObjectStore:
    """返回对象存储实例；测试中可通过 ``dependency_overrides`` 替换。"""
    return get_object_store()
