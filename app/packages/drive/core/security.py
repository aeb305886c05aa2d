"""安全模块：签发与解析访问令牌，令牌中携带文件归属用户的标识。

登录、注册等认证流程由外部身份服务完成，本服务只校验其签发的 JWT。
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from .config import get_settings
from .logger import logger


def create_access_token(subject: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """根据传入载荷生成带有过期时间的签名 JWT。"""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta else timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = subject.copy()
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_and_verify_token(token: str, *, verify_exp: bool = True) -> Optional[Dict[str, Any]]:
    """解码并校验 JWT，默认校验过期时间，失败时返回 ``None``。"""
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": verify_exp},
        )
    except JWTError as exc:  # pragma: no cover - logging side effect
        logger.warning("Failed to verify JWT: %s", exc)
        return None


def extract_owner_id(payload: Dict[str, Any]) -> Optional[str]:
    """从令牌载荷中取出归属用户标识：优先 ``sub``，兼容 ``user_id``。"""
    owner_id = payload.get("sub")
    if owner_id is None:
        owner_id = payload.get("user_id")
    if owner_id is None:
        return None
    owner_id = str(owner_id).strip()
    return owner_id or None
