"""对象存储抽象与实现：统一封装本地目录与 S3 上文件实体的删除操作。

服务只记录文件在对象存储中的引用路径（FileNode.path），上传链路不在本服务内；
这里仅需要在永久删除时清理对应的对象。
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from fastapi import status

from app.packages.drive.core.config import Settings, get_settings
from app.packages.drive.core.constants import HTTP_STATUS_BAD_REQUEST
from app.packages.drive.core.enums import ObjectStoreTypeEnum
from app.packages.drive.core.exceptions import AppException
from app.packages.drive.core.logger import logger


class ObjectStore:
    """对象存储接口。

    ``delete`` 删除成功或对象本就不存在时返回 ``True``；传输层失败直接抛出异常，
    由调用方决定是否重试。
    """

    name = "abstract"

    def delete(self, path: str) -> bool:
        raise NotImplementedError


# ------------------------------------------
# 本地文件系统实现
# ------------------------------------------


class LocalObjectStore(ObjectStore):
    name = "local"

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        if not self.root.exists():
            try:
                self.root.mkdir(parents=True, exist_ok=True)
            except Exception as exc:  # pragma: no cover - 极端情况下可能失败
                raise AppException(f"无法创建本地存储目录: {exc}", status.HTTP_500_INTERNAL_SERVER_ERROR) from exc

    # 统一的安全路径拼接，防止路径遍历
    def _resolve(self, rel: str) -> Path:
        rel_norm = (rel or "").strip().lstrip("/")
        if not rel_norm:
            raise AppException("非法路径: 路径为空", HTTP_STATUS_BAD_REQUEST)
        candidate = (self.root / rel_norm).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise AppException("非法路径: 越权访问", HTTP_STATUS_BAD_REQUEST) from exc
        return candidate

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.exists():
            # 允许幂等：不存在则视为已删除
            return True
        if target.is_dir():
            raise AppException(f"目标不是文件: {path}", HTTP_STATUS_BAD_REQUEST)
        target.unlink()
        return True


# ------------------------------------------
# S3 实现（boto3）
# ------------------------------------------


class S3ObjectStore(ObjectStore):
    name = "s3"

    def __init__(
        self,
        *,
        bucket: str,
        region: str,
        access_key_id: str,
        secret_access_key: str,
        prefix: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        try:
            import boto3  # type: ignore
        except Exception as exc:
            raise AppException(
                "S3 功能不可用：缺少依赖 boto3，请在后端安装后重试",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            ) from exc

        self.bucket = bucket
        self.prefix = (prefix or "").strip("/")
        self._client = boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            endpoint_url=endpoint_url or None,
        )

    # 拼接基于 prefix 的对象 key
    def _join_key(self, rel: str) -> str:
        rel_norm = (rel or "").lstrip("/")
        if self.prefix:
            return f"{self.prefix}/{rel_norm}"
        return rel_norm

    def delete(self, path: str) -> bool:
        key = self._join_key(path)
        if not key or key.endswith("/"):
            raise AppException(f"非法对象 key: {path}", HTTP_STATUS_BAD_REQUEST)
        # S3 删除不存在的 key 同样返回成功
        self._client.delete_object(Bucket=self.bucket, Key=key)
        return True


class NullObjectStore(ObjectStore):
    """未接入对象存储时使用，删除总是视为成功。"""

    name = "none"

    def delete(self, path: str) -> bool:
        return True


def build_object_store(settings: Settings) -> ObjectStore:
    t = (settings.object_store_type or "").upper()
    if t == ObjectStoreTypeEnum.LOCAL.value:
        return LocalObjectStore(settings.object_store_local_directory)
    if t == ObjectStoreTypeEnum.S3.value:
        if not (
            settings.s3_bucket
            and settings.s3_region
            and settings.s3_access_key_id
            and settings.s3_secret_access_key
        ):
            raise AppException("S3 配置不完整", HTTP_STATUS_BAD_REQUEST)
        return S3ObjectStore(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            prefix=settings.s3_prefix,
            endpoint_url=settings.s3_endpoint_url,
        )
    if t == ObjectStoreTypeEnum.NONE.value:
        return NullObjectStore()
    raise AppException("不支持的对象存储类型", HTTP_STATUS_BAD_REQUEST)


@lru_cache
def get_object_store() -> ObjectStore:
    """返回进程内共享的对象存储实例，可在测试中通过依赖覆盖替换。"""
    store = build_object_store(get_settings())
    logger.info("Object store initialized: %s", store.name)
    return store
