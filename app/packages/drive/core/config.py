"""配置模块：负责加载和缓存基于环境变量的应用设置。"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _project_root() -> Path:
    """项目根目录：自下而上第一个包含 ``app`` 目录的祖先目录。"""
    here = Path(__file__).resolve()
    return next((parent for parent in here.parents if (parent / "app").is_dir()), here.parent)


BASE_DIR = _project_root()


def _env_files() -> list[tuple[Path, bool]]:
    """按加载顺序返回 ``(文件, 是否覆盖已有变量)``。

    ``ENV_FILE`` 指定时只加载该文件；否则先加载 ``.env``，再叠加
    ``.env.<ENVIRONMENT>``（开启 DEBUG 且未指定环境时视为 development）。
    """
    explicit = os.getenv("ENV_FILE")
    if explicit:
        return [(BASE_DIR / explicit, True)]

    files = [(BASE_DIR / ".env", False)]
    environment = os.getenv("ENVIRONMENT")
    if environment is None and (os.getenv("DEBUG") or "").strip().lower() in {"1", "true", "yes", "on"}:
        environment = "development"
    if environment:
        name = environment if environment.startswith(".env") else f".env.{environment}"
        files.append((BASE_DIR / name, True))
    return files


for _env_path, _override in _env_files():
    if _env_path.exists():
        load_dotenv(_env_path, override=_override, encoding="utf-8")


class Settings(BaseSettings):
    """
    封装应用运行所需的所有配置项，每个字段都可以通过环境变量重写。
    该类支持被 FastAPI 及其它模块直接注入使用，避免在代码中散落魔法字符串。
    """

    project_name: str = Field(default="Cloud Drive API", alias="PROJECT_NAME")
    api_v1_str: str = Field(default="/api/v1", alias="API_V1_STR")
    debug: bool = Field(default=False, alias="DEBUG")

    # 若设置 DATABASE_URL 则优先使用，否则由下列分项拼接
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    database_host: str = Field(default="localhost", alias="DATABASE_HOST")
    database_port: int = Field(default=5432, alias="DATABASE_PORT")
    database_user: str = Field(default="postgres", alias="DATABASE_USER")
    database_password: str = Field(default="postgres", alias="DATABASE_PASSWORD")
    database_name: str = Field(default="cloud_drive", alias="DATABASE_NAME")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_db: int = Field(default=0, alias="REDIS_DB")
    # Redis 建连与读写超时（秒），Redis 不可达时尽快回退到内存后端
    redis_socket_timeout: float = Field(default=2.0, alias="REDIS_SOCKET_TIMEOUT", gt=0)
    # 存储变更事件的发布后端：redis / memory
    event_backend: str = Field(default="redis", alias="EVENT_BACKEND")

    jwt_secret_key: str = Field(default="changeme", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="log", alias="LOG_DIR")
    log_file_name: str = Field(default="app.log", alias="LOG_FILE_NAME")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    app_port: int = Field(default=8000, alias="APP_PORT")
    timezone: str = Field(default="Asia/Shanghai", alias="TIMEZONE")

    # 存储配额与目录树遍历限制
    storage_quota_bytes: int = Field(default=1024 * 1024 * 1024, alias="STORAGE_QUOTA_BYTES", gt=0)
    max_folder_depth: int = Field(default=256, alias="MAX_FOLDER_DEPTH", ge=1)

    # 对象存储（文件实体所在位置）
    object_store_type: str = Field(default="LOCAL", alias="OBJECT_STORE_TYPE")
    object_store_local_root: str = Field(default="storage", alias="OBJECT_STORE_LOCAL_ROOT")
    s3_bucket: Optional[str] = Field(default=None, alias="S3_BUCKET")
    s3_region: Optional[str] = Field(default=None, alias="S3_REGION")
    s3_access_key_id: Optional[str] = Field(default=None, alias="S3_ACCESS_KEY_ID")
    s3_secret_access_key: Optional[str] = Field(default=None, alias="S3_SECRET_ACCESS_KEY")
    s3_prefix: Optional[str] = Field(default=None, alias="S3_PREFIX")
    s3_endpoint_url: Optional[str] = Field(default=None, alias="S3_ENDPOINT_URL")
    object_delete_max_attempts: int = Field(default=5, alias="OBJECT_DELETE_MAX_ATTEMPTS", ge=1)
    # 每次请求提交后顺带重试的历史待删任务数量
    object_delete_batch_size: int = Field(default=20, alias="OBJECT_DELETE_BATCH_SIZE", ge=0)

    model_config = SettingsConfigDict(extra='ignore')

    @property
    def sql_database_url(self) -> str:
        """返回数据库连接串，未显式配置时拼接 PostgreSQL 连接串。"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def redis_url(self) -> str:
        """根据当前配置生成 Redis 连接地址。"""
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    def _resolve_path(self, raw: str) -> Path:
        path = Path(raw)
        if not path.is_absolute():
            path = BASE_DIR / path
        return path

    @property
    def log_directory(self) -> Path:
        """返回日志目录的绝对路径，支持相对路径配置。"""
        return self._resolve_path(self.log_dir)

    @property
    def log_file_path(self) -> Path:
        """组合日志目录与文件名，得到完整的日志文件路径。"""
        return self.log_directory / self.log_file_name

    @property
    def object_store_local_directory(self) -> Path:
        """本地对象存储根目录的绝对路径。"""
        return self._resolve_path(self.object_store_local_root)

    @property
    def timezone_info(self) -> ZoneInfo:
        """返回当前配置对应的时区信息，无法解析时回退到 UTC。"""
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError:
            return ZoneInfo("UTC")


@lru_cache
def get_settings() -> Settings:
    """返回单例化的配置对象，避免重复解析环境变量造成性能浪费。"""
    return Settings()
