"""数据库引擎与会话工厂。SQL 日志由 ``DATABASE_ECHO`` 控制，经 ``sqlalchemy.engine`` 日志器输出。"""

from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from app.packages.drive.core.config import get_settings


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"pool_pre_ping": True}
    # SQLite 连接会被 FastAPI 线程池中的不同线程使用
    if make_url(url).get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    return options


_database_url = get_settings().sql_database_url
engine = create_engine(_database_url, **_engine_options(_database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
