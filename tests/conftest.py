"""测试夹具：为 pytest 提供数据库、对象存储与客户端的共享配置。"""

import os
import shutil
import tempfile
import uuid
from typing import Callable, Generator

TEST_DB_PATH = os.path.join(os.path.dirname(__file__), "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"

# 必须在导入应用之前写入，确保配置与引擎使用测试环境
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["EVENT_BACKEND"] = "memory"
os.environ["OBJECT_STORE_TYPE"] = "NONE"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.packages.drive.core.dependencies import get_db, get_store
from app.packages.drive.core.security import create_access_token
from app.packages.drive.db import session as db_session
from app.packages.drive.db.init_db import init_db
from app.packages.drive.models.base import Base
from app.packages.drive.services.object_store import LocalObjectStore, ObjectStore
from app.main import app


class FlakyObjectStore(ObjectStore):
    """删除总是失败的对象存储，用于验证尽力而为的删除语义。"""

    name = "flaky"

    def __init__(self) -> None:
        self.calls: list[str] = []

    def delete(self, path: str) -> bool:
        self.calls.append(path)
        raise ConnectionError(f"object store unreachable: {path}")


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    Base.metadata.create_all(bind=engine)
    init_db()
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture()
def db_session_fixture() -> Generator[Session, None, None]:
    """提供给测试用例使用的数据库会话。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def object_root() -> Generator[str, None, None]:
    """本地对象存储的临时根目录。"""
    root = tempfile.mkdtemp(prefix="drive_objects_")
    try:
        yield root
    finally:
        shutil.rmtree(root, ignore_errors=True)


@pytest.fixture()
def object_store(object_root: str) -> LocalObjectStore:
    return LocalObjectStore(object_root)


@pytest.fixture()
def flaky_store() -> FlakyObjectStore:
    return FlakyObjectStore()


@pytest.fixture()
def client(db_session_fixture, object_store):
    """构建 FastAPI TestClient，并注入测试专用的数据库与对象存储依赖。"""
    def override_get_db() -> Generator[Session, None, None]:
        session = db_session.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_store] = lambda: object_store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def owner_headers() -> Callable[[str], dict[str, str]]:
    """按归属用户签发访问令牌，返回请求头。"""
    def _headers(owner_id: str) -> dict[str, str]:
        token = create_access_token({"sub": owner_id})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def owner_id() -> str:
    """每个用例使用独立用户，避免共享数据库中的数据互相干扰。"""
    return f"user_{uuid.uuid4().hex[:12]}"
