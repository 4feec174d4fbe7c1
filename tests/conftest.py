"""测试夹具：为 pytest 提供数据库、对象存储与客户端的共享配置。"""

import os
import shutil
import tempfile
from typing import Generator

TEST_DIR = os.path.dirname(__file__)
TEST_DB_PATH = os.path.join(TEST_DIR, "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"
TEST_STORAGE_ROOT = tempfile.mkdtemp(prefix="filestore_objects_")

# 必须在导入应用之前设置，配置对象在首次导入时缓存
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["STORAGE_TYPE"] = "LOCAL"
os.environ["LOCAL_ROOT_PATH"] = TEST_STORAGE_ROOT
os.environ["LOG_DIR"] = os.path.join(TEST_STORAGE_ROOT, "log")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from app.main import app  # noqa: E402
from app.packages.filestore.core.dependencies import get_db  # noqa: E402
from app.packages.filestore.core.enums import SignedUrlMode  # noqa: E402
from app.packages.filestore.core.exceptions import TransientStoreError  # noqa: E402
from app.packages.filestore.db import session as db_session  # noqa: E402
from app.packages.filestore.db.init_db import init_db  # noqa: E402
from app.packages.filestore.models import File, FileVersion, OrphanedObject  # noqa: E402
from app.packages.filestore.services.object_store import ObjectStore  # noqa: E402


class RecordingObjectStore(ObjectStore):
    """记录所有调用的对象存储替身，可按 key 注入删除失败或让签名失败。"""

    def __init__(self) -> None:
        self.signed: list[tuple[SignedUrlMode, str]] = []
        self.delete_attempts: list[str] = []
        self.deleted: list[str] = []
        self.failing_keys: set[str] = set()
        self.fail_signing = False

    def get_signed_url(self, mode: SignedUrlMode, key: str) -> str:
        if self.fail_signing:
            raise TransientStoreError("签名服务不可用")
        self.signed.append((mode, key))
        return f"https://bucket.example.com/{key}?mode={mode.value}"

    def delete_object(self, key: str) -> None:
        self.delete_attempts.append(key)
        if key in self.failing_keys:
            raise TransientStoreError(f"对象删除失败: {key}")
        self.deleted.append(key)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = db_session.build_engine(TEST_DATABASE_URL)
    db_session.engine = engine
    db_session.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    init_db()
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)
    shutil.rmtree(TEST_STORAGE_ROOT, ignore_errors=True)


@pytest.fixture(autouse=True)
def clean_tables() -> Generator[None, None, None]:
    """每个用例前清空业务表，保证搜索与计数类断言互不干扰。"""
    session = db_session.SessionLocal()
    try:
        session.query(FileVersion).delete()
        session.query(File).delete()
        session.query(OrphanedObject).delete()
        session.commit()
    finally:
        session.close()
    yield


@pytest.fixture()
def db_session_fixture() -> Generator[Session, None, None]:
    """提供给测试用例使用的数据库会话。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def object_store() -> RecordingObjectStore:
    return RecordingObjectStore()


@pytest.fixture()
def client(db_session_fixture):
    """构建 FastAPI TestClient，并注入测试专用的数据库依赖。"""
    def override_get_db() -> Generator[Session, None, None]:
        session = db_session.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def recording_store(client) -> Generator[RecordingObjectStore, None, None]:
    """临时把应用的对象存储替换为记录型替身，用例结束后恢复。"""
    original = app.state.object_store
    store = RecordingObjectStore()
    app.state.object_store = store
    yield store
    app.state.object_store = original
