"""Database engine and session factory configuration."""

import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.packages.filestore.core.config import get_settings

settings = get_settings()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # pragma: no cover - driver glue
    # SQLite 默认不校验外键，版本 -> 文件 的引用约束依赖此开关
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, **kwargs) -> Engine:
    """按连接串构建引擎；SQLite 需要关闭同线程检查以配合 TestClient。"""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, **kwargs)


# ``pool_pre_ping`` keeps the connection pool healthy; ``echo`` mirrors SQL logs
# when enabled in settings for easier debugging.
engine = build_engine(settings.sql_database_url, echo=settings.database_echo)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
