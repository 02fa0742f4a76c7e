"""
数据库连接 - SQLAlchemy
业务层不直接使用会话，统一经由 hostel.repositories 读写
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from hostel.config import settings

Base = declarative_base()


def build_engine(url: str) -> Engine:
    """创建引擎；SQLite 连接打开 WAL 并放开跨线程访问"""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})

    if ":memory:" not in url:
        @event.listens_for(sqlite_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    return sqlite_engine


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


def get_db():
    """FastAPI 依赖：每个请求一个会话，结束后关闭"""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def init_db() -> None:
    """按 ORM 定义建表（已存在的表保持不变）"""
    from hostel.models import tables  # noqa: F401
    Base.metadata.create_all(bind=engine)
