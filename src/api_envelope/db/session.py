"""数据库引擎与会话管理。"""

from collections.abc import Generator
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from api_envelope.core.config import get_settings


def build_engine(database_url: str, **kwargs: Any) -> Engine:
    """创建引擎；SQLite 连接允许跨线程使用。"""
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, **kwargs)


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, class_=Session)


engine = build_engine(get_settings().database_url)
SessionLocal = build_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """为每个请求提供独立数据库会话。"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """按模型定义建表。"""
    from api_envelope.models import Base

    Base.metadata.create_all(bind=bind or engine)
