from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings

Base = declarative_base()


def _install_sqlite_listeners(engine: Engine) -> None:
    """Let SQLAlchemy own transaction boundaries on pysqlite.

    Transactions open with BEGIN IMMEDIATE so concurrent writers queue on the database
    lock instead of failing when a read lock is upgraded mid-transaction. Connections
    carrying the ``sqlite_begin="DEFERRED"`` execution option (the read-only sessions)
    start a plain deferred transaction and do not wait behind writers.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        mode = conn.get_execution_options().get("sqlite_begin", "IMMEDIATE")
        conn.exec_driver_sql(f"BEGIN {mode}")


def build_engine(url: str, *, echo: bool = False, **kwargs) -> Engine:
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        kwargs["connect_args"] = connect_args
    else:
        kwargs.setdefault("pool_pre_ping", True)
    engine = create_engine(url, echo=echo, **kwargs)
    if is_sqlite:
        _install_sqlite_listeners(engine)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def build_read_session_factory(engine: Engine) -> sessionmaker:
    """Sessions for report queries; they never write, so they skip the write lock."""
    return sessionmaker(bind=engine.execution_options(sqlite_begin="DEFERRED"), autoflush=False, autocommit=False)


settings = get_settings()
engine = build_engine(settings.database_url, echo=settings.sql_echo)
SessionLocal = build_session_factory(engine)
ReadSessionLocal = build_read_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_read_db() -> Generator[Session, None, None]:
    db = ReadSessionLocal()
    try:
        yield db
    finally:
        db.close()
