"""Engine and session factory management."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ..config import settings
from .tables import Base

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def build_engine(url: str, *, timeout_seconds: Optional[float] = None, echo: bool = False) -> Engine:
    """Create an engine whose connections give up on locks after ``timeout_seconds``.

    SQLite connections open every transaction with ``BEGIN IMMEDIATE`` so that
    concurrent writers queue on the database lock instead of failing on a
    lock upgrade midway through a unit of work.
    """

    timeout = timeout_seconds if timeout_seconds is not None else settings.db_timeout_seconds
    parsed = make_url(url)

    if parsed.get_backend_name() == "sqlite":
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            url,
            echo=echo,
            pool_timeout=timeout,
            connect_args={"timeout": timeout, "check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            dbapi_connection.execute("PRAGMA foreign_keys=ON")

        @event.listens_for(engine, "begin")
        def _begin_immediate(connection):
            connection.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    timeout_ms = int(timeout * 1000)
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args={"options": f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}"},
    )


def configure_database(url: Optional[str] = None, *, timeout_seconds: Optional[float] = None) -> sessionmaker[Session]:
    """(Re)bind the module-level engine and session factory."""

    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = build_engine(url or settings.database_url, timeout_seconds=timeout_seconds, echo=settings.echo_sql)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    return _session_factory


def get_engine() -> Engine:
    if _engine is None:
        configure_database()
    assert _engine is not None
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        configure_database()
    assert _session_factory is not None
    return _session_factory


def init_db(engine: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""

    target = engine or get_engine()
    Base.metadata.create_all(target)
    logger.info(f"Database schema ready on {target.url.render_as_string(hide_password=True)}")


def check_connection() -> bool:
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.warning(f"Database connection check failed: {exc}")
        return False
