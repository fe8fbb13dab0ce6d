"""Database helpers for the flight booking engine."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager, nullcontext
from typing import Dict, Iterator, Optional, Tuple

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings, load_settings
from .models import Base

logger = logging.getLogger(__name__)

_SERIAL_LOCK = "flight_booking.serial_lock"


def _install_sqlite_locking(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two transactions
    read the same inventory and then race for the lock. ``BEGIN IMMEDIATE``
    serializes them on the database lock instead.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(
    db_url: Optional[str] = None,
    *,
    echo: bool = False,
    connect_args: Dict[str, object] | None = None,
    settings: Optional[Settings] = None,
) -> Tuple[Engine, sessionmaker[Session]]:
    """Return an engine/session factory pair configured for SQLite by default."""

    settings = settings or load_settings()
    db_url = db_url or settings.db_url
    echo = echo or settings.echo_sql
    is_sqlite = db_url.startswith("sqlite")

    if is_sqlite:
        final_connect_args: Dict[str, object] = {
            "check_same_thread": False,
            "timeout": settings.sqlite_timeout,
        }
        if connect_args:
            final_connect_args.update(connect_args)
    else:
        final_connect_args = connect_args or {}

    if db_url.endswith(":memory:"):
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
        )
    if is_sqlite:
        _install_sqlite_locking(engine)
    info: Dict[str, object] = {}
    if isinstance(engine.pool, StaticPool):
        # One shared connection: sessions must take turns or BEGIN IMMEDIATE nests.
        info[_SERIAL_LOCK] = threading.RLock()
    session_factory = sessionmaker(bind=engine, expire_on_commit=False, info=info)
    logger.debug("created session factory for %s", engine.url.render_as_string(hide_password=True))
    return engine, session_factory


def init_db(
    db_url: Optional[str] = None,
    *,
    echo: bool = False,
    settings: Optional[Settings] = None,
) -> sessionmaker[Session]:
    """Create all tables and return a session factory."""

    engine, session_factory = create_session_factory(db_url, echo=echo, settings=settings)
    Base.metadata.create_all(engine)
    logger.info("initialised schema at %s", engine.url.render_as_string(hide_password=True))
    return session_factory


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations.

    Scopes on a single shared connection (in-memory SQLite) run one at a time.
    """

    session = session_factory()
    with session.info.get(_SERIAL_LOCK) or nullcontext():
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


__all__ = ["create_session_factory", "init_db", "session_scope"]
