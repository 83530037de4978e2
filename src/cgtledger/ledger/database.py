"""Engine and transaction scope for the ledger database.

SQLite is the default backend. Every SQLite transaction is opened with
``BEGIN IMMEDIATE`` so the write lock is taken up front: two settlements
cannot both read the same remaining inventory and then both allocate it.
Other backends rely on the row locks taken by ``LedgerStore``.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .orm import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///cgt_ledger.db"
SQLITE_BUSY_TIMEOUT_S = 30


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def _install_sqlite_locking(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy's "begin" event issue BEGIN instead of pysqlite.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class LedgerDatabase:
    def __init__(self, url: str = DEFAULT_DATABASE_URL, *, echo: bool = False) -> None:
        self.url = url
        self.engine = self._create_engine(url, echo)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        if not url.startswith("sqlite"):
            return create_engine(url, echo=echo, pool_pre_ping=True)

        kwargs: dict = {
            "echo": echo,
            "connect_args": {
                "timeout": SQLITE_BUSY_TIMEOUT_S,
                "check_same_thread": False,
            },
        }
        if _is_memory_sqlite(url):
            # One shared connection, otherwise each session sees an empty database.
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        _install_sqlite_locking(engine)
        return engine

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.info("Ledger schema ready at %s", self.engine.url)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Commit on normal exit, roll back and re-raise on any exception."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception as exc:
            session.rollback()
            logger.warning("Ledger transaction rolled back: %s", exc)
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
