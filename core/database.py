"""
core/database.py -- Shared SQLAlchemy engine and scoped connection handling.

One Database is constructed at startup (api/main.py lifespan, or main.py for
the CLI) from the DATABASE_URL setting and passed explicitly to every store.
It owns the connection pool; stores borrow a connection per operation through
connect() and give it back when the with-block exits.

connect() also converts SQLAlchemyError into StoreError so nothing above the
store layer has to know which driver sits underneath.

Usage:
    db = Database("sqlite:///blogengine.db")
    db.create_all()
    with db.connect() as conn:
        conn.execute(...)
        conn.commit()
    db.close()

Layer rule: core/ is the kernel. No imports from api/, web/, auth/, or blog/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import StoreError

logger = logging.getLogger("blogengine.database")

# Every store module registers its Table objects on this MetaData so a single
# create_all() provisions both the blogs and authorization tables.
metadata = MetaData()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


class Database:
    def __init__(self, db_url: str, timeout: float = 5.0) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            # sqlite3 busy timeout: a locked database fails after this many
            # seconds instead of blocking the request forever.
            connect_args["timeout"] = timeout
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)

    def create_all(self) -> None:
        with self.connect() as conn:
            metadata.create_all(conn)
            conn.commit()

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Yield a pooled connection; driver errors surface as StoreError."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.exception("Data store operation failed")
            raise StoreError("The data store is unavailable.") from exc

    def ping(self) -> bool:
        """Return True if a trivial round trip to the store succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
        except SQLAlchemyError:
            logger.warning("Data store ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
