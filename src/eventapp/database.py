"""Database setup and bounded store sessions."""

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import StoreTimeoutError

logger = logging.getLogger(__name__)

Base = declarative_base()

# SQLite calls the progress handler every N virtual machine instructions.
PROGRESS_HANDLER_INTERVAL = 1000


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections get foreign keys switched on."""
    kwargs = {"future": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


class Database:
    """Pooled engine plus a session factory whose sessions have a deadline.

    ``session()`` is the only way the service layer talks to the store.
    A statement still running when the deadline passes is cancelled by the
    driver and reported as :class:`StoreTimeoutError`.
    """

    def __init__(self, database_url: str, timeout: float = 3.0):
        self.engine = build_engine(database_url)
        self.timeout = timeout
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            future=True,
        )

    def init_db(self) -> None:
        """Create database tables if they do not exist."""
        # importing the models registers their tables on Base.metadata
        from .models.attendee import Attendee  # noqa: F401
        from .models.event import Event  # noqa: F401
        from .models.user import User  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session pinned to one pooled connection for the whole operation."""
        deadline = time.monotonic() + self.timeout
        with self.engine.connect() as connection:
            self._arm_deadline(connection, deadline)
            session: Session = self.SessionLocal(bind=connection)
            try:
                yield session
            except OperationalError as exc:
                session.rollback()
                if time.monotonic() >= deadline:
                    logger.error("store operation exceeded %.1fs", self.timeout)
                    raise StoreTimeoutError() from exc
                raise
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
                self._disarm_deadline(connection)

    def _arm_deadline(self, connection, deadline: float) -> None:
        dialect = connection.dialect.name
        if dialect == "sqlite":
            connection.connection.driver_connection.set_progress_handler(
                lambda: 1 if time.monotonic() >= deadline else 0,
                PROGRESS_HANDLER_INTERVAL,
            )
        elif dialect == "postgresql":
            millis = int(self.timeout * 1000)
            connection.execute(text(f"SET statement_timeout = {millis}"))
            connection.commit()

    def _disarm_deadline(self, connection) -> None:
        dialect = connection.dialect.name
        if dialect == "sqlite":
            connection.connection.driver_connection.set_progress_handler(None, 0)
        elif dialect == "postgresql":
            connection.rollback()
            connection.execute(text("RESET statement_timeout"))
            connection.commit()
