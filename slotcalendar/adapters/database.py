"""
Database access: engine, sessions and the transaction boundary.

One ``Database`` is constructed at process start, handed to the stores and
disposed at shutdown.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator

import pendulum
from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..domain.exceptions import ConflictError, StorageError
from .tables import Base

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp used for created_at/updated_at."""
    return pendulum.now("UTC").naive()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the SQLAlchemy engine and hands out transactional sessions.

    Every store call runs inside ``transaction()`` so that its precondition
    checks and its write are a single unit of work.
    """

    def __init__(self, url: str, echo: bool = False):
        """
        Args:
            url: SQLAlchemy database URL
            echo: Log every SQL statement
        """
        self.url = url
        self.engine = create_engine(url, echo=echo, **self._engine_options(url))

        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    @staticmethod
    def _engine_options(url: str) -> Dict[str, Any]:
        parsed = make_url(url)

        if parsed.get_backend_name() != "sqlite":
            return {"pool_pre_ping": True}

        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if parsed.database in (None, "", ":memory:"):
            # One shared connection, otherwise every session sees an empty database
            options["poolclass"] = StaticPool
        return options

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info("Database schema ready at %s", self.engine.url.render_as_string(hide_password=True))

    def drop_schema(self) -> None:
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Yield a session; commit on success, roll back on any error.

        Raises:
            ConflictError: If a uniqueness or integrity constraint rejects the write
            StorageError: For any other database failure
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            logger.warning("Integrity constraint rejected write: %s", exc.orig)
            raise ConflictError("The change conflicts with an existing record") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Database operation failed")
            raise StorageError("Storage operation failed") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()
