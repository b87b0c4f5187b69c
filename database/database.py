import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from utils.state import State

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./carebridge.db")
IS_SQLITE = DATABASE_URL.startswith("sqlite")


def _connect_args() -> dict:
    if not IS_SQLITE:
        return {}
    # Seconds a writer waits on another connection's lock before failing
    return {
        "check_same_thread": False,
        "timeout": float(os.getenv("SQLITE_BUSY_TIMEOUT", "30")),
    }


engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args(),
    echo=os.getenv("DATABASE_ECHO") == "1",
    pool_pre_ping=True,
)


if IS_SQLITE:

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # ON DELETE CASCADE on tickets, messages and sessions depends on this
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class DatabaseConnectionError(Exception):
    """Raised when the database cannot be reached; rendered as a 503."""


def get_db():
    db = SessionLocal()
    try:
        try:
            yield db
        except (OperationalError, DBAPIError, DisconnectionError) as e:
            State.logger.opt(exception=e).error(f"Database operational error: {str(e)}")
            raise DatabaseConnectionError(str(e)) from e
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session for work outside a request, such as background tasks.

    Commits when the block exits cleanly and rolls back on any exception.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
