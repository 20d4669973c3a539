"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file by default) and provides
small helpers used by the application and tests.
"""

from sqlmodel import SQLModel, create_engine, Session

from .config import settings


def _connect_args(url: str) -> dict:
    """SQLite needs cross-thread access and a busy timeout; others use defaults."""
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": settings.DB_TIMEOUT_SECONDS}
    return {}


engine = create_engine(settings.DATABASE_URL, echo=False, connect_args=_connect_args(settings.DATABASE_URL))


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    This function is intended for local development and tests;
    production deployments should rely on a proper migration tool
    (alembic) instead.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
