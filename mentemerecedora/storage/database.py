"""
Database engine and session factory.

One engine per process, shared by every repository. SQLite is the
development default; any SQLAlchemy URL works in production.
"""

from typing import Optional

from loguru import logger
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Engine + session factory wrapper.

    Usage:
        db = Database("sqlite:///./mentemerecedora.db")
        db.create_tables()
        with db.get_session() as session:
            ...
    """

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        # Strip async drivers for the sync engine
        url = (database_url or "sqlite:///:memory:").replace("+aiosqlite", "").replace("+asyncpg", "")
        self.database_url = url

        engine_kwargs = {"echo": echo}
        is_sqlite = url.startswith("sqlite")
        if is_sqlite:
            # Sync routes run in FastAPI's threadpool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in url or url == "sqlite://":
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True

        self.engine = create_engine(url, **engine_kwargs)

        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        logger.info(f"Database initialized: {url[:50]}...")

    def get_session(self) -> Session:
        """Get database session."""
        return self.SessionLocal()

    def create_tables(self) -> None:
        """Create every table registered on the declarative base."""
        # Model modules register their tables on import
        from . import (  # noqa: F401
            content_repository,
            conversation_repository,
            diary_repository,
            manifestation_repository,
            practice_repository,
        )
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        Base.metadata.drop_all(self.engine)

    def ping(self) -> bool:
        """Check the connection is usable."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def dispose(self) -> None:
        self.engine.dispose()
