"""
Database session management with SQLAlchemy.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator
from contextlib import contextmanager

from procureflow.core.config import settings
from procureflow.core.logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the workflow state store.

    SQLite (tests, single-node demos) gets a shared connection for in-memory
    URLs; server databases get the pooled configuration.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context(session_factory=None) -> Generator[Session, None, None]:
    """Context manager for a database session committed as one transaction."""
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine = None):
    """
    Make sure the workflow state schema exists.

    Server databases are managed by Alembic (`alembic upgrade head`); SQLite
    databases and DEBUG mode create the tables directly.
    """
    from sqlalchemy import inspect

    from procureflow.db import models  # noqa

    bind = bind or engine
    existing_tables = inspect(bind).get_table_names()
    if "workflow_artifacts" in existing_tables:
        logger.info(f"Database schema verified: {len(existing_tables)} tables found")
        return

    if settings.DEBUG or bind.dialect.name == "sqlite":
        logger.warning("workflow_artifacts table missing, creating schema directly")
        Base.metadata.create_all(bind=bind)
    else:
        logger.error(
            "workflow_artifacts table missing. Run 'alembic upgrade head' before starting the API."
        )
