from typing import Generator
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    """Create the engine for the configured database.

    SQLite is only used for local runs and tests, so it gets the
    thread-sharing flag instead of a sized connection pool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """One session (and one pooled connection) per request, always released."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
