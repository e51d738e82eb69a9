#!/usr/bin/env python3
"""
Create the reimbursement tables directly from the SQLAlchemy models and seed
the default expense categories. Alembic (``alembic upgrade head``) is the
normal path; this is for local databases and first boots.
"""
import logging
import sys

from sqlalchemy.orm import Session

from app.db.database import Base, SessionLocal, engine
from app.models import ExpenseCategory  # noqa: F401  registers every model on Base

logger = logging.getLogger(__name__)

DEFAULT_EXPENSE_CATEGORIES = [
    {"name": "Food", "code": "FOOD"},
    {"name": "Travel", "code": "TRAVEL"},
    {"name": "Accommodation", "code": "ACCOMMODATION"},
    {"name": "Material", "code": "MATERIAL"},
    {"name": "Others", "code": "OTHERS"},
]


def create_tables(bind=None) -> None:
    """Create all database tables"""
    Base.metadata.create_all(bind=bind or engine)


def seed_expense_categories(db: Session) -> int:
    """Insert missing default categories. Returns how many were added."""
    existing = {code for (code,) in db.query(ExpenseCategory.code).all()}
    added = 0
    for category in DEFAULT_EXPENSE_CATEGORIES:
        if category["code"] in existing:
            continue
        db.add(ExpenseCategory(**category))
        added += 1
    db.commit()
    if added:
        logger.info(f"Seeded {added} expense categories")
    return added


def init_db() -> None:
    create_tables()
    db = SessionLocal()
    try:
        seed_expense_categories(db)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        init_db()
    except Exception as e:
        logger.error(f"Error creating tables: {e}")
        sys.exit(1)
    logger.info("Tables created successfully!")
