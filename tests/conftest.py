"""
Pytest fixtures for the reimbursement service.

Every test gets its own in-memory SQLite database. The pysqlite driver is
switched to manual transaction control so SAVEPOINTs (used for best-effort
attachment inserts) behave as they do on PostgreSQL.
"""
import os

# Must be set before the app modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, func
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.deps import CurrentUser, get_current_user
from app.db.database import Base, get_db
from app.main import app
from app.models import (
    CostCenter,
    Department,
    ExpenseCategory,
    Project,
    Reimbursement,
    ReimbursementAttachment,
    ReimbursementItem,
)

TEST_USER_ID = 42

SUBMISSION_URL = f"{settings.API_V1_STR}/reimbursements/"


def make_engine(include_attachments: bool = True, include_core: bool = True):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    tables = [
        Department.__table__,
        CostCenter.__table__,
        Project.__table__,
        ExpenseCategory.__table__,
    ]
    if include_core:
        tables += [Reimbursement.__table__, ReimbursementItem.__table__]
        if include_attachments:
            tables.append(ReimbursementAttachment.__table__)
    Base.metadata.create_all(bind=engine, tables=tables)
    return engine


@pytest.fixture
def engine():
    engine = make_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def engine_without_attachments():
    engine = make_engine(include_attachments=False)
    yield engine
    engine.dispose()


@pytest.fixture
def engine_without_core_tables():
    engine = make_engine(include_core=False)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def client_for(upload_dir):
    """Build a TestClient bound to a given engine, authenticated as TEST_USER_ID."""

    def _client(bound_engine):
        TestingSession = sessionmaker(bind=bound_engine, autoflush=False)

        def override_get_db():
            db = TestingSession()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_current_user] = lambda: CurrentUser(
            id=TEST_USER_ID, email="employee@example.com", role="employee"
        )
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


@pytest.fixture
def client(client_for, engine):
    return client_for(engine)


@pytest.fixture
def sql_statements(engine):
    """Every SQL statement sent to the test database."""
    statements = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    yield statements
    event.remove(engine, "before_cursor_execute", _record)


@pytest.fixture
def lookups(engine):
    """One department, cost center, project and two expense categories."""
    session = sessionmaker(bind=engine)()
    try:
        department = Department(name="Engineering", code="DEPT-001")
        project = Project(name="Apollo", code="PRJ-001")
        food = ExpenseCategory(name="Food", code="FOOD")
        travel = ExpenseCategory(name="Travel", code="TRAVEL")
        session.add_all([department, project, food, travel])
        session.flush()
        cost_center = CostCenter(name="R&D", code="CC-001", department_id=department.id)
        session.add(cost_center)
        session.commit()
        return {
            "department_id": department.id,
            "cost_center_id": cost_center.id,
            "project_id": project.id,
            "food_id": food.id,
            "travel_id": travel.id,
        }
    finally:
        session.close()


def count_rows(bound_engine, model) -> int:
    session = sessionmaker(bind=bound_engine)()
    try:
        return session.query(func.count(model.id)).scalar()
    finally:
        session.close()


def add_reimbursement(session, total_amount, item_amounts):
    """Insert a committed claim with one item per amount."""
    reimbursement = Reimbursement(user_id=TEST_USER_ID, total_amount=Decimal(str(total_amount)))
    session.add(reimbursement)
    session.flush()
    for index, amount in enumerate(item_amounts):
        session.add(ReimbursementItem(
            reimbursement_id=reimbursement.id,
            expense_type="Food",
            amount=Decimal(str(amount)),
            expense_date=date(2024, 1, index + 1),
        ))
    session.commit()
    return reimbursement.id
