"""
Shared pytest fixtures for the Checklist Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - company: Company seeded with the essential board (reference 2026-01-01)
    - make_task / make_board: in-memory engine records
"""

from datetime import date

import pytest

from checklist_platform import create_app
from checklist_platform.models import db as _db
from checklist_platform.services.checklist_store import board_projection
from checklist_platform.services.checklist_types import (
    Category,
    ChecklistBoard,
    ChecklistTask,
    Severity,
    TaskStatus,
)

REFERENCE_DATE = date(2026, 1, 1)
TIMESTAMP = "2026-01-01T00:00:00.000Z"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        board_projection.reset()
        yield
        board_projection.reset()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def company():
    """Company with the essential board seeded from 2026-01-01."""
    import checklist_platform.services.checklist_service as svc
    return svc.create_company({"name": "Acme Ltda", "regime": "Lucro Real"}, reference_date=REFERENCE_DATE)


def _make_task(task_id="task1", *, board_id="board1", title=None, status=TaskStatus.TODO,
               severity=Severity.AMBER, priority=None, due_date=None, owner="Team",
               created_at=TIMESTAMP):
    return ChecklistTask(
        id=task_id,
        checklist_id=board_id,
        title=title or f"Task {task_id}",
        description="",
        severity=severity,
        status=status,
        owner=owner,
        category=Category.PLANNING,
        created_at=created_at,
        updated_at=created_at,
        due_date=due_date,
        priority=priority,
    )


def _make_board(board_id="board1", tasks=(), company_id="company-1"):
    return ChecklistBoard(
        id=board_id,
        company_id=company_id,
        name=f"Board {board_id}",
        created_at=TIMESTAMP,
        updated_at=TIMESTAMP,
        tasks=list(tasks),
    )


@pytest.fixture()
def make_task():
    return _make_task


@pytest.fixture()
def make_board():
    return _make_board
