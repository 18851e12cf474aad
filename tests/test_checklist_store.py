"""
Checklist Platform
Tests — persistence: projection fallback, task inserts, notification sync
and orphan cleanup.
"""

import sqlite3
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from checklist_platform.models import db
from checklist_platform.models.checklist import ChecklistTaskRecord
from checklist_platform.models.notification import ChecklistNotificationRecord
from checklist_platform.services import checklist_store as store
from checklist_platform.services.checklist_blueprint import default_board_id
from checklist_platform.services.checklist_notifications import build_notifications
from checklist_platform.services.checklist_types import TaskStatus


def _missing_column(statement="SELECT"):
    return OperationalError(statement, {}, sqlite3.OperationalError("no such column: checklist_tasks.blueprint_id"))


def _without_blueprint_column():
    """Patch session.execute so any statement touching blueprint_id fails like an old schema."""
    real_execute = db.session.execute

    def _execute(statement, params=None, *args, **kwargs):
        payloads = params if isinstance(params, list) else []
        if "blueprint_id" in str(statement) and (not payloads or "blueprint_id" in payloads[0]):
            raise _missing_column(str(statement))
        return real_execute(statement, params, *args, **kwargs)

    return patch.object(db.session, "execute", side_effect=_execute)


# ═══════════════════════════════════════════════════════════════════════════
#  Missing-column detection & projection fallback
# ═══════════════════════════════════════════════════════════════════════════

class TestMissingColumnDetection:

    @pytest.mark.parametrize("message", [
        "no such column: checklist_tasks.blueprint_id",
        "table checklist_tasks has no column named blueprint_id",
        'column "blueprint_id" does not exist',
        "Unknown column 'blueprint_id' in 'field list'",
    ])
    def test_recognizes_dialect_messages(self, message):
        exc = OperationalError("SELECT", {}, Exception(message))
        assert store.is_missing_column_error(exc) is True

    def test_other_errors_are_not_schema_drift(self):
        exc = OperationalError("SELECT", {}, Exception("database is locked"))
        assert store.is_missing_column_error(exc) is False


class TestProjectionFallback:

    def test_steps_down_and_remembers_level(self):
        fallback = store.ProjectionFallback()
        seen = []

        def _execute(level):
            seen.append(level.name)
            if level.name == "full":
                raise _missing_column()
            return level.name

        assert fallback.run(_execute) == "legacy"
        assert fallback.current.name == "legacy"
        assert fallback.run(_execute) == "legacy"
        assert seen == ["full", "legacy", "legacy"]

    def test_unrelated_errors_propagate(self):
        fallback = store.ProjectionFallback()

        def _execute(level):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        with pytest.raises(OperationalError):
            fallback.run(_execute)
        assert fallback.current.name == "full"

    def test_last_level_failure_propagates(self):
        fallback = store.ProjectionFallback()

        def _execute(level):
            raise _missing_column()

        with pytest.raises(OperationalError):
            fallback.run(_execute)
        assert fallback.current.name == "minimal"

    def test_reset(self):
        fallback = store.ProjectionFallback()
        fallback.preferred = 2
        fallback.reset()
        assert fallback.current.name == "full"


# ═══════════════════════════════════════════════════════════════════════════
#  Boards & tasks
# ═══════════════════════════════════════════════════════════════════════════

class TestBoardsAndTasks:

    def test_fetch_boards_maps_rows(self, company):
        boards = store.fetch_boards(company["id"])
        assert len(boards) == 1
        board = boards[0]
        assert board.id == default_board_id(company["id"])
        assert board.reference_date == "2026-01-01"
        assert len(board.tasks) == 13
        first = board.tasks[0]
        assert first.id == "fundamentos-regime-tributario"
        assert first.blueprint_id == first.id
        assert first.due_date == "2026-01-06"
        assert first.references

    def test_fetch_boards_unknown_company(self):
        assert store.fetch_boards("nope") == []

    def test_fetch_boards_falls_back_without_blueprint_column(self, company):
        with _without_blueprint_column():
            boards = store.fetch_boards(company["id"])
        assert store.board_projection.current.name == "legacy"
        assert len(boards[0].tasks) == 13
        assert boards[0].tasks[0].blueprint_id is None
        # Blueprint-seeded rows still carry their stored due date
        assert boards[0].tasks[0].due_date == "2026-01-06"

    def test_insert_tasks_retries_without_blueprint_id(self, company, make_task):
        board_id = default_board_id(company["id"])
        task = make_task("custom-1", board_id=board_id, due_date="2026-02-01")
        task.blueprint_id = "fundamentos-regime-tributario"

        with _without_blueprint_column():
            assert store.insert_tasks(board_id, [task]) == 1
        db.session.commit()

        record = store.get_task_record(board_id, "custom-1")
        assert record is not None
        assert record.blueprint_id is None
        assert record.due_date == date(2026, 2, 1)

    def test_insert_tasks_duplicate_id_is_rejected(self, company, make_task):
        board_id = default_board_id(company["id"])
        with pytest.raises(IntegrityError):
            store.insert_tasks(board_id, [make_task("fundamentos-regime-tributario", board_id=board_id)])

    def test_insert_tasks_empty(self):
        assert store.insert_tasks("board", []) == 0

    def test_apply_task_to_record(self, company):
        board = store.fetch_boards(company["id"])[0]
        task = board.tasks[0]
        task.status = TaskStatus.DONE
        task.tags = ["ibs"]

        record = store.get_task_record(board.id, task.id)
        store.apply_task_to_record(record, task)
        db.session.commit()

        reloaded = store.fetch_boards(company["id"])[0].tasks[0]
        assert reloaded.status == TaskStatus.DONE
        assert reloaded.tags == ["ibs"]


# ═══════════════════════════════════════════════════════════════════════════
#  Notifications
# ═══════════════════════════════════════════════════════════════════════════

class TestNotificationSync:

    def test_company_creation_persists_feed(self, company):
        stored = store.fetch_notifications(company["id"])
        assert len(stored) == 10
        assert all(n.id.startswith(default_board_id(company["id"])) for n in stored)

    def test_save_notifications_upserts_and_removes(self, company):
        boards = store.fetch_boards(company["id"])
        derived = build_notifications(boards, today=date(2026, 1, 10))

        result = store.save_notifications(company["id"], derived[:4], remove_missing=True)
        assert result == {"inserted": 0, "updated": 4, "removed": 6}
        assert ChecklistNotificationRecord.query_for_company(company["id"]).count() == 4

        result = store.save_notifications(company["id"], derived, remove_missing=False)
        assert result == {"inserted": 6, "updated": 4, "removed": 0}

    def test_mark_read_and_delete(self, company):
        ids = [n.id for n in store.fetch_notifications(company["id"])]

        assert store.mark_notifications_read(company["id"], ids[:2]) == 2
        assert store.mark_notifications_read(company["id"], ids[:2]) == 0
        record = db.session.get(ChecklistNotificationRecord, ids[0])
        assert record.read is True
        assert record.read_at is not None

        assert store.mark_notifications_read(company["id"], None) == 8
        assert store.mark_notifications_read(company["id"], [ids[0]], read=False) == 1
        assert db.session.get(ChecklistNotificationRecord, ids[0]).read_at is None

        assert store.delete_notifications(company["id"], ids[:3]) == 3
        assert store.delete_notifications(company["id"], []) == 0
        assert len(store.fetch_notifications(company["id"])) == 7

    def test_marking_is_company_scoped(self, company):
        ids = [n.id for n in store.fetch_notifications(company["id"])]
        assert store.mark_notifications_read("other-company", ids) == 0


class TestOrphanCleanup:

    def test_detects_and_removes_orphans(self, company):
        board_id = default_board_id(company["id"])
        ChecklistTaskRecord.query.filter_by(board_id=board_id, task_id="fundamentos-regime-tributario").delete()
        db.session.commit()

        orphans = store.find_orphan_notifications()
        assert [o.id for o in orphans] == [f"{board_id}-fundamentos-regime-tributario"]

        deleted = store.cleanup_orphan_notifications(limit=10)
        db.session.commit()
        assert deleted == [f"{board_id}-fundamentos-regime-tributario"]
        assert store.find_orphan_notifications() == []
        assert len(store.fetch_notifications(company["id"])) == 9

    def test_limit_and_company_filter(self, company):
        board_id = default_board_id(company["id"])
        ChecklistTaskRecord.query.filter_by(board_id=board_id).delete()
        db.session.commit()

        assert len(store.find_orphan_notifications(limit=3)) == 3
        assert store.find_orphan_notifications(company_id="other") == []
        assert len(store.cleanup_orphan_notifications(limit=500, company_id=company["id"])) == 10
