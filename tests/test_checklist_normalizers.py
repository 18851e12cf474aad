"""
Checklist Platform
Tests — record sanitizers.
"""

from checklist_platform.services.checklist_normalizers import (
    sanitize_board,
    sanitize_due_date,
    sanitize_evidences,
    sanitize_notes,
    sanitize_notification,
    sanitize_references,
    sanitize_status,
    sanitize_tags,
    sanitize_task,
)
from checklist_platform.services.checklist_progress import sort_tasks_by_priority
from checklist_platform.services.checklist_types import (
    Category,
    EvidenceStatus,
    Priority,
    ReferenceType,
    Severity,
    TaskStatus,
)

TS = "2026-01-01T00:00:00.000Z"


class TestScalarSanitizers:

    def test_unknown_status_falls_back_to_todo(self):
        assert sanitize_status("archived") == TaskStatus.TODO
        assert sanitize_status(None) == TaskStatus.TODO
        assert sanitize_status(["done"]) == TaskStatus.TODO
        assert sanitize_status("done") == TaskStatus.DONE

    def test_due_date_normalization(self):
        assert sanitize_due_date("2026-01-06") == "2026-01-06"
        assert sanitize_due_date(" 2026-01-06T15:00:00Z ") == "2026-01-06"
        assert sanitize_due_date("06.01.2026") == "2026-01-06"
        assert sanitize_due_date("tomorrow") is None
        assert sanitize_due_date(None) is None


class TestAttachmentSanitizers:

    def test_references_drop_entries_without_label(self):
        refs = sanitize_references([
            {"label": " LC 214/2025 ", "type": "legislation", "url": "https://example.org"},
            {"label": "  "},
            {"description": "no label"},
            "not a mapping",
        ])
        assert len(refs) == 1
        assert refs[0].label == "LC 214/2025"
        assert refs[0].type == ReferenceType.LEGISLATION

    def test_reference_unknown_type_is_dropped_not_rejected(self):
        refs = sanitize_references([{"label": "Guide", "type": "video"}])
        assert refs[0].type is None

    def test_evidences(self):
        evidences = sanitize_evidences([{"label": "Minutes", "status": "in review"}, {"status": "pending"}])
        assert [(e.label, e.status) for e in evidences] == [("Minutes", EvidenceStatus.IN_REVIEW)]

    def test_notes_fill_defaults(self):
        notes = sanitize_notes([{"content": "Call the accountant"}, {"content": ""}])
        assert len(notes) == 1
        assert notes[0].author == "Team"
        assert notes[0].id
        assert notes[0].created_at

    def test_non_list_inputs_become_empty(self):
        assert sanitize_references(None) == []
        assert sanitize_evidences("x") == []
        assert sanitize_notes({"content": "x"}) == []
        assert sanitize_tags("tag") == []

    def test_tags_are_trimmed_strings(self):
        assert sanitize_tags([" ibs ", "", 3, "cbs"]) == ["ibs", "cbs"]


class TestSanitizeTask:

    def test_fills_defaults(self):
        task = sanitize_task({}, "board1", TS)
        assert task.id
        assert task.checklist_id == "board1"
        assert task.title == "Untitled task"
        assert task.owner == "Team"
        assert task.severity == Severity.AMBER
        assert task.status == TaskStatus.TODO
        assert task.category == Category.PLANNING
        assert task.priority == Priority.MEDIUM
        assert task.created_at == task.updated_at == TS
        assert task.references == [] and task.notes == [] and task.tags == []

    def test_infers_blueprint_due_date_for_unedited_legacy_record(self):
        task = sanitize_task({"id": "fundamentos-regime-tributario", "title": "Legacy"}, "board1", TS)
        assert task.due_date == "2026-01-06"

    def test_does_not_restore_cleared_due_date(self):
        task = sanitize_task(
            {"id": "fundamentos-regime-tributario", "created_at": TS, "updated_at": "2026-01-02T00:00:00.000Z"},
            "board1", TS,
        )
        assert task.due_date is None

    def test_malformed_due_date_is_absent(self):
        task = sanitize_task({"id": "custom", "due_date": "soon"}, "board1", TS)
        assert task.due_date is None

    def test_non_string_text_fields_fall_back_to_defaults(self):
        task = sanitize_task({"id": "a", "title": 123, "owner": ["x"], "description": 5}, "board1", TS)
        assert task.title == "Untitled task"
        assert task.owner == "Team"
        assert task.description == ""

    def test_tasks_with_non_string_titles_still_sort(self):
        tasks = [
            sanitize_task({"id": "b", "title": "Zeta"}, "board1", TS),
            sanitize_task({"id": "a", "title": 123}, "board1", TS),
        ]
        assert [t.id for t in sort_tasks_by_priority(tasks)] == ["a", "b"]


class TestSanitizeBoardAndNotification:

    def test_board_sanitizes_nested_tasks(self):
        board = sanitize_board(
            {"id": "b1", "created_at": TS, "tasks": [{"id": "t1", "status": "weird"}, "junk"]},
            "acme",
        )
        assert board.company_id == "acme"
        assert board.name == "Checklist"
        assert [t.id for t in board.tasks] == ["t1"]
        assert board.tasks[0].status == TaskStatus.TODO
        assert board.tasks[0].created_at == TS

    def test_notification_round_trip_fields(self):
        notification = sanitize_notification({
            "id": "b1-t1", "checklist_id": "b1", "task_id": "t1", "severity": "red",
            "title": "File", "message": "Due 06/01", "read": 1, "due_date": "2026-01-06",
            "metadata": None, "created_at": TS,
        })
        assert notification.severity == Severity.RED
        assert notification.read is True
        assert notification.metadata == {}
        assert notification.priority is None

    def test_notification_read_flag_parses_strings(self):
        def _read(value):
            return sanitize_notification({"id": "b1-t1", "read": value}).read

        assert _read("false") is False
        assert _read("True") is True
        assert _read(0) is False
        assert _read(None) is False
        assert _read(["x"]) is False
        assert _read(True) is True
