"""
Checklist Platform
Checklist domain models.

Models:
    - ChecklistBoardRecord: one board (checklist) per company rollout track
    - ChecklistTaskRecord: task instance owned by exactly one board
    - ChecklistTaskAudit: append-only change history for task mutations

Rows are mapped to the engine's dataclasses by
``checklist_platform.services.checklist_store``; nothing here holds
derivation logic.
"""

import uuid
from datetime import datetime, timezone

from checklist_platform.models import db
from checklist_platform.models.base import CompanyScopedModel


# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_EVENTS = {"created", "updated", "completed", "reopened", "status_changed", "deleted"}


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class ChecklistBoardRecord(CompanyScopedModel):
    """Persisted checklist board."""

    __tablename__ = "checklists"

    id = db.Column(db.String(120), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    reference_date = db.Column(db.Date, nullable=True,
                               comment="Date the blueprint offsets were computed from")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    tasks = db.relationship(
        "ChecklistTaskRecord", backref="board", lazy="select",
        cascade="all, delete-orphan", order_by="ChecklistTaskRecord.row_id",
    )

    def __repr__(self):
        return f"<ChecklistBoardRecord {self.id}: {self.name[:40]}>"


class ChecklistTaskRecord(db.Model):
    """
    Persisted task instance.

    ``task_id`` is only unique within its board: blueprint instantiation
    reuses the blueprint task id on every board.
    """

    __tablename__ = "checklist_tasks"
    __table_args__ = (
        db.UniqueConstraint("board_id", "task_id", name="uq_checklist_tasks_board_task"),
    )

    row_id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.String(120), nullable=False, default=_uuid)
    board_id = db.Column(
        db.String(120), db.ForeignKey("checklists.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    blueprint_id = db.Column(db.String(120), nullable=True,
                             comment="Blueprint task id this instance was seeded from")
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    severity = db.Column(db.String(20), default="amber")
    status = db.Column(db.String(20), default="todo", index=True)
    owner = db.Column(db.String(150), default="Team")
    category = db.Column(db.String(30), default="Planning")
    due_date = db.Column(db.Date, nullable=True)
    phase = db.Column(db.String(30), nullable=True)
    pillar = db.Column(db.String(60), nullable=True)
    priority = db.Column(db.String(20), nullable=True)
    reference_items = db.Column(db.JSON, nullable=True)
    evidence_items = db.Column(db.JSON, nullable=True)
    note_items = db.Column(db.JSON, nullable=True)
    tags = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<ChecklistTaskRecord {self.board_id}/{self.task_id}: {self.title[:40]}>"


class ChecklistTaskAudit(CompanyScopedModel):
    """One audit entry per task mutation."""

    __tablename__ = "checklist_task_audits"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    checklist_id = db.Column(db.String(120), nullable=False, index=True)
    task_id = db.Column(db.String(120), nullable=False, index=True)
    event = db.Column(db.String(30), nullable=False, default="updated")
    summary = db.Column(db.String(500), default="")
    changes = db.Column(db.JSON, nullable=True, comment="{field: {from, to}}")
    actor_id = db.Column(db.String(120), nullable=True)
    actor_name = db.Column(db.String(150), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "checklist_id": self.checklist_id,
            "task_id": self.task_id,
            "event": self.event if self.event in AUDIT_EVENTS else "updated",
            "summary": self.summary,
            "changes": self.changes or {},
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ChecklistTaskAudit {self.task_id}: {self.event}>"
