"""
Checklist Platform
Notification model — persisted projection of the derived checklist feed.

Models:
    - ChecklistNotificationRecord: one row per non-completed task, keyed by
      the deterministic ``{board_id}-{task_id}`` id so re-derivation upserts
      instead of accumulating.
"""

from datetime import datetime, timezone

from checklist_platform.models import db
from checklist_platform.models.base import CompanyScopedModel


# ── Constants ────────────────────────────────────────────────────────────────

NOTIFICATION_KINDS = {"task_deadline", "system"}
NOTIFICATION_SEVERITIES = {"green", "amber", "red"}


class ChecklistNotificationRecord(CompanyScopedModel):
    """
    In-app checklist notification.

    ``read`` is the only column not re-derived from task state.
    """

    __tablename__ = "checklist_notifications"

    id = db.Column(db.String(255), primary_key=True)
    checklist_id = db.Column(db.String(120), nullable=True, index=True)
    task_id = db.Column(db.String(120), nullable=True)
    kind = db.Column(db.String(30), default="task_deadline")
    severity = db.Column(db.String(20), default="amber")
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    due_date = db.Column(db.Date, nullable=True)
    phase = db.Column(db.String(30), nullable=True)
    priority = db.Column(db.String(20), nullable=True)
    pillar = db.Column(db.String(60), nullable=True)
    metadata_json = db.Column("metadata", db.JSON, nullable=True)

    # Read tracking
    read = db.Column(db.Boolean, default=False, nullable=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def mark_read(self, read=True):
        self.read = read
        self.read_at = datetime.now(timezone.utc) if read else None

    def __repr__(self):
        return f"<ChecklistNotificationRecord {self.id}: {self.title[:40]}>"
