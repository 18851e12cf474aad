"""Company domain model — the scope every checklist derivation runs under."""

import uuid
from datetime import datetime, timezone

from checklist_platform.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class Company(db.Model):
    """A company adapting to the tax reform; owns checklist boards."""

    __tablename__ = "companies"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    cnpj = db.Column(db.String(20), nullable=True)
    regime = db.Column(db.String(60), nullable=True, default="",
                       comment="Tax regime label, e.g. Lucro Real")
    sector = db.Column(db.String(100), nullable=True, default="")
    checklist_progress = db.Column(db.Integer, nullable=False, default=0,
                                   comment="0..100, refreshed on every task mutation")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    boards = db.relationship(
        "ChecklistBoardRecord", backref="company", lazy="select",
        cascade="all, delete-orphan", order_by="ChecklistBoardRecord.created_at",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "cnpj": self.cnpj,
            "regime": self.regime,
            "sector": self.sector,
            "checklist_progress": self.checklist_progress,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Company {self.id}: {self.name[:40]}>"
