"""
Checklist engine — domain records.

Plain dataclasses shared by the blueprint registry, the instantiator, the
progress/priority calculators and the notification deriver. Nothing in this
module touches the database or the clock.

Enum members subclass ``str`` so that ``Severity.RED == "red"`` holds and
records serialize without custom encoders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════

class Severity(str, Enum):
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


class TaskStatus(str, Enum):
    TODO = "todo"
    DOING = "doing"
    DONE = "done"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Category(str, Enum):
    PLANNING = "Planning"
    OPERATIONS = "Operations"
    COMPLIANCE = "Compliance"


class Phase(str, Enum):
    FUNDAMENTALS = "Fundamentals"
    PLANNING = "Planning"
    IMPLEMENTATION = "Implementation"
    MONITORING = "Monitoring"


class Pillar(str, Enum):
    """Governance pillars a task contributes to."""
    GOVERNANCE = "Governance & Strategy"
    DATA = "Data & Master Records"
    PROCESSES = "Processes & Obligations"
    TECHNOLOGY = "Technology & Automation"
    PEOPLE = "People & Change"


class ReferenceType(str, Enum):
    LEGISLATION = "legislation"
    GUIDE = "guide"
    MATERIAL = "material"
    TEMPLATE = "template"


class EvidenceStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in review"
    COMPLETED = "completed"


def _value(member):
    return member.value if isinstance(member, Enum) else member


def _compact(payload: dict) -> dict:
    """Drop keys whose value is None so optional fields stay optional on the wire."""
    return {k: v for k, v in payload.items() if v is not None}


# ═════════════════════════════════════════════════════════════════════════════
# Attachments
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TaskReference:
    """Supporting material (legislation, guide, template) linked to a task."""
    label: str
    description: str | None = None
    url: str | None = None
    type: ReferenceType | None = None

    def to_dict(self) -> dict:
        return _compact({
            "label": self.label,
            "description": self.description,
            "url": self.url,
            "type": _value(self.type),
        })


@dataclass(frozen=True)
class TaskEvidence:
    """Artifact that proves a task was carried out."""
    label: str
    description: str | None = None
    url: str | None = None
    status: EvidenceStatus | None = None

    def to_dict(self) -> dict:
        return _compact({
            "label": self.label,
            "description": self.description,
            "url": self.url,
            "status": _value(self.status),
        })


@dataclass(frozen=True)
class TaskNote:
    id: str
    author: str
    content: str
    created_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "created_at": self.created_at,
        }


# ═════════════════════════════════════════════════════════════════════════════
# Blueprint definitions (immutable, static)
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BlueprintTask:
    id: str
    title: str
    description: str
    category: Category
    severity: Severity
    owner: str
    priority: Priority
    phase: Phase
    pillar: Pillar
    due_in_days: int | None = None
    status: TaskStatus = TaskStatus.TODO
    references: tuple[TaskReference, ...] = ()
    evidences: tuple[TaskEvidence, ...] = ()
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return _compact({
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": _value(self.category),
            "severity": _value(self.severity),
            "owner": self.owner,
            "priority": _value(self.priority),
            "phase": _value(self.phase),
            "pillar": _value(self.pillar),
            "due_in_days": self.due_in_days,
            "status": _value(self.status),
            "references": [r.to_dict() for r in self.references],
            "evidences": [e.to_dict() for e in self.evidences],
            "tags": list(self.tags),
        })


@dataclass(frozen=True)
class BlueprintPhase:
    id: str
    phase: Phase
    title: str
    summary: str
    milestone: str
    focus: tuple[str, ...] = ()
    tasks: tuple[BlueprintTask, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phase": _value(self.phase),
            "title": self.title,
            "summary": self.summary,
            "milestone": self.milestone,
            "focus": list(self.focus),
            "tasks": [t.to_dict() for t in self.tasks],
        }


@dataclass(frozen=True)
class Blueprint:
    """A versioned, ordered collection of phases."""
    version: str
    phases: tuple[BlueprintPhase, ...] = ()

    def iter_tasks(self):
        for phase in self.phases:
            yield from phase.tasks

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "task_count": sum(len(p.tasks) for p in self.phases),
            "phases": [p.to_dict() for p in self.phases],
        }


# ═════════════════════════════════════════════════════════════════════════════
# Instances (mutable over their lifecycle)
# ═════════════════════════════════════════════════════════════════════════════

@dataclass
class ChecklistTask:
    id: str
    checklist_id: str
    title: str
    description: str
    severity: Severity
    status: TaskStatus
    owner: str
    category: Category
    created_at: str
    updated_at: str
    due_date: str | None = None
    phase: Phase | None = None
    pillar: Pillar | None = None
    priority: Priority | None = None
    references: list[TaskReference] = field(default_factory=list)
    evidences: list[TaskEvidence] = field(default_factory=list)
    notes: list[TaskNote] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    blueprint_id: str | None = None

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    def to_dict(self) -> dict:
        return _compact({
            "id": self.id,
            "checklist_id": self.checklist_id,
            "blueprint_id": self.blueprint_id,
            "title": self.title,
            "description": self.description,
            "severity": _value(self.severity),
            "status": _value(self.status),
            "owner": self.owner,
            "category": _value(self.category),
            "due_date": self.due_date,
            "phase": _value(self.phase),
            "pillar": _value(self.pillar),
            "priority": _value(self.priority),
            "references": [r.to_dict() for r in self.references],
            "evidences": [e.to_dict() for e in self.evidences],
            "notes": [n.to_dict() for n in self.notes],
            "tags": list(self.tags),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        })

    @classmethod
    def from_dict(cls, data: dict, checklist_id: str, fallback_timestamp: str) -> "ChecklistTask":
        from checklist_platform.services.checklist_normalizers import sanitize_task
        return sanitize_task(data, checklist_id, fallback_timestamp)


@dataclass
class ChecklistBoard:
    id: str
    company_id: str
    name: str
    created_at: str
    updated_at: str
    description: str | None = None
    reference_date: str | None = None
    tasks: list[ChecklistTask] = field(default_factory=list)

    def to_dict(self, include_tasks: bool = True) -> dict:
        payload = _compact({
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "description": self.description,
            "reference_date": self.reference_date,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "task_count": len(self.tasks),
        })
        if include_tasks:
            payload["tasks"] = [t.to_dict() for t in self.tasks]
        return payload

    @classmethod
    def from_dict(cls, data: dict, company_id: str) -> "ChecklistBoard":
        from checklist_platform.services.checklist_normalizers import sanitize_board
        return sanitize_board(data, company_id)


@dataclass
class ChecklistNotification:
    """Derived reminder for one non-completed task. Only ``read`` is stateful."""
    id: str
    checklist_id: str | None
    task_id: str | None
    severity: Severity
    title: str
    message: str
    created_at: str
    read: bool = False
    due_date: str | None = None
    phase: Phase | None = None
    priority: Priority | None = None
    pillar: Pillar | None = None
    kind: str = "task_deadline"
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return _compact({
            "id": self.id,
            "checklist_id": self.checklist_id,
            "task_id": self.task_id,
            "kind": self.kind,
            "severity": _value(self.severity),
            "title": self.title,
            "message": self.message,
            "due_date": self.due_date,
            "created_at": self.created_at,
            "read": self.read,
            "phase": _value(self.phase),
            "priority": _value(self.priority),
            "pillar": _value(self.pillar),
            "metadata": dict(self.metadata),
        })


@dataclass
class ChecklistMetrics:
    total_checklists: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0
    overdue_tasks: int = 0
    upcoming_three_days: int = 0
    critical_tasks: int = 0
    attention_tasks: int = 0

    def to_dict(self) -> dict:
        return {
            "total_checklists": self.total_checklists,
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "in_progress_tasks": self.in_progress_tasks,
            "overdue_tasks": self.overdue_tasks,
            "upcoming_three_days": self.upcoming_three_days,
            "critical_tasks": self.critical_tasks,
            "attention_tasks": self.attention_tasks,
        }
