"""
Checklist Blueprint Registry & Task Instantiator.

The CRT-3 essential blueprint is the static, versioned catalog of phases and
task templates used to seed a new company board. ``BlueprintRegistry`` indexes
one or more blueprint versions by task id; ``instantiate_blueprint`` expands a
blueprint into concrete ``ChecklistTask`` instances with absolute due dates.

Usage:
    from checklist_platform.services.checklist_blueprint import (
        default_registry, instantiate_blueprint,
    )
    registry = default_registry()
    tasks = instantiate_blueprint(
        registry.get_blueprint(), checklist_id="board-1",
        reference_date="2026-01-01T00:00:00Z", timestamp="2026-01-01T00:00:00.000Z",
    )
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta

from checklist_platform.core.exceptions import ConflictError
from checklist_platform.services.checklist_types import (
    Blueprint,
    BlueprintPhase,
    BlueprintTask,
    Category,
    ChecklistBoard,
    ChecklistTask,
    EvidenceStatus,
    Phase,
    Pillar,
    Priority,
    ReferenceType,
    Severity,
    TaskEvidence,
    TaskReference,
    TaskStatus,
)
from checklist_platform.utils.helpers import format_date_only, parse_date, utc_now_iso

logger = logging.getLogger(__name__)

CRT3_BLUEPRINT_VERSION = "crt3-essential-v1"


# ═════════════════════════════════════════════════════════════════════════════
# CRT-3 Essential Blueprint
# ═════════════════════════════════════════════════════════════════════════════

def _ref(label, type_=None, url=None, description=None):
    return TaskReference(label=label, description=description, url=url, type=type_)


def _ev(label, status=EvidenceStatus.PENDING, description=None):
    return TaskEvidence(label=label, description=description, status=status)


_FUNDAMENTALS = BlueprintPhase(
    id="fase-fundamentos",
    phase=Phase.FUNDAMENTALS,
    title="Tax Reform Fundamentals",
    summary="Set up governance and understand the financial impact.",
    milestone="Committee in place and initial diagnosis completed",
    focus=("Governance", "Financial impact", "Risk map"),
    tasks=(
        BlueprintTask(
            id="fundamentos-regime-tributario",
            title="Confirm the current tax regime",
            description="Document the company's regime, special regimes and benefits that the CBS/IBS transition affects.",
            category=Category.PLANNING,
            severity=Severity.AMBER,
            owner="Tax Team",
            priority=Priority.HIGH,
            phase=Phase.FUNDAMENTALS,
            pillar=Pillar.GOVERNANCE,
            due_in_days=5,
            references=(
                _ref("Tax reform quick guide", ReferenceType.GUIDE,
                     "https://www.gov.br/economia/pt-br/assuntos/reforma-tributaria"),
            ),
            evidences=(_ev("Regime assessment memo"),),
            tags=("crt3", "fundamentals", "regime"),
        ),
        BlueprintTask(
            id="fundamentos-impacto-financeiro",
            title="Quantify the CBS/IBS financial impact",
            description="Consolidate credit, debit and special-regime scenarios for the transition.",
            category=Category.PLANNING,
            severity=Severity.RED,
            owner="Finance Team",
            priority=Priority.HIGH,
            phase=Phase.FUNDAMENTALS,
            pillar=Pillar.GOVERNANCE,
            due_in_days=10,
            references=(
                _ref("Tax reform quick guide", ReferenceType.GUIDE,
                     "https://www.gov.br/economia/pt-br/assuntos/reforma-tributaria"),
                _ref("CBS/IBS simulation model", ReferenceType.TEMPLATE),
            ),
            evidences=(_ev("Financial impact report"),),
            tags=("crt3", "fundamentals", "finance"),
        ),
        BlueprintTask(
            id="fundamentos-comite-reforma",
            title="Form the tax reform committee",
            description="Name finance, tax, technology and legal representatives for governance.",
            category=Category.PLANNING,
            severity=Severity.AMBER,
            owner="Board of Directors",
            priority=Priority.MEDIUM,
            phase=Phase.FUNDAMENTALS,
            pillar=Pillar.GOVERNANCE,
            due_in_days=5,
            status=TaskStatus.DOING,
            references=(_ref("Suggested committee structure", ReferenceType.MATERIAL),),
            evidences=(_ev("Committee charter minutes", EvidenceStatus.IN_REVIEW),),
            tags=("crt3", "fundamentals", "governance"),
        ),
        BlueprintTask(
            id="fundamentos-matriz-riscos",
            title="Update the tax risk matrix",
            description="Map critical risks and set tolerances for the implementation phase.",
            category=Category.COMPLIANCE,
            severity=Severity.AMBER,
            owner="Consulting",
            priority=Priority.MEDIUM,
            phase=Phase.FUNDAMENTALS,
            pillar=Pillar.PROCESSES,
            due_in_days=14,
            references=(_ref("CRT-3 risk checklist", ReferenceType.MATERIAL),),
            evidences=(_ev("Validated risk matrix"),),
            tags=("crt3", "fundamentals", "risks"),
        ),
    ),
)

_PLANNING = BlueprintPhase(
    id="fase-planejamento",
    phase=Phase.PLANNING,
    title="Adaptation Planning",
    summary="Prioritize master data, processes and stakeholder communication.",
    milestone="Master data reviewed and communication plan approved",
    focus=("Master data", "Processes", "Communication"),
    tasks=(
        BlueprintTask(
            id="planejamento-cadastros-ncm",
            title="Review product master data and NCM codes",
            description="Update tax codes, exceptions and benefits according to CBS/IBS rules.",
            category=Category.OPERATIONS,
            severity=Severity.RED,
            owner="Tax Team",
            priority=Priority.HIGH,
            phase=Phase.PLANNING,
            pillar=Pillar.DATA,
            due_in_days=18,
            references=(
                _ref("Updated NCM table", ReferenceType.LEGISLATION,
                     "https://www.gov.br/receitafederal/pt-br/assuntos/normas"),
            ),
            evidences=(_ev("Master data divergence report"),),
            tags=("crt3", "planning", "master-data"),
        ),
        BlueprintTask(
            id="planejamento-relacionamento-fornecedores",
            title="Align critical suppliers",
            description="Share billing changes and documentation requirements with strategic partners.",
            category=Category.OPERATIONS,
            severity=Severity.AMBER,
            owner="Procurement",
            priority=Priority.MEDIUM,
            phase=Phase.PLANNING,
            pillar=Pillar.PROCESSES,
            due_in_days=24,
            status=TaskStatus.DOING,
            references=(_ref("CRT-3 communication roadmap", ReferenceType.GUIDE),),
            evidences=(_ev("Approved communication plan", EvidenceStatus.IN_REVIEW),),
            tags=("crt3", "planning", "suppliers"),
        ),
        BlueprintTask(
            id="planejamento-ajuste-precificacao",
            title="Simulate pricing scenarios",
            description="Model before/after margins and propose adjustments for board approval.",
            category=Category.PLANNING,
            severity=Severity.AMBER,
            owner="Finance",
            priority=Priority.MEDIUM,
            phase=Phase.PLANNING,
            pillar=Pillar.GOVERNANCE,
            due_in_days=30,
            status=TaskStatus.DONE,
            references=(_ref("Margin simulation template", ReferenceType.TEMPLATE),),
            evidences=(_ev("Approved scenarios", EvidenceStatus.COMPLETED),),
            tags=("crt3", "planning", "pricing"),
        ),
    ),
)

_IMPLEMENTATION = BlueprintPhase(
    id="fase-implementacao",
    phase=Phase.IMPLEMENTATION,
    title="Systems and Process Implementation",
    summary="Configure technology and automate operational obligations.",
    milestone="ERP adjusted and automated flows in production",
    focus=("ERP", "Automation", "Training"),
    tasks=(
        BlueprintTask(
            id="implementacao-config-erp",
            title="Configure the ERP for the new taxes",
            description="Set up calculation, crediting and tax reporting rules.",
            category=Category.OPERATIONS,
            severity=Severity.RED,
            owner="Technology",
            priority=Priority.HIGH,
            phase=Phase.IMPLEMENTATION,
            pillar=Pillar.TECHNOLOGY,
            due_in_days=35,
            references=(_ref("CRT-3 technical checklist", ReferenceType.MATERIAL),),
            evidences=(_ev("ERP sign-off"),),
            tags=("crt3", "implementation", "erp"),
        ),
        BlueprintTask(
            id="implementacao-automacao-xml",
            title="Automate invoice XML capture",
            description="Enable inbound and outbound integrations with divergence alerts.",
            category=Category.OPERATIONS,
            severity=Severity.AMBER,
            owner="Technology",
            priority=Priority.MEDIUM,
            phase=Phase.IMPLEMENTATION,
            pillar=Pillar.TECHNOLOGY,
            due_in_days=40,
            status=TaskStatus.DOING,
            references=(_ref("Integration technical manual", ReferenceType.MATERIAL),),
            evidences=(_ev("Validated integration logs"),),
            tags=("crt3", "implementation", "automation"),
        ),
        BlueprintTask(
            id="implementacao-treinamento-times",
            title="Train operational teams",
            description="Run workshops on the new procurement, billing and tax flows.",
            category=Category.OPERATIONS,
            severity=Severity.GREEN,
            owner="HR",
            priority=Priority.LOW,
            phase=Phase.IMPLEMENTATION,
            pillar=Pillar.PEOPLE,
            due_in_days=45,
            status=TaskStatus.DONE,
            references=(_ref("Standard training deck", ReferenceType.MATERIAL),),
            evidences=(_ev("Consolidated attendance list", EvidenceStatus.COMPLETED),),
            tags=("crt3", "implementation", "training"),
        ),
    ),
)

_MONITORING = BlueprintPhase(
    id="fase-monitoramento",
    phase=Phase.MONITORING,
    title="Monitoring and Adjustments",
    summary="Validate obligations, track indicators and report results.",
    milestone="First monitoring cycle completed",
    focus=("Obligations", "Audit", "Reporting"),
    tasks=(
        BlueprintTask(
            id="monitoramento-obrigacoes-acessorias",
            title="Update ancillary obligation controls",
            description="Review SPED, EFD and other filings affected by the new regime.",
            category=Category.COMPLIANCE,
            severity=Severity.RED,
            owner="Compliance",
            priority=Priority.HIGH,
            phase=Phase.MONITORING,
            pillar=Pillar.PROCESSES,
            due_in_days=52,
            references=(_ref("Post-reform obligations checklist", ReferenceType.MATERIAL),),
            evidences=(_ev("Updated filing schedule"),),
            tags=("crt3", "monitoring", "compliance"),
        ),
        BlueprintTask(
            id="monitoramento-auditoria-piloto",
            title="Run a pilot compliance audit",
            description="Conduct an internal audit to validate rules and point out adjustments.",
            category=Category.COMPLIANCE,
            severity=Severity.AMBER,
            owner="Internal Audit",
            priority=Priority.MEDIUM,
            phase=Phase.MONITORING,
            pillar=Pillar.GOVERNANCE,
            due_in_days=60,
            status=TaskStatus.DOING,
            references=(_ref("CRT-3 audit script", ReferenceType.MATERIAL),),
            evidences=(_ev("Audit report", EvidenceStatus.IN_REVIEW),),
            tags=("crt3", "monitoring", "audit"),
        ),
        BlueprintTask(
            id="monitoramento-report-executivo",
            title="Present results to the board",
            description="Share progress indicators, risks and next steps.",
            category=Category.PLANNING,
            severity=Severity.GREEN,
            owner="Consulting",
            priority=Priority.LOW,
            phase=Phase.MONITORING,
            pillar=Pillar.GOVERNANCE,
            due_in_days=65,
            status=TaskStatus.DONE,
            references=(_ref("Executive dashboard template", ReferenceType.TEMPLATE),),
            evidences=(_ev("Executive meeting minutes", EvidenceStatus.COMPLETED),),
            tags=("crt3", "monitoring", "report"),
        ),
    ),
)

CRT3_BLUEPRINT = Blueprint(
    version=CRT3_BLUEPRINT_VERSION,
    phases=(_FUNDAMENTALS, _PLANNING, _IMPLEMENTATION, _MONITORING),
)


# ═════════════════════════════════════════════════════════════════════════════
# Registry
# ═════════════════════════════════════════════════════════════════════════════

class BlueprintRegistry:
    """
    Index of blueprint task definitions, namespaced by blueprint version.

    Registration is idempotent: registering the same definition again is a
    no-op. A different definition for an id already present under the same
    version is a load-time programming error and raises ConflictError.
    Lookups never raise.
    """

    def __init__(self, *blueprints: Blueprint) -> None:
        self._blueprints: dict[str, Blueprint] = {}
        self._tasks: dict[str, dict[str, BlueprintTask]] = {}
        self._default_version: str | None = None
        for blueprint in blueprints:
            self.register(blueprint)

    def register(self, blueprint: Blueprint) -> "BlueprintRegistry":
        index: dict[str, BlueprintTask] = {}
        for task in blueprint.iter_tasks():
            if task.id in index and index[task.id] != task:
                raise ConflictError("BlueprintTask", "id", task.id)
            index[task.id] = task

        existing = self._tasks.get(blueprint.version, {})
        for task_id, task in index.items():
            known = existing.get(task_id)
            if known is not None and known != task:
                raise ConflictError("BlueprintTask", "id", f"{blueprint.version}:{task_id}")

        if blueprint.version not in self._blueprints:
            self._blueprints[blueprint.version] = blueprint
        self._tasks.setdefault(blueprint.version, {}).update(index)
        if self._default_version is None:
            self._default_version = blueprint.version
        logger.debug("Registered blueprint %s (%d tasks)", blueprint.version, len(index))
        return self

    def set_default(self, version: str) -> None:
        if version not in self._blueprints:
            raise KeyError(version)
        self._default_version = version

    @property
    def default_version(self) -> str | None:
        return self._default_version

    def versions(self) -> list[str]:
        return list(self._blueprints)

    def get_blueprint(self, version: str | None = None) -> Blueprint | None:
        return self._blueprints.get(version or self._default_version or "")

    def get_task(self, task_id: str | None, version: str | None = None) -> BlueprintTask | None:
        """Return the blueprint task for ``task_id`` or None if unknown."""
        if not task_id:
            return None
        return self._tasks.get(version or self._default_version or "", {}).get(task_id)


_default_registry: BlueprintRegistry | None = None


def default_registry() -> BlueprintRegistry:
    """Return the process-wide registry holding the CRT-3 essential blueprint."""
    global _default_registry
    if _default_registry is None:
        _default_registry = BlueprintRegistry(CRT3_BLUEPRINT)
    return _default_registry


# ═════════════════════════════════════════════════════════════════════════════
# Instantiation
# ═════════════════════════════════════════════════════════════════════════════

def future_date_iso(reference_date, days: int) -> str | None:
    """``reference_date + days`` as ``yyyy-MM-dd``; None for an unusable date."""
    base = parse_date(reference_date)
    if base is None:
        return None
    return format_date_only(base + timedelta(days=days))


def _instantiate_task(template: BlueprintTask, checklist_id: str, reference_date: date,
                      timestamp: str) -> ChecklistTask:
    due_date = None
    if template.due_in_days is not None:
        due_date = future_date_iso(reference_date, template.due_in_days)

    return ChecklistTask(
        id=template.id,
        blueprint_id=template.id,
        checklist_id=checklist_id,
        title=template.title,
        description=template.description,
        severity=template.severity,
        status=template.status or TaskStatus.TODO,
        owner=template.owner,
        category=template.category,
        due_date=due_date,
        phase=template.phase,
        pillar=template.pillar,
        priority=template.priority,
        references=[replace(r) for r in template.references],
        evidences=[replace(e) for e in template.evidences],
        notes=[],
        tags=list(template.tags),
        created_at=timestamp,
        updated_at=timestamp,
    )


def instantiate_blueprint(blueprint: Blueprint | None = None, *, checklist_id: str,
                          reference_date=None, timestamp: str | None = None) -> list[ChecklistTask]:
    """
    Expand every task template of every phase into a ChecklistTask.

    Args:
        blueprint: Blueprint to expand; defaults to the CRT-3 blueprint.
        checklist_id: Board the instances belong to.
        reference_date: date/datetime/ISO string the ``due_in_days`` offsets
            are counted from. Defaults to today.
        timestamp: ``created_at``/``updated_at`` shared by the whole batch.

    Returns:
        Tasks in blueprint-declared order. Identical inputs give identical
        output; instantiating twice for one board yields colliding ids.
    """
    blueprint = blueprint or CRT3_BLUEPRINT
    base_date = parse_date(reference_date) or date.today()
    batch_timestamp = timestamp or utc_now_iso()
    return [
        _instantiate_task(template, checklist_id, base_date, batch_timestamp)
        for template in blueprint.iter_tasks()
    ]


def infer_blueprint_due_date(task_id: str | None, reference_date, *,
                             created_at: str | None = None,
                             updated_at: str | None = None,
                             registry: BlueprintRegistry | None = None) -> str | None:
    """
    Infer a missing due date for a legacy record from its blueprint template.

    Only records without manual edits (``updated_at`` absent or equal to
    ``created_at``) get a date, so a user-cleared due date is never restored.
    """
    if updated_at and updated_at != created_at:
        return None
    template = (registry or default_registry()).get_task(task_id)
    if template is None or template.due_in_days is None:
        return None
    return future_date_iso(reference_date, template.due_in_days)


def default_board_id(company_id: str) -> str:
    return f"{company_id}-checklist-essencial"


def create_default_board(company_id: str, *, blueprint: Blueprint | None = None,
                         reference_date=None, timestamp: str | None = None,
                         board_id: str | None = None, name: str | None = None) -> ChecklistBoard:
    """Build (without persisting) the essential board seeded from a blueprint."""
    batch_timestamp = timestamp or utc_now_iso()
    base_date = parse_date(reference_date) or date.today()
    checklist_id = board_id or default_board_id(company_id)
    return ChecklistBoard(
        id=checklist_id,
        company_id=company_id,
        name=name or "CRT-3 Essential Blueprint",
        description="Guided sequence for adapting to the tax reform.",
        reference_date=format_date_only(base_date),
        created_at=batch_timestamp,
        updated_at=batch_timestamp,
        tasks=instantiate_blueprint(
            blueprint, checklist_id=checklist_id,
            reference_date=base_date, timestamp=batch_timestamp,
        ),
    )


# ═════════════════════════════════════════════════════════════════════════════
# Instance helpers
# ═════════════════════════════════════════════════════════════════════════════

def clone_task(task: ChecklistTask, *, timestamp: str | None = None, **overrides) -> ChecklistTask:
    """Copy a task with overrides; list fields are never shared with the source."""
    cloned = replace(task, **overrides)
    cloned.references = list(cloned.references)
    cloned.evidences = list(cloned.evidences)
    cloned.notes = list(cloned.notes)
    cloned.tags = list(cloned.tags)
    if "updated_at" not in overrides:
        cloned.updated_at = timestamp or utc_now_iso()
    return cloned


def update_task_status(task: ChecklistTask, status: TaskStatus, *, timestamp: str | None = None) -> ChecklistTask:
    return clone_task(task, status=TaskStatus(status), timestamp=timestamp)


def upsert_task(tasks: list[ChecklistTask], incoming: ChecklistTask) -> list[ChecklistTask]:
    """Replace the task with the same id in place, or append it."""
    result = list(tasks)
    for index, task in enumerate(result):
        if task.id == incoming.id:
            result[index] = incoming
            return result
    result.append(incoming)
    return result
