#!/usr/bin/env python3
"""Seed blueprint tasks into checklist boards that have none (idempotent)."""

import argparse
import sys

sys.path.insert(0, ".")

from checklist_platform import create_app
from checklist_platform.models import db
from checklist_platform.models.checklist import ChecklistBoardRecord, ChecklistTaskRecord
from checklist_platform.models.company import Company
from checklist_platform.services.checklist_blueprint import instantiate_blueprint
from checklist_platform.services.checklist_progress import progress_for_boards
from checklist_platform.services.checklist_store import fetch_boards, insert_tasks
from checklist_platform.utils.helpers import parse_date, to_iso_timestamp, utc_now_iso


def backfill_checklist_tasks(*, apply: bool = False) -> dict:
    """Instantiate the default blueprint for every empty board, safe for reruns."""
    summary = {
        "mode": "apply" if apply else "dry-run",
        "processed_boards": 0,
        "inserted_tasks": 0,
        "would_insert": 0,
        "skipped_with_tasks": 0,
        "errors": 0,
        "error_details": [],
    }

    boards = ChecklistBoardRecord.query.order_by(ChecklistBoardRecord.created_at.asc()).all()

    print(f"[INFO] mode={summary['mode']} boards={len(boards)}")

    for board in boards:
        summary["processed_boards"] += 1
        prefix = f"company_id={board.company_id} board_id={board.id}"

        try:
            existing = ChecklistTaskRecord.query.filter_by(board_id=board.id).count()
            if existing > 0:
                summary["skipped_with_tasks"] += 1
                print(f"[SKIP] {prefix} reason=has_tasks count={existing}")
                continue

            # Offsets run from the board's creation, not from today
            timestamp = to_iso_timestamp(board.created_at) or utc_now_iso()
            tasks = instantiate_blueprint(
                checklist_id=board.id,
                reference_date=board.reference_date or parse_date(timestamp),
                timestamp=timestamp,
            )
            if not tasks:
                print(f"[WARN] {prefix} reason=blueprint_returned_no_tasks")
                continue

            if not apply:
                summary["would_insert"] += len(tasks)
                print(f"[PLAN] {prefix} insert tasks={len(tasks)}")
                continue

            insert_tasks(board.id, tasks)
            company = db.session.get(Company, board.company_id)
            if company is not None:
                company.checklist_progress = progress_for_boards(fetch_boards(board.company_id))
            db.session.commit()

            summary["inserted_tasks"] += len(tasks)
            print(f"[CREATE] {prefix} tasks={len(tasks)}")

        except Exception as exc:
            db.session.rollback()
            summary["errors"] += 1
            summary["error_details"].append(
                {
                    "company_id": board.company_id,
                    "board_id": board.id,
                    "error": str(exc),
                }
            )
            print(f"[ERROR] {prefix} error={exc}")

    print(
        "[SUMMARY] "
        f"mode={summary['mode']} "
        f"processed={summary['processed_boards']} "
        f"inserted={summary['inserted_tasks']} "
        f"would_insert={summary['would_insert']} "
        f"skipped={summary['skipped_with_tasks']} "
        f"errors={summary['errors']}"
    )

    return summary


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Seed blueprint tasks into checklist boards that have none (idempotent)."
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", action="store_true", help="Preview only; do not write data")
    mode.add_argument("--apply", action="store_true", help="Persist backfill changes")
    args = parser.parse_args()

    apply = bool(args.apply)
    if not args.dry_run and not args.apply:
        print("[INFO] No mode specified; defaulting to --dry-run")

    app = create_app()
    with app.app_context():
        result = backfill_checklist_tasks(apply=apply)

    if apply and result["errors"] > 0:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
