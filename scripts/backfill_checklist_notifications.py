#!/usr/bin/env python3
"""Rebuild every company's checklist notifications from task state (idempotent).

Read flags of notifications that still apply are preserved; notifications
for completed or removed tasks are dropped.
"""

import argparse
import sys

sys.path.insert(0, ".")

from checklist_platform import create_app
from checklist_platform.models import db
from checklist_platform.models.company import Company
from checklist_platform.services.checklist_notifications import build_notifications, merge_notifications
from checklist_platform.services.checklist_store import fetch_boards, fetch_notifications, save_notifications


def backfill_checklist_notifications(*, apply: bool = False, today=None) -> dict:
    """Re-derive notifications per company; one failing company does not stop the run."""
    summary = {
        "mode": "apply" if apply else "dry-run",
        "processed_companies": 0,
        "synced": 0,
        "would_sync": 0,
        "removed": 0,
        "skipped_without_boards": 0,
        "errors": 0,
        "error_details": [],
    }

    companies = Company.query.order_by(Company.id.asc()).all()

    print(f"[INFO] mode={summary['mode']} companies={len(companies)}")

    for company in companies:
        summary["processed_companies"] += 1
        prefix = f"company_id={company.id}"

        try:
            boards = fetch_boards(company.id)
            if not boards:
                summary["skipped_without_boards"] += 1
                print(f"[SKIP] {prefix} reason=no_boards")
                continue

            previous = fetch_notifications(company.id)
            notifications = merge_notifications(previous, build_notifications(boards, previous, today=today))

            if not apply:
                summary["would_sync"] += len(notifications)
                print(f"[PLAN] {prefix} boards={len(boards)} notifications={len(notifications)}")
                continue

            result = save_notifications(company.id, notifications, remove_missing=True)
            db.session.commit()

            summary["synced"] += len(notifications)
            summary["removed"] += result["removed"]
            print(f"[SYNC] {prefix} notifications={len(notifications)} removed={result['removed']}")

        except Exception as exc:
            db.session.rollback()
            summary["errors"] += 1
            summary["error_details"].append({"company_id": company.id, "error": str(exc)})
            print(f"[ERROR] {prefix} error={exc}")

    print(
        "[SUMMARY] "
        f"mode={summary['mode']} "
        f"processed={summary['processed_companies']} "
        f"synced={summary['synced']} "
        f"would_sync={summary['would_sync']} "
        f"removed={summary['removed']} "
        f"errors={summary['errors']}"
    )

    return summary


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Rebuild checklist notifications for every company (idempotent)."
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", action="store_true", help="Preview only; do not write data")
    mode.add_argument("--apply", action="store_true", help="Persist notification changes")
    args = parser.parse_args()

    apply = bool(args.apply)
    if not args.dry_run and not args.apply:
        print("[INFO] No mode specified; defaulting to --dry-run")

    app = create_app()
    with app.app_context():
        result = backfill_checklist_notifications(apply=apply)

    if apply and result["errors"] > 0:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
