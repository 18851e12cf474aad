#!/usr/bin/env python3
"""Delete checklist notifications whose task no longer exists."""

import argparse
import sys

sys.path.insert(0, ".")

from checklist_platform import create_app
from checklist_platform.models import db
from checklist_platform.services.checklist_store import cleanup_orphan_notifications, find_orphan_notifications


def cleanup(*, limit: int, apply: bool = False) -> dict:
    summary = {"mode": "apply" if apply else "dry-run", "limit": limit, "deleted": [], "would_delete": []}

    print(f"[INFO] mode={summary['mode']} batch_size={limit}")

    if not apply:
        summary["would_delete"] = [n.id for n in find_orphan_notifications(limit=limit)]
        for nid in summary["would_delete"]:
            print(f"[PLAN] delete notification_id={nid}")
    else:
        summary["deleted"] = cleanup_orphan_notifications(limit=limit)
        db.session.commit()
        for nid in summary["deleted"]:
            print(f"[DELETE] notification_id={nid}")

    if not summary["deleted"] and not summary["would_delete"]:
        print("[INFO] No orphan notifications detected")

    print(
        "[SUMMARY] "
        f"mode={summary['mode']} "
        f"deleted={len(summary['deleted'])} "
        f"would_delete={len(summary['would_delete'])}"
    )
    return summary


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete orphan checklist notifications.")
    parser.add_argument("--limit", type=int, default=None,
                        help="Batch size (defaults to NOTIFICATION_CLEANUP_LIMIT)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", action="store_true", help="Preview only; do not delete")
    mode.add_argument("--apply", action="store_true", help="Delete orphan notifications")
    args = parser.parse_args()

    if not args.dry_run and not args.apply:
        print("[INFO] No mode specified; defaulting to --dry-run")

    app = create_app()
    with app.app_context():
        limit = args.limit or app.config["NOTIFICATION_CLEANUP_LIMIT"]
        cleanup(limit=limit, apply=bool(args.apply))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
