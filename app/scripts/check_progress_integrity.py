"""
Report learner progress that breaks the engine's invariants.

Read-only by default: prints dangling or unpublished completed videos,
positions behind the completed prefix, stale completion timestamps and
duplicate published orders. Duplicated progress records cannot exist (the
database rejects them), so nothing is ever deduplicated or deleted here.

Usage:
    uv run python app/scripts/check_progress_integrity.py
    uv run python app/scripts/check_progress_integrity.py --recompute-completion
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from sqlalchemy.orm import Session

from app.db.session import get_db
from app.progress.services.progress_service import IntegrityReport, ProgressService


def print_report(report: IntegrityReport) -> None:
    print(f"🔍 Checked {report.checked_records} progress records")

    if report.is_clean:
        print("✅ No integrity issues found")
        return

    print(f"⚠️  Found {len(report.issues)} issues:")
    for kind, count in sorted(report.counts().items()):
        print(f"   {kind}: {count}")
    print()

    for issue in report.issues:
        subject = f"user {issue.user_id}" if issue.user_id else "catalog"
        video = f" video {issue.video_id}" if issue.video_id else ""
        print(f"   - [{issue.kind}] {subject}{video}: {issue.message}")


def check_progress_integrity(db: Session, recompute_completion: bool = False) -> IntegrityReport:
    service = ProgressService(db)
    print(f"📚 Catalog holds {service.catalog.videos.count()} videos")

    if recompute_completion:
        changed = service.recompute_completion_for_all()
        print(f"🔄 Recomputed completed_at: {changed} records changed")
        print()

    report = service.find_integrity_issues()
    print_report(report)
    return report


def main() -> None:
    parser = argparse.ArgumentParser(description="Check learner progress integrity")
    parser.add_argument(
        "--recompute-completion",
        action="store_true",
        help="Re-derive completed_at against the published catalog before reporting",
    )
    args = parser.parse_args()

    print("=" * 60)
    print("🩺 Progress Integrity Check")
    print("=" * 60)
    print()

    db = next(get_db())
    try:
        report = check_progress_integrity(db, recompute_completion=args.recompute_completion)
    except Exception as e:
        print(f"\n❌ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()

    sys.exit(0 if report.is_clean else 1)


if __name__ == "__main__":
    main()
