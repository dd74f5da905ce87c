"""
Link legacy contributions to their case.

Older contributions only name their case in the description
("Contribution for Case #C027"). This sets transactions.case_id for those
rows so case progress no longer depends on description text.
Usage: python scripts/backfill_case_links.py [--dry-run]
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from welfare.db.base import SessionLocal
from welfare.services.cases import link_legacy_contributions


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Backfill transactions.case_id from descriptions")
    parser.add_argument("--dry-run", action="store_true", help="Report without saving")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        linked = link_legacy_contributions(db)
        if args.dry_run:
            db.rollback()
            print(f"{linked} contributions would be linked (dry run)")
        else:
            db.commit()
            print(f"✅ Linked {linked} contributions to their case")
    except Exception as e:
        db.rollback()
        print(f"❌ Error linking contributions: {e}")
        raise
    finally:
        db.close()
