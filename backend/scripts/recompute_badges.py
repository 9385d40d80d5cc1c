"""CLI script to re-derive every user's badges from their reputation points.
Usage: python scripts/recompute_badges.py [--dry-run]

Badges are only ever added, never revoked, so running this repeatedly is
harmless. Useful after changing the badge thresholds or importing users.
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `thexempt` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from thexempt.database import engine, create_db_and_tables
from thexempt import services


def main(dry_run: bool = False) -> dict:
    """Run the badge backfill and print a short per-user report."""
    create_db_and_tables()
    with Session(engine) as session:
        result = services.ReputationService(session).recompute_badges(dry_run=dry_run)
    for d in result['details']:
        added = ', '.join(d['added']) or '(deduplicated)'
        print(f"user {d['user_id']}: {added}")
    verb = 'would update' if dry_run else 'updated'
    print(f"Checked {result['checked']} users, {verb} {result['updated']}")
    return result


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--dry-run', action='store_true', help='Report changes without writing them')
    args = parser.parse_args()
    main(dry_run=args.dry_run)
