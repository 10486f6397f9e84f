"""Load RSS sources from the feed registry file into the sources table.

Feeds whose url or name already exist are skipped, so the script can be
re-run safely.

Usage (from the project root):
  python scripts/load_rss_feeds.py [path/to/rss_feeds.json]
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from newshub.db.session import SessionLocal, create_db
from newshub.services.feeds import load_feeds, read_registry


def main():
    path = sys.argv[1] if len(sys.argv) > 1 else None
    registry = read_registry(path)
    create_db()
    db = SessionLocal()
    try:
        counts = load_feeds(db, registry)
    finally:
        db.close()
    print("LOAD_OK loaded={loaded} skipped={skipped} failed={failed} total={total}".format(**counts))


if __name__ == "__main__":
    main()
