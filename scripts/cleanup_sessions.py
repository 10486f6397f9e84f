"""Delete admin sessions past their access or refresh expiry.

Meant for cron when the in-process sweep is disabled
(SESSION_CLEANUP_INTERVAL_SECONDS=0).

Usage (from the project root):
  python scripts/cleanup_sessions.py
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from newshub.db.session import SessionLocal
from newshub.services.auth import cleanup_expired


def main():
    db = SessionLocal()
    try:
        removed = cleanup_expired(db)
    finally:
        db.close()
    print(f"CLEANUP_OK removed={removed}")


if __name__ == "__main__":
    main()
