"""Create the default admin user if it does not exist.

Usage (from the project root):
  python scripts/init_admin_user.py
  python scripts/init_admin_user.py --username myadmin --password secret --email admin@example.com

Tables are created first, so this also works against a fresh database.
"""
import argparse
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from pydantic import ValidationError

from newshub.core.exceptions import Conflict
from newshub.db.session import SessionLocal, create_db
from newshub.schemas.user import AdminUserCreate
from newshub.services.auth import create_admin_user

DEFAULT_ADMIN = {
    "username": "admin",
    "password": "adminpass",
    "email": "admin@newshub.com",
    "role": "admin",
}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--username", default=DEFAULT_ADMIN["username"])
    parser.add_argument("--password", default=DEFAULT_ADMIN["password"])
    parser.add_argument("--email", default=DEFAULT_ADMIN["email"])
    parser.add_argument("--role", default=DEFAULT_ADMIN["role"], choices=["admin", "super-admin"])
    args = parser.parse_args(argv)
    try:
        payload = AdminUserCreate(username=args.username, email=args.email, password=args.password, role=args.role)
    except ValidationError as e:
        print("INVALID:", e)
        return 1

    create_db()
    db = SessionLocal()
    try:
        user = create_admin_user(db, payload.username, payload.email, payload.password, role=payload.role)
    except Conflict as e:
        print("SKIPPED:", e.message)
        return 0
    finally:
        db.close()
    print(f"CREATED admin user id={user.id} username={user.username} role={user.role.value}")
    if payload.password == DEFAULT_ADMIN["password"]:
        print("WARNING: default password in use, change it after the first login")
    return 0


if __name__ == "__main__":
    sys.exit(main())
