"""Create a user directly in the database.

Usage:
  python scripts/create_user.py --name "Alice Admin" --email alice@example.com --password '...' --role admin

NOTE: This is intended for local/dev, e.g. to bootstrap the first admin.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from app.database import SessionLocal, init_db
from app.errors import AppError
from app.models.user import Role
from app.services.auth import get_auth_service


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role", choices=[r.value for r in Role], default=Role.USER.value)
    args = ap.parse_args()

    init_db()
    db = SessionLocal()
    try:
        user = get_auth_service().signup(db, args.name, args.email, args.password, args.password, Role(args.role))
    except AppError as e:
        sys.exit(f"Could not create user: {e.message}")
    finally:
        db.close()

    print(f"Created user {user.id}: {user.email} ({user.role})")


if __name__ == "__main__":
    main()
