#!/usr/bin/env python3
"""
Create a MemeMind account in the database.
Run this after the first start (or it creates the tables itself).

    python scripts/create_user.py someone@example.com hunter22
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.auth.accounts import register
from app.core.db import SessionLocal, create_all
from app.services.errors import AuthError


def create_account(email: str, password: str) -> None:
    create_all()
    db = SessionLocal()

    try:
        user = register(db, email, password)
        db.commit()
        print(f"✅ Created account {user.email} (id={user.id})")
    except AuthError as e:
        db.rollback()
        print(f"⚠️  {e.message}: {email}")
    except Exception as e:
        print(f"\n❌ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    create_account(sys.argv[1], sys.argv[2])
