"""
Create an admin user, or promote an existing account to admin.
Use when no ADMIN_EMAIL / ADMIN_PASSWORD is set or you need a second admin.

Usage (from project root):
  python scripts/create_admin.py admin@villas.demo Password123!
  python scripts/create_admin.py manager@villas.demo Password123! --role manager
  python scripts/create_admin.py existing@villas.demo --promote-only
"""
import os
import sys
import argparse

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sqlalchemy import func
from app.database import Base, SessionLocal, engine
from app.models.user import User, UserRole
from app.services.auth import get_password_hash


def main():
    parser = argparse.ArgumentParser(description="Create or promote an admin user")
    parser.add_argument("email", type=str)
    parser.add_argument("password", type=str, nargs="?", default=None)
    parser.add_argument("--role", type=str, default="admin", choices=[r.value for r in UserRole])
    parser.add_argument("--promote-only", action="store_true", help="Only change the role of an existing user")
    args = parser.parse_args()

    email = args.email.strip().lower()
    role = UserRole(args.role)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = db.query(User).filter(func.lower(User.email) == email).first()
        if user:
            user.role = role
            if args.password and not args.promote_only:
                user.hashed_password = get_password_hash(args.password)
            db.commit()
            print(f"Updated {email}: role={role.value}")
            return 0
        if args.promote_only:
            print(f"No user with email {email}.")
            return 1
        if not args.password or len(args.password) < 8:
            print("A password of at least 8 characters is required to create a user.")
            return 1
        db.add(User(email=email, hashed_password=get_password_hash(args.password), role=role, is_active=True))
        db.commit()
        print(f"Created {role.value}: {email}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
