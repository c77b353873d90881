"""
Seed the first SUPERUSER account for the inspection backend.

Inspectors are created afterwards through ``POST /api/auth/register``,
which is restricted to administrators.

Usage:
    python seed_admin.py

Environment variables (optional):
    ADMIN_EMAIL: Email for the admin account (default: admin@simba-ecd.co.tz)
    ADMIN_PASSWORD: Password for the admin account (default: SimbaDepot2026!)
    ADMIN_FIRST_NAME / ADMIN_LAST_NAME: Display name (default: Depot Admin)
"""

import os
import sys
from pathlib import Path

import bcrypt

sys.path.insert(0, str(Path(__file__).parent))

from core.database import SessionLocal, engine, Base  # noqa: E402
from models.user import User  # noqa: E402


def hash_password(plain_password: str) -> str:
    """bcrypt hash in the format the login flow verifies."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def seed_admin(reset_password: bool = False) -> bool:
    admin_email = os.getenv("ADMIN_EMAIL", "admin@simba-ecd.co.tz").strip().lower()
    admin_password = os.getenv("ADMIN_PASSWORD", "SimbaDepot2026!")
    first_name = os.getenv("ADMIN_FIRST_NAME", "Depot")
    last_name = os.getenv("ADMIN_LAST_NAME", "Admin")

    print("Inspection backend admin seeding")
    print("=" * 60)
    print(f"Email: {admin_email}")
    print("Role: SUPERUSER")
    print("=" * 60)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == admin_email).first()  # type: ignore
        if existing:
            print(f"Admin user already exists ({existing.role})")
            if reset_password:
                existing.hashed_password = hash_password(admin_password)  # type: ignore
                db.commit()
                print("Admin password reset")
            return True

        admin_user = User(
            email=admin_email,
            first_name=first_name,
            last_name=last_name,
            hashed_password=hash_password(admin_password),
            role="SUPERUSER",
            permissions=["admin", "inspection"],
            is_active=True,
        )
        db.add(admin_user)
        db.commit()

        print("Admin user created")
        print(f"   ID: {admin_user.id}")
        print(f"   Name: {admin_user.full_name}")
        return True
    finally:
        db.close()


if __name__ == "__main__":
    success = seed_admin(reset_password="--reset-password" in sys.argv)
    sys.exit(0 if success else 1)
