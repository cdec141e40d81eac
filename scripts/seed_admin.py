"""
Seed Admin User

Creates the first admin account. Credentials come from the environment:

    SEED_ADMIN_EMAIL, SEED_ADMIN_PASSWORD
    SEED_ADMIN_FIRST_NAME, SEED_ADMIN_LAST_NAME (optional)

Usage:
    SEED_ADMIN_EMAIL=admin@example.org SEED_ADMIN_PASSWORD=... python scripts/seed_admin.py
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from vulcan.core.config import settings
from vulcan.core.security import hash_password
from vulcan.modules.users.models import UserRole
from vulcan.modules.users.repository import UserRepository


async def seed_admin() -> None:
    """Create the admin user if it doesn't exist."""
    email = os.environ.get("SEED_ADMIN_EMAIL")
    password = os.environ.get("SEED_ADMIN_PASSWORD")
    if not email or not password:
        print("SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD must be set")
        sys.exit(1)

    first_name = os.environ.get("SEED_ADMIN_FIRST_NAME", "Program")
    last_name = os.environ.get("SEED_ADMIN_LAST_NAME", "Admin")

    engine = create_async_engine(settings.database_url, echo=False)
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as db:
        existing_user = await UserRepository.get_by_email(db, email)
        if existing_user:
            print(f"Admin already exists: {email}")
            print(f"  ID: {existing_user.id}")
            print(f"  Role: {existing_user.role.value}")
            await engine.dispose()
            return

        admin_user = await UserRepository.create(
            db,
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=UserRole.ADMIN,
            password_hash=hash_password(password),
        )
        await db.commit()

        print("Admin created successfully!")
        print(f"  Email: {admin_user.email}")
        print(f"  Name: {first_name} {last_name}")
        print(f"  ID: {admin_user.id}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_admin())
