"""
Standalone script to create the schema and an initial admin account.

Usage:
    python scripts/init_db.py --admin-username admin --admin-password 'change me'

Existing tables are left untouched. The admin account is only created when
no user with that username exists yet.
"""

import argparse
import asyncio
import os
import sys

from sqlalchemy import select

# --- Path Setup ---
# This allows the script to import modules from the 'src' directory
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.center_hub_backend.database import engine as db_engine
from src.center_hub_backend.database.models import Users
from src.center_hub_backend.database.db_enums import UserRole
from src.center_hub_backend.database.utils import create_all_tables
from src.center_hub_backend.common.security_utils import HashedPassword


async def ensure_admin(username: str, password: str) -> None:
    async with db_engine.AsyncSessionLocal() as session:
        existing = (await session.execute(select(Users.id).where(Users.username == username))).scalars().first()
        if existing:
            print(f"  - Admin user '{username}' already exists. No change.")
            return

        session.add(Users(
            username=username,
            password=HashedPassword.get_hash(password),
            role=UserRole.ADMIN.value,
            is_active=True
        ))
        await session.commit()
        print(f"  - Created admin user '{username}'.")


async def main(args: argparse.Namespace) -> None:
    db_engine.create_db_engine_and_session_factory()
    try:
        print("Creating tables...")
        await create_all_tables(db_engine.engine)
        if args.admin_username:
            if not args.admin_password:
                print("Error: --admin-password is required with --admin-username.")
                return
            await ensure_admin(args.admin_username, args.admin_password)
    finally:
        await db_engine.dispose_db_engine()
    print("Database initialisation finished.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--admin-username")
    parser.add_argument("--admin-password")
    asyncio.run(main(parser.parse_args()))
