#!/usr/bin/env python3
"""
Script to create (or reset) the schedule tables in the configured database.

Usage:
    python scripts/setup_db.py          # create missing tables
    python scripts/setup_db.py reset    # drop and recreate every table
"""

import asyncio
import sys

from app.core.config import settings
from app.core.database import Database


async def setup_database(reset: bool = False) -> bool:
    database = Database(settings.DATABASE_URL)
    print(f"Setting up database: {settings.DATABASE_URL.rsplit('@', 1)[-1]}")

    try:
        await database.connect()
        if reset:
            await database.drop_all()
            print("Dropped existing tables")
        await database.create_all()
        print("✅ Database setup complete!")
    except Exception as e:
        print(f"❌ Error setting up database: {e}")
        print("\nMake sure PostgreSQL is running and DATABASE_URL is correct.")
        return False
    finally:
        await database.dispose()

    return True


if __name__ == "__main__":
    reset = len(sys.argv) > 1 and sys.argv[1] == "reset"
    ok = asyncio.run(setup_database(reset=reset))
    sys.exit(0 if ok else 1)
