"""
create_tables.py — idempotent table creation script.
Run this before starting the service for the first time, or after schema changes.
Safe to run multiple times: existing tables and restrictions are left alone.

Usage:
    python scripts/create_tables.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure the project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from menuguard.database import AsyncSessionLocal, engine
from menuguard.models import Base
from menuguard.services.restrictions import seed_restrictions


async def main() -> None:
    """Create all tables and seed the dietary restriction catalogue."""
    print("Creating tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("  ✓ All tables created (IF NOT EXISTS)")

    print("Seeding dietary restrictions...")
    async with AsyncSessionLocal() as session:
        added = await seed_restrictions(session)
    print(f"  ✓ {added} restrictions added")

    print("\nDone. Run `python scripts/import_menu.py --csv menu.csv --restaurant <id>` next.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
