"""
Database seeding script for a development cold storage.

Creates one cold storage with per-bag rates and three chambers, then prints
an edit-access token for it. Run this script after the database is set up
but before first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from coldstore_ledger.app.db.session import AsyncSessionLocal
from coldstore_ledger.app.models.cold_storage import ColdStorage, Chamber
from coldstore_ledger.app.models.enums import AccessType, ChargeUnit
from coldstore_ledger.app.core.jwt import create_caller_token
from sqlalchemy import select

CHAMBERS = [("C-1", 12000), ("C-2", 12000), ("C-3", 8000)]


async def seed_cold_storage():
    """
    Seed a cold storage and its chambers.

    Creates:
    - 1 cold storage billed per bag (wafer 110, seed 130 incl. hammali)
    - 3 chambers
    """
    async with AsyncSessionLocal() as db:
        print("🌱 Starting cold storage seeding...")

        result = await db.execute(
            select(ColdStorage).where(ColdStorage.name == "Demo Cold Storage")
        )
        existing = result.scalar_one_or_none()

        if existing:
            print(f"ℹ️  Demo cold storage already exists (id={existing.id}), skipping seeding")
            cold_storage = existing
        else:
            cold_storage = ColdStorage(
                name="Demo Cold Storage",
                total_capacity=sum(capacity for _, capacity in CHAMBERS),
                charge_unit=ChargeUnit.BAG,
                wafer_cold_charge=100.0,
                wafer_hammali=10.0,
                seed_cold_charge=120.0,
                seed_hammali=10.0,
                starting_lot_number=1,
                next_lot_number=1,
            )
            db.add(cold_storage)
            await db.flush()

            for name, capacity in CHAMBERS:
                db.add(Chamber(cold_storage_id=cold_storage.id, name=name, capacity=capacity, current_fill=0))
                print(f"✅ Created chamber {name} ({capacity} bags)")

            await db.commit()
            print(f"\n🎉 Seeded cold storage id={cold_storage.id}")

        token = create_caller_token(1, cold_storage.id, AccessType.EDIT.value)
        print("\nEdit-access token for local testing:")
        print(f"  {token}")


if __name__ == "__main__":
    asyncio.run(seed_cold_storage())
