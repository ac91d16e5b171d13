"""
Database seeding script for a development fleet.

Creates one truck of every type, two clients sharing part of the fleet,
and prints access tokens for each role. Run with:

    python -m fleetdesk.seed_fleet
"""

import asyncio
from datetime import date, timedelta

from fleetdesk.app.core.jwt import create_access_token
from fleetdesk.app.db.session import AsyncSessionLocal, engine, Base
from fleetdesk.app.domain.allocation.allocation_ledger import AllocationLedger
from fleetdesk.app.domain.registry.registry_service import TruckRegistry
from fleetdesk.app.models.client import Client
from fleetdesk.app.models.truck_enums import TruckType
from fleetdesk.app.repositories.sql_repository import SqlFleetRepository

SEED_TRUCKS = [
    ("KA 01 MT 0001", TruckType.MINI_TRUCK, "Tata"),
    ("KA 01 FW 0002", TruckType.FOUR_WHEELER, "Mahindra"),
    ("KA 01 SW 0003", TruckType.SIX_WHEELER, "Eicher"),
    ("KA 01 EW 0004", TruckType.EIGHT_WHEELER, "Ashok Leyland"),
    ("KA 01 TW 0005", TruckType.TEN_WHEELER, "BharatBenz"),
]


async def seed_fleet():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        repo = SqlFleetRepository(db)
        registry = TruckRegistry(repo)
        ledger = AllocationLedger(repo)

        if await repo.get_truck_by_plate(SEED_TRUCKS[0][0]):
            print("ℹ️  Fleet already seeded, skipping")
            return

        print("🌱 Starting fleet seeding...")
        expiry = date.today() + timedelta(days=365)
        trucks = []
        for plate, truck_type, brand in SEED_TRUCKS:
            trucks.append(await registry.create_truck(plate, truck_type, expiry, brand=brand))
            print(f"✅ Created truck {plate} ({truck_type.value})")

        acme = await repo.add_client(Client(name="Acme Traders"))
        globex = await repo.add_client(Client(name="Globex Retail"))
        await repo.commit()

        # The six wheeler is shared between both clients
        await ledger.allocate_trucks(acme.id, [trucks[0].id, trucks[2].id])
        await ledger.allocate_trucks(globex.id, [trucks[2].id, trucks[4].id])

        print("\n🎉 Fleet seeding completed successfully!")
        print("\nDevelopment tokens:")
        print("  - ADMIN: ", create_access_token({"sub": "admin", "user_id": 1, "role": "ADMIN"}))
        print("  - CLIENT:", create_access_token(
            {"sub": "acme", "user_id": 2, "role": "CLIENT", "client_id": acme.id}
        ))
        print("  - DRIVER:", create_access_token({"sub": "driver", "user_id": 3, "role": "DRIVER"}))


if __name__ == "__main__":
    asyncio.run(seed_fleet())
