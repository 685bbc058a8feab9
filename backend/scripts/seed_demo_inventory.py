"""
Seed a demo household: a small location tree, a few categories and items
with per-location stock, each with its 'created' activity record.

Run locally:
  python backend/scripts/seed_demo_inventory.py
  python backend/scripts/seed_demo_inventory.py --reset

It uses the same DATABASE_URL env var as the backend (dotenv supported by core.config).
Idempotent: existing locations, categories and items (matched by SKU) are skipped.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import structlog  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from core.logging import configure_logging  # noqa: E402
from db.category import Category  # noqa: E402
from db.database import async_session_maker, create_db_and_tables, drop_db_and_tables  # noqa: E402
from db.inventory.item import InventoryItem  # noqa: E402
from db.location import Location  # noqa: E402
from services.activity import record_activity  # noqa: E402
from services.stock import write_distribution  # noqa: E402
from stock.ledger import StockLocationEntry, distribute  # noqa: E402
from stock.recorder import ActivityAction, edit_changes  # noqa: E402

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SeedLocation:
    name: str
    parent: Optional[str] = None


@dataclass(frozen=True)
class SeedItem:
    name: str
    sku: str
    category: str
    stock: int = 0
    locations: tuple = field(default_factory=tuple)  # (location, quantity) pairs
    low_stock_threshold: Optional[int] = None


SEED_LOCATIONS: list[SeedLocation] = [
    SeedLocation("Kitchen"),
    SeedLocation("Garage"),
    SeedLocation("Pantry", parent="Kitchen"),
    SeedLocation("Fridge", parent="Kitchen"),
    SeedLocation("Shelf A", parent="Garage"),
]

SEED_CATEGORIES: list[tuple[str, Optional[int]]] = [
    ("Food", 3),
    ("Cleaning", 2),
    ("Tools", None),
]

SEED_ITEMS: list[SeedItem] = [
    SeedItem("Pasta", "FOOD-001", "Food", locations=(("Pantry", 6), ("Shelf A", 4))),
    SeedItem("Olive oil", "FOOD-002", "Food", locations=(("Pantry", 2),)),
    SeedItem("Milk", "FOOD-003", "Food", locations=(("Fridge", 3),), low_stock_threshold=2),
    SeedItem("Dish soap", "CLEAN-001", "Cleaning", stock=5),
    SeedItem("Paper towels", "CLEAN-002", "Cleaning", locations=(("Shelf A", 12),)),
    SeedItem("Light bulbs", "TOOL-001", "Tools", stock=8),
]


async def seed(db: AsyncSession) -> dict:
    created = {"locations": 0, "categories": 0, "items": 0}

    # 1) Locations, parents first
    by_name: dict[str, Location] = {}
    for loc in SEED_LOCATIONS:
        res = await db.execute(select(Location).where(func.lower(Location.name) == loc.name.lower()))
        existing = res.scalar_one_or_none()
        if existing is None:
            parent = by_name.get(loc.parent) if loc.parent else None
            existing = Location(name=loc.name, parent_id=parent.id if parent else None)
            db.add(existing)
            await db.flush()
            created["locations"] += 1
        by_name[loc.name] = existing
    await db.commit()

    # 2) Categories
    for name, threshold in SEED_CATEGORIES:
        res = await db.execute(select(Category).where(func.lower(Category.name) == name.lower()))
        if res.scalar_one_or_none() is None:
            db.add(Category(name=name, low_stock_threshold=threshold))
            created["categories"] += 1
    await db.commit()

    # 3) Items with their distribution and a 'created' record
    parents = {loc.name: loc.parent for loc in SEED_LOCATIONS}
    for s in SEED_ITEMS:
        res = await db.execute(select(InventoryItem).where(InventoryItem.sku == s.sku))
        if res.scalar_one_or_none() is not None:
            continue

        stock, entries = distribute(
            StockLocationEntry(location=name, quantity=qty, parent_location=parents.get(name))
            for name, qty in s.locations
        )
        if not entries:
            stock = s.stock

        item = InventoryItem(
            name=s.name,
            sku=s.sku,
            category=s.category,
            low_stock_threshold=s.low_stock_threshold,
            stock=stock,
            revision=0,
        )
        write_distribution(item, entries)
        db.add(item)
        await db.commit()
        await db.refresh(item)

        await record_activity(
            db,
            inventory_id=item.id,
            action=ActivityAction.CREATED,
            item_name=item.name,
            changes=edit_changes({"name": s.name, "sku": s.sku, "category": s.category, "stock": stock}, None),
        )
        created["items"] += 1

    return created


async def main(reset: bool = False) -> None:
    configure_logging()
    if reset:
        await drop_db_and_tables()
    await create_db_and_tables()

    async with async_session_maker() as db:
        created = await seed(db)

    logger.info("seed_completed", **created)
    print(
        f"Done. Locations created: {created['locations']}. "
        f"Categories created: {created['categories']}. "
        f"Items created: {created['items']}."
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables before seeding")
    args = parser.parse_args()

    asyncio.run(main(reset=bool(args.reset)))
