import asyncio
import os
import sys
from pathlib import Path

"""
Seed demo data (operators, categories, inventory items, members) into the Postgres DB.

This script can be run from either:
- backend/: `uv run python scripts/seed_demo_data.py`
- repo root: `uv run python backend/scripts/seed_demo_data.py`

Env vars:
- SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD (default: admin@example.com / admin)
- SEED_STAFF_EMAIL / SEED_STAFF_PASSWORD (default: staff@example.com / staff)
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from db.database import async_session_maker, create_db_and_tables
from db.users import User
from db.category import Category
from db.member import Member
from db.inventory.item import InventoryItem

from fastapi_users.password import PasswordHelper


password_helper = PasswordHelper()

CATEGORIES = [
    ("Flower", "Flower"),
    ("Pre-Rolls", "Cigarette"),
    ("Edibles", "Cookie"),
    ("Vapes", "Wind"),
    ("Accessories", "Package"),
]

# name, category, description, [(option name, price, unit)], available_stock
ITEMS = [
    ("Blue Dream", "Flower", "Balanced hybrid.", [("Gram", 10.0, "g"), ("Eighth", 32.0, "3.5g")], 120),
    ("OG Kush", "Flower", "Classic indica-leaning hybrid.", [("Gram", 12.0, "g"), ("Eighth", 38.0, "3.5g")], 80),
    ("Sour Diesel Pre-Roll", "Pre-Rolls", None, [("Single", 8.0, "unit"), ("5-Pack", 35.0, "pack")], 40),
    ("Gummies 100mg", "Edibles", "10 x 10mg.", [("Pack", 20.0, "pack")], 25),
    ("Live Resin Cart", "Vapes", "0.5g cartridge.", [("Cartridge", 45.0, "unit")], 8),
    ("Glass Pipe", "Accessories", None, [("Each", 15.0, "unit")], 5),
]

# uid, card number, name, tier
MEMBERS = [
    ("04A1B2C3", 1001, "Alex Rivera", "Basic"),
    ("04D4E5F6", 1002, "Sam Lee", "Gold"),
    ("04778899", 1003, "Jordan Kim", "Supreme"),
]


async def get_or_create_user(session, email: str, password: str, superuser: bool) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=email,
        username=email.split("@")[0],
        hashed_password=password_helper.hash(password),
        is_active=True,
        is_superuser=superuser,
        is_verified=True,
    )
    session.add(user)
    await session.flush()
    return user


async def get_or_create_category(session, name: str, icon_name: str, sort_order: int) -> Category:
    result = await session.execute(select(Category).where(func.lower(Category.name) == name.lower()))
    category = result.scalar_one_or_none()
    if category:
        return category

    category = Category(name=name, icon_name=icon_name, sort_order=sort_order)
    session.add(category)
    await session.flush()
    return category


async def upsert_item(session, name, category, description, options, available_stock) -> InventoryItem:
    result = await session.execute(
        select(InventoryItem).where(func.lower(InventoryItem.name) == name.lower())
    )
    item = result.scalar_one_or_none()
    pricing_options = [
        {"id": f"{name.lower().replace(' ', '-')}-{i}", "name": o, "price": price, "unit": unit}
        for i, (o, price, unit) in enumerate(options)
    ]
    if item is None:
        item = InventoryItem(
            name=name,
            category=category,
            description=description,
            pricing_options=pricing_options,
            available_stock=available_stock,
            reserved_stock=0,
        )
        session.add(item)
    else:
        # leave the counters alone on re-runs, reservations may be outstanding
        item.category = category
        item.description = description
        item.pricing_options = pricing_options
    await session.flush()
    return item


async def get_or_create_member(session, uid: str, card_number: int, name: str, tier: str) -> Member:
    result = await session.execute(select(Member).where(Member.uid == uid))
    member = result.scalar_one_or_none()
    if member:
        return member

    member = Member(uid=uid, card_number=card_number, name=name, tier=tier, status="Active", total_purchases=0)
    session.add(member)
    await session.flush()
    return member


async def seed() -> None:
    await create_db_and_tables()

    async with async_session_maker() as session:
        async with session.begin():
            await get_or_create_user(
                session,
                os.getenv("SEED_ADMIN_EMAIL", "admin@example.com"),
                os.getenv("SEED_ADMIN_PASSWORD", "admin"),
                superuser=True,
            )
            await get_or_create_user(
                session,
                os.getenv("SEED_STAFF_EMAIL", "staff@example.com"),
                os.getenv("SEED_STAFF_PASSWORD", "staff"),
                superuser=False,
            )

            for i, (name, icon) in enumerate(CATEGORIES):
                await get_or_create_category(session, name, icon, i)

            for name, category, description, options, stock in ITEMS:
                await upsert_item(session, name, category, description, options, stock)

            for uid, card_number, name, tier in MEMBERS:
                await get_or_create_member(session, uid, card_number, name, tier)

    print(
        f"Seeded {len(CATEGORIES)} categories, {len(ITEMS)} items, {len(MEMBERS)} members "
        "and 2 operators (admin + staff)"
    )


if __name__ == "__main__":
    asyncio.run(seed())
