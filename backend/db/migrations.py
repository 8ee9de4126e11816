"""Database migration utilities"""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine


STOCK_CONSTRAINTS = {
    "ck_inventory_available_non_negative": "available_stock >= 0",
    "ck_inventory_reserved_non_negative": "reserved_stock >= 0",
}


async def add_missing_user_columns(engine: AsyncEngine):
    """Add the PoS login columns (username, card_uid) to an existing users table"""
    async with engine.begin() as conn:
        result = await conn.execute(
            text("""
                SELECT column_name
                FROM information_schema.columns
                WHERE table_name = 'users'
            """)
        )
        existing_columns = {row[0] for row in result.fetchall()}

        for column_name in ("username", "card_uid"):
            if column_name not in existing_columns:
                print(f"Adding {column_name} column to users table...")
                await conn.execute(
                    text(f"""
                        ALTER TABLE users
                        ADD COLUMN {column_name} VARCHAR
                    """)
                )
                await conn.execute(
                    text(f"""
                        CREATE UNIQUE INDEX IF NOT EXISTS ix_users_{column_name}
                        ON users ({column_name})
                    """)
                )
                print(f"Successfully added {column_name} column to users table")


async def ensure_stock_constraints(engine: AsyncEngine):
    """
    Bring an older inventory_items table up to date.

    Adds the reserved_stock column if it is missing, then the CHECK constraints
    that keep both counters non-negative. Rows that already violate a constraint
    are reported and the constraint is skipped for that run.
    """
    async with engine.begin() as conn:
        result = await conn.execute(
            text("""
                SELECT column_name
                FROM information_schema.columns
                WHERE table_name = 'inventory_items'
            """)
        )
        existing_columns = {row[0] for row in result.fetchall()}
        if not existing_columns:
            return

        for column_name in ("available_stock", "reserved_stock"):
            if column_name not in existing_columns:
                print(f"Adding {column_name} column to inventory_items table...")
                await conn.execute(
                    text(f"""
                        ALTER TABLE inventory_items
                        ADD COLUMN {column_name} INTEGER NOT NULL DEFAULT 0
                    """)
                )
                print(f"Successfully added {column_name} column to inventory_items table")

        result = await conn.execute(
            text("""
                SELECT conname
                FROM pg_constraint
                WHERE conrelid = 'inventory_items'::regclass
                AND contype = 'c'
            """)
        )
        existing_constraints = {row[0] for row in result.fetchall()}

        for name, condition in STOCK_CONSTRAINTS.items():
            if name in existing_constraints:
                continue
            bad = await conn.execute(
                text(f"SELECT COUNT(*) FROM inventory_items WHERE NOT ({condition})")
            )
            n_bad = bad.scalar() or 0
            if n_bad:
                print(f"Warning: {n_bad} inventory row(s) violate {condition}; not adding {name}")
                continue
            print(f"Adding {name} constraint to inventory_items table...")
            await conn.execute(
                text(f"""
                    ALTER TABLE inventory_items
                    ADD CONSTRAINT {name} CHECK ({condition})
                """)
            )
            print(f"Successfully added {name} constraint")
