import uuid
from typing import Any, Dict, List, Sequence

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.stock import (
    AVAILABLE,
    RESERVED,
    InsufficientStock,
    StockAdjustment,
    StockError,
    StockItemNotFound,
    StockPersistenceError,
    StockRecord,
)
from .item import InventoryItem as InventoryItemModel


def _as_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


class SqlInventoryStore:
    """Inventory store over the `inventory_items` table.

    Counter changes are applied as `SET x = x + delta WHERE x + delta >= 0`,
    one statement per item inside a single transaction, so concurrent checkouts
    cannot overwrite each other or drive a counter below zero. A guard miss rolls
    back the whole batch.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_all(self) -> List[StockRecord]:
        try:
            res = await self.db.execute(select(InventoryItemModel))
        except SQLAlchemyError as e:
            raise StockPersistenceError(f"Failed to read inventory: {e}") from e
        return [StockRecord.from_row(it) for it in res.scalars().all()]

    async def apply_adjustments(self, adjustments: Sequence[StockAdjustment]) -> List[StockRecord]:
        tbl = InventoryItemModel.__table__
        updated: List[StockRecord] = []
        # rows are locked in id order so concurrent batches cannot deadlock
        ordered = sorted(adjustments, key=lambda a: str(a.item_id))
        try:
            for adj in ordered:
                stmt = (
                    update(tbl)
                    .where(tbl.c.id == _as_uuid(adj.item_id))
                    .where(tbl.c.available_stock + adj.available_delta >= 0)
                    .where(tbl.c.reserved_stock + adj.reserved_delta >= 0)
                    .values(
                        available_stock=tbl.c.available_stock + adj.available_delta,
                        reserved_stock=tbl.c.reserved_stock + adj.reserved_delta,
                    )
                    .returning(tbl.c.id, tbl.c.name, tbl.c.available_stock, tbl.c.reserved_stock)
                )
                row = (await self.db.execute(stmt)).first()
                if row is None:
                    await self.db.rollback()
                    raise await self._guard_miss(adj)
                updated.append(
                    StockRecord(
                        id=row.id,
                        name=row.name,
                        available_stock=int(row.available_stock),
                        reserved_stock=int(row.reserved_stock),
                    )
                )
            await self.db.commit()
        except StockError:
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StockPersistenceError(f"Failed to update stock: {e}") from e
        return updated

    async def _guard_miss(self, adj: StockAdjustment) -> StockError:
        # The snapshot said the change was fine; find out what moved since.
        res = await self.db.execute(
            select(InventoryItemModel).where(InventoryItemModel.id == _as_uuid(adj.item_id))
        )
        it = res.scalar_one_or_none()
        if it is None:
            return StockItemNotFound(adj.item_id)

        current = StockRecord.from_row(it)
        if adj.available_delta < 0 and current.available_stock + adj.available_delta < 0:
            counter, value, requested = AVAILABLE, current.available_stock, -adj.available_delta
            message = f"Not enough available stock for {current.name}: available {value}, requested {requested}."
        else:
            counter, value, requested = RESERVED, current.reserved_stock, -adj.reserved_delta
            message = f"Reserved stock for {current.name} is insufficient: reserved {value}, requested {requested}."
        return InsufficientStock(
            message + " Stock changed since it was read.",
            item_id=current.id,
            item_name=current.name,
            counter=counter,
            current=value,
            requested=requested,
        )

    async def bulk_upsert(self, rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        tbl = InventoryItemModel.__table__
        written: List[Dict[str, Any]] = []
        try:
            for row in rows:
                values = {k: v for k, v in row.items() if k in tbl.c}
                values["id"] = _as_uuid(values["id"])
                set_ = {k: v for k, v in values.items() if k != "id"}
                stmt = (
                    insert(tbl)
                    .values(**values)
                    .on_conflict_do_update(index_elements=[tbl.c.id], set_=set_)
                    .returning(*tbl.c)
                )
                res = (await self.db.execute(stmt)).mappings().first()
                written.append(dict(res))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StockPersistenceError(f"Failed to update stock: {e}") from e
        return written
