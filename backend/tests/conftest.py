import os
import sys
import uuid

import pytest


# Allow running pytest from either the repo root or from within `backend/`.
# Tests import `core.*`, `db.*` etc., which requires `backend/` on sys.path.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from core.stock import (  # noqa: E402
    InsufficientStock,
    StockItemNotFound,
    StockPersistenceError,
    StockRecord,
)


class MemoryInventoryStore:
    """
    In-memory stand-in for SqlInventoryStore.

    apply_adjustments is all-or-nothing and re-checks the counters it holds,
    like the guarded UPDATEs do, so a stale snapshot fails here too.
    Set `fail_writes` to make every write raise StockPersistenceError.
    """

    def __init__(self, records=(), fail_writes=False):
        self.rows = {str(r.id): r for r in records}
        self.fail_writes = fail_writes
        self.writes = 0

    async def fetch_all(self):
        return list(self.rows.values())

    async def apply_adjustments(self, adjustments):
        if self.fail_writes:
            raise StockPersistenceError("Failed to update stock: connection lost")
        staged = dict(self.rows)
        out = []
        for a in adjustments:
            key = str(a.item_id)
            r = staged.get(key)
            if r is None:
                raise StockItemNotFound(a.item_id)
            new = StockRecord(
                id=r.id,
                name=r.name,
                available_stock=r.available_stock + a.available_delta,
                reserved_stock=r.reserved_stock + a.reserved_delta,
            )
            if new.available_stock < 0 or new.reserved_stock < 0:
                counter = "available_stock" if new.available_stock < 0 else "reserved_stock"
                raise InsufficientStock(
                    f"Not enough stock for {r.name}. Stock changed since it was read.",
                    item_id=r.id,
                    item_name=r.name,
                    counter=counter,
                    current=getattr(r, counter),
                    requested=abs(a.available_delta if counter == "available_stock" else a.reserved_delta),
                )
            staged[key] = new
            out.append(new)
        self.rows = staged
        self.writes += 1
        return out

    async def bulk_upsert(self, rows):
        if self.fail_writes:
            raise StockPersistenceError("Failed to update stock: connection lost")
        written = []
        for row in rows:
            key = str(row["id"])
            prev = self.rows.get(key)
            merged = {
                "id": row["id"],
                "name": row.get("name", prev.name if prev else ""),
                "available_stock": row.get("available_stock", prev.available_stock if prev else 0),
                "reserved_stock": row.get("reserved_stock", prev.reserved_stock if prev else 0),
            }
            self.rows[key] = StockRecord.from_row(merged)
            written.append(dict(row))
        self.writes += 1
        return written

    def state(self, item_id):
        r = self.rows[str(item_id)]
        return (r.available_stock, r.reserved_stock)


def make_record(name="Blue Dream", available=0, reserved=0, item_id=None):
    return StockRecord(
        id=item_id or str(uuid.uuid4()),
        name=name,
        available_stock=available,
        reserved_stock=reserved,
    )


@pytest.fixture
def store_with():
    """store_with(available, reserved) -> (store, item_id) holding one item."""

    def _make(available=0, reserved=0, name="Blue Dream"):
        rec = make_record(name=name, available=available, reserved=reserved)
        return MemoryInventoryStore([rec]), rec.id

    return _make


@pytest.fixture
def make_store():
    """make_store(*records, fail_writes=False) -> MemoryInventoryStore."""

    def _make(*records, fail_writes=False):
        return MemoryInventoryStore(records, fail_writes=fail_writes)

    return _make


@pytest.fixture
def record():
    """record(name, available=0, reserved=0) -> StockRecord with a fresh id."""
    return make_record
