"""
Stock bookkeeping for orders and sales.

Every inventory item carries two counters: available_stock (sellable now) and
reserved_stock (held for pending orders). Their sum is the stock on hand.

    reserve   available - q   reserved + q   order placed
    fulfill   available       reserved - q   order paid and picked up
    release   available + q   reserved - q   order cancelled / reservation undone
    deduct    available - q   reserved       walk-in sale, no order

A batch is checked line by line against a snapshot of the inventory before
anything is written, then handed to the store in a single call. Either every
line is applied or none is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


class StockError(Exception):
    """Base for every stock failure. `message` is safe to show to the operator."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StockItemNotFound(StockError):
    def __init__(self, item_id: Any):
        super().__init__(f"Item with ID {item_id} not found.")
        self.item_id = item_id


class InsufficientStock(StockError):
    def __init__(
        self,
        message: str,
        *,
        item_id: Any,
        item_name: str,
        counter: str,
        current: int,
        requested: int,
    ):
        super().__init__(message)
        self.item_id = item_id
        self.item_name = item_name
        self.counter = counter
        self.current = current
        self.requested = requested


class StockPersistenceError(StockError):
    pass


@dataclass(frozen=True)
class StockLine:
    item_id: Any
    quantity: int


@dataclass(frozen=True)
class StockRecord:
    id: Any
    name: str
    available_stock: int
    reserved_stock: int

    @property
    def total_stock(self) -> int:
        return self.available_stock + self.reserved_stock

    @classmethod
    def from_row(cls, row: Any) -> "StockRecord":
        """Build from an ORM object or a dict. Missing counters count as 0."""
        get = row.get if isinstance(row, dict) else (lambda k: getattr(row, k, None))
        return cls(
            id=get("id"),
            name=get("name") or "",
            available_stock=int(get("available_stock") or 0),
            reserved_stock=int(get("reserved_stock") or 0),
        )


@dataclass(frozen=True)
class StockAdjustment:
    item_id: Any
    item_name: str
    available_delta: int
    reserved_delta: int


@dataclass
class StockUpdateResult:
    """Outcome of a batch that went through. Failures are raised as StockError, never returned."""

    success: bool
    message: str
    items: List[Any] = field(default_factory=list)


class InventoryStore(Protocol):
    async def fetch_all(self) -> Sequence[StockRecord]:
        ...

    async def bulk_upsert(self, rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        ...

    async def apply_adjustments(self, adjustments: Sequence[StockAdjustment]) -> List[StockRecord]:
        ...


AVAILABLE = "available_stock"
RESERVED = "reserved_stock"


@dataclass(frozen=True)
class StockOperation:
    name: str
    past: str
    available_sign: int
    reserved_sign: int
    guarded: str
    shortfall: str

    def adjustment_for(self, record: StockRecord, quantity: int) -> StockAdjustment:
        available_delta = self.available_sign * quantity
        reserved_delta = self.reserved_sign * quantity
        current = record.available_stock if self.guarded == AVAILABLE else record.reserved_stock
        delta = available_delta if self.guarded == AVAILABLE else reserved_delta
        if current + delta < 0:
            raise InsufficientStock(
                self.shortfall.format(name=record.name or record.id, current=current, requested=quantity),
                item_id=record.id,
                item_name=record.name,
                counter=self.guarded,
                current=current,
                requested=quantity,
            )
        return StockAdjustment(
            item_id=record.id,
            item_name=record.name,
            available_delta=available_delta,
            reserved_delta=reserved_delta,
        )


RESERVE = StockOperation(
    "reserve", "reserved", -1, +1, AVAILABLE,
    "Not enough available stock for {name}: available {current}, requested {requested}.",
)
FULFILL = StockOperation(
    "fulfill", "fulfilled", 0, -1, RESERVED,
    "Reserved stock for {name} is insufficient for fulfillment: reserved {current}, requested {requested}.",
)
RELEASE = StockOperation(
    "release", "released", +1, -1, RESERVED,
    "Reserved stock for {name} is insufficient for release: reserved {current}, requested {requested}.",
)
DEDUCT = StockOperation(
    "deduct", "deducted", -1, 0, AVAILABLE,
    "Not enough available stock for {name}: available {current}, requested {requested}.",
)

OPERATIONS: Dict[str, StockOperation] = {op.name: op for op in (RESERVE, FULFILL, RELEASE, DEDUCT)}


def merge_lines(lines: Iterable[StockLine]) -> List[StockLine]:
    """Sum quantities of lines naming the same item, keeping first-seen order."""
    totals: Dict[str, StockLine] = {}
    for line in lines:
        key = str(line.item_id)
        prev = totals.get(key)
        qty = int(line.quantity) + (prev.quantity if prev else 0)
        totals[key] = StockLine(item_id=prev.item_id if prev else line.item_id, quantity=qty)
    return list(totals.values())


def plan_adjustments(
    operation: StockOperation,
    lines: Iterable[StockLine],
    snapshot: Iterable[StockRecord],
) -> List[StockAdjustment]:
    """Validate a batch against the snapshot and return the deltas to apply.

    Raises StockItemNotFound or InsufficientStock on the first bad line.
    """
    by_id = {str(r.id): r for r in snapshot}
    out: List[StockAdjustment] = []
    for line in merge_lines(lines):
        record = by_id.get(str(line.item_id))
        if record is None:
            raise StockItemNotFound(line.item_id)
        out.append(operation.adjustment_for(record, line.quantity))
    return out


def apply_to_snapshot(
    snapshot: Iterable[StockRecord], adjustments: Iterable[StockAdjustment]
) -> List[StockRecord]:
    """Return the snapshot with the adjustments applied (records not adjusted are kept)."""
    deltas = {str(a.item_id): a for a in adjustments}
    out: List[StockRecord] = []
    for r in snapshot:
        a = deltas.get(str(r.id))
        if a is None:
            out.append(r)
            continue
        out.append(
            StockRecord(
                id=r.id,
                name=r.name,
                available_stock=r.available_stock + a.available_delta,
                reserved_stock=r.reserved_stock + a.reserved_delta,
            )
        )
    return out


async def run_stock_operation(
    operation: StockOperation,
    store: InventoryStore,
    lines: Iterable[StockLine],
    snapshot: Optional[Sequence[StockRecord]] = None,
) -> StockUpdateResult:
    lines = list(lines)
    if snapshot is None:
        snapshot = await store.fetch_all()

    try:
        adjustments = plan_adjustments(operation, lines, snapshot)
    except StockError as e:
        logger.warning("stock %s rejected: %s", operation.name, e.message)
        raise

    if not adjustments:
        return StockUpdateResult(success=True, message=f"Nothing to {operation.name}.")

    try:
        updated = await store.apply_adjustments(adjustments)
    except StockError as e:
        logger.warning("stock %s failed in store: %s", operation.name, e.message)
        raise

    logger.info(
        "stock %s: %s",
        operation.past,
        ", ".join(f"{a.item_id} x{abs(a.available_delta or a.reserved_delta)}" for a in adjustments),
    )
    return StockUpdateResult(success=True, message=f"Stock {operation.past} successfully.", items=updated)


async def reserve_stock(store, lines, snapshot=None) -> StockUpdateResult:
    """Move units from available to reserved when an order is placed."""
    return await run_stock_operation(RESERVE, store, lines, snapshot)


async def fulfill_stock(store, lines, snapshot=None) -> StockUpdateResult:
    """Clear reserved units when an order is paid.

    available_stock is not touched: it already went down when the order was reserved.
    """
    return await run_stock_operation(FULFILL, store, lines, snapshot)


async def release_stock(store, lines, snapshot=None) -> StockUpdateResult:
    """Move reserved units back to available (order cancelled or reservation undone)."""
    return await run_stock_operation(RELEASE, store, lines, snapshot)


async def deduct_stock(store, lines, snapshot=None) -> StockUpdateResult:
    """Take units straight out of available stock for a sale with no order."""
    return await run_stock_operation(DEDUCT, store, lines, snapshot)


async def update_stock(store: InventoryStore, rows: Sequence[Dict[str, Any]]) -> StockUpdateResult:
    """Insert or replace inventory rows keyed by id.

    No stock rules are checked here; callers that change counters go through
    the operations above.
    """
    rows = list(rows)
    written = await store.bulk_upsert(rows)
    logger.info("inventory upsert: %d row(s)", len(written))
    return StockUpdateResult(success=True, message="Stock updated successfully.", items=written)
