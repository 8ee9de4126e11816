"""
Order and checkout workflows on top of the stock operations.

The stock change always happens first. The record write (order row,
transaction row) comes second, and when it fails the workflow tries to undo
the stock change on a best-effort basis. A failed undo is logged and reported
to the operator; it is not retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from core.stock import (
    InventoryStore,
    StockError,
    StockLine,
    StockUpdateResult,
    deduct_stock,
    fulfill_stock,
    release_stock,
    reserve_stock,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CENTS = Decimal("0.01")


class CheckoutError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class WorkflowOutcome:
    message: str
    warnings: List[str] = field(default_factory=list)
    stock: Optional[StockUpdateResult] = None


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    final_total: Decimal


def _money(x: Decimal) -> Decimal:
    return x.quantize(CENTS, rounding=ROUND_HALF_UP)


def price_lines(lines: Iterable[Any], items_by_id: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Resolve cart lines (item_id, quantity, selected_option_id) to priced lines.

    The price and unit come from the item's selected pricing option, or its
    first option when none is selected.
    """
    out: List[Dict[str, Any]] = []
    for line in lines:
        item = items_by_id.get(str(line.item_id))
        if item is None:
            raise CheckoutError(f"Item with ID {line.item_id} not found.")
        options = list(item.get("pricing_options") or [])
        if not options:
            raise CheckoutError(f"{item.get('name')} has no pricing options.")
        if line.selected_option_id:
            option = next((o for o in options if str(o.get("id")) == str(line.selected_option_id)), None)
            if option is None:
                raise CheckoutError(f"Pricing option {line.selected_option_id} not found for {item.get('name')}.")
        else:
            option = options[0]
        out.append(
            {
                "itemId": str(item.get("id")),
                "name": item.get("name"),
                "quantity": int(line.quantity),
                "price": float(option.get("price") or 0),
                "unit": option.get("unit"),
                "category": item.get("category"),
                "selectedOptionId": str(option.get("id")),
            }
        )
    return out


def stock_lines(priced: Iterable[Dict[str, Any]]) -> List[StockLine]:
    return [StockLine(item_id=p["itemId"], quantity=int(p["quantity"])) for p in priced]


def discount_rate_for(tier: Optional[str], discount_rates: Dict[str, float]) -> Decimal:
    if not tier:
        return Decimal("0")
    return Decimal(str(discount_rates.get(tier, 0) or 0))


def compute_totals(
    lines: Iterable[Tuple[Any, int]],
    *,
    tier: Optional[str],
    tax_rate: float,
    discount_rates: Dict[str, float],
) -> Totals:
    """Totals for (unit price, quantity) pairs.

    Discount comes off the subtotal, tax is charged on what is left.
    Each amount is rounded to cents from the unrounded intermediate values.
    """
    subtotal = sum((Decimal(str(price)) * int(qty) for price, qty in lines), Decimal("0"))
    rate = discount_rate_for(tier, discount_rates)
    discount = subtotal * rate
    after_discount = subtotal - discount
    tax = after_discount * Decimal(str(tax_rate or 0))
    return Totals(
        subtotal=_money(subtotal),
        discount_rate=rate,
        discount_amount=_money(discount),
        tax_amount=_money(tax),
        final_total=_money(after_discount + tax),
    )


async def place_order(
    store: InventoryStore,
    lines: Sequence[StockLine],
    save_order: Callable[[], Awaitable[T]],
    snapshot=None,
) -> Tuple[T, WorkflowOutcome]:
    """Reserve stock for the order lines, then save the order.

    If the save fails, the reservation is released again.
    """
    reservation = await reserve_stock(store, lines, snapshot)

    try:
        saved = await save_order()
    except Exception as e:
        logger.warning("order save failed after reserving stock: %r", e)
        try:
            await release_stock(store, lines)
        except StockError as release_err:
            logger.error(
                "could not release stock after failed order save: %s (lines=%s)",
                release_err.message,
                [(str(l.item_id), l.quantity) for l in lines],
            )
            raise CheckoutError(
                f"Failed to add order: {e}. Releasing the reserved stock also failed: "
                f"{release_err.message} Please check inventory manually."
            ) from e
        raise CheckoutError(f"Failed to add order: {e}. Reserved stock has been released.") from e

    return saved, WorkflowOutcome(message="Order added successfully.", stock=reservation)


async def cancel_order(
    store: InventoryStore,
    lines: Sequence[StockLine],
    mark_cancelled: Callable[[], Awaitable[T]],
) -> Tuple[T, WorkflowOutcome]:
    """Release the order's reservation, then mark it cancelled.

    The order is left untouched when the release fails.
    """
    try:
        released = await release_stock(store, lines)
    except StockError as e:
        raise CheckoutError(f"Failed to cancel order: {e.message}") from e

    try:
        saved = await mark_cancelled()
    except Exception as e:
        logger.error("stock released but order could not be marked cancelled: %r", e)
        raise CheckoutError(
            f"Stock released, but failed to cancel order: {e}. Please check the order manually."
        ) from e
    return saved, WorkflowOutcome(message="Order cancelled and stock released successfully.", stock=released)


async def delete_order(
    store: InventoryStore,
    lines: Sequence[StockLine],
    remove_order: Callable[[], Awaitable[Any]],
    *,
    holds_reservation: bool,
) -> WorkflowOutcome:
    """Delete the order record, then return its reservation (if any) to available stock."""
    await remove_order()
    if not holds_reservation:
        return WorkflowOutcome(message="Order deleted successfully.")

    try:
        released = await release_stock(store, lines)
    except StockError as e:
        logger.error("order deleted but stock release failed: %s", e.message)
        return WorkflowOutcome(
            message="Order deleted.",
            warnings=[f"Order deleted, but failed to release stock: {e.message} Please check inventory manually."],
        )
    return WorkflowOutcome(message="Order deleted successfully and stock released!", stock=released)


async def release_pending_orders(
    store: InventoryStore, pending: Iterable[Tuple[Any, Sequence[Dict[str, Any]]]]
) -> Tuple[List[Any], List[str]]:
    """Release each pending order's reservation, one order at a time.

    `pending` holds (order id, items_json) pairs. Returns the ids whose release
    failed and one warning per failure; those orders still hold stock and must
    be kept.
    """
    kept: List[Any] = []
    warnings: List[str] = []
    for order_id, items in pending:
        try:
            await release_stock(store, stock_lines(items or []))
        except StockError as e:
            logger.error("release failed for pending order %s: %s", order_id, e.message)
            kept.append(order_id)
            warnings.append(f"Order {order_id} kept: failed to release stock: {e.message}")
    return kept, warnings


async def checkout(
    store: InventoryStore,
    lines: Sequence[StockLine],
    record_transaction: Callable[[], Awaitable[T]],
    *,
    fulfilling_order: bool = False,
    complete_order: Optional[Callable[[], Awaitable[Any]]] = None,
    credit_member: Optional[Callable[[], Awaitable[Any]]] = None,
    snapshot=None,
) -> Tuple[T, WorkflowOutcome]:
    """Take the stock for a sale and record it.

    An order pickup clears reserved stock; a walk-in sale deducts available
    stock. Nothing is recorded if the stock step fails. Follow-up steps
    (closing the order, crediting the member) only add warnings.
    """
    try:
        if fulfilling_order:
            stock = await fulfill_stock(store, lines, snapshot)
        else:
            stock = await deduct_stock(store, lines, snapshot)
    except StockError as e:
        if fulfilling_order:
            raise CheckoutError(f"Transaction failed: {e.message} Reserved stock not fully fulfilled.") from e
        raise CheckoutError(f"Transaction failed: {e.message}") from e

    try:
        saved = await record_transaction()
    except Exception as e:
        logger.error("stock %s but transaction record failed: %r", "fulfilled" if fulfilling_order else "deducted", e)
        raise CheckoutError(
            f"Failed to process transaction record: {e}. Stock was already updated; please check inventory manually."
        ) from e

    warnings: List[str] = []
    if fulfilling_order and complete_order is not None:
        try:
            await complete_order()
        except Exception as e:
            logger.warning("transaction recorded but order could not be closed: %r", e)
            warnings.append(f"Order processed and stock fulfilled, but failed to update order record: {e}.")
    if credit_member is not None:
        try:
            await credit_member()
        except Exception as e:
            logger.warning("transaction recorded but member purchases not updated: %r", e)
            warnings.append(f"Transaction processed, but failed to update member purchases: {e}.")

    return saved, WorkflowOutcome(message="Transaction processed successfully.", warnings=warnings, stock=stock)
