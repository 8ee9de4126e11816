from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

TIERS = ("Basic", "Gold", "Supreme")
ORDER_STATUSES = ("pending", "fulfilled", "cancelled")


def _d(x: Any) -> Decimal:
    return Decimal(str(x or 0))


def _day(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, str) and value:
        return value[:10]
    return None


def build_sales_report(
    transactions: Iterable[Dict[str, Any]],
    inventory: Iterable[Dict[str, Any]],
    members: Iterable[Dict[str, Any]],
    orders: Iterable[Dict[str, Any]],
    *,
    low_stock_threshold: int = 10,
    top_n: int = 5,
) -> Dict[str, Any]:
    """
    Sales and stock summary from plain row dicts (the `to_schema` shapes).

    - summary: revenue, discount and tax totals over the given transactions
    - top items by quantity and by revenue (line price x quantity)
    - low stock: available_stock below the threshold
    - member tiers and order statuses as counts
    """
    transactions = list(transactions)
    inventory = list(inventory)
    members = list(members)
    orders = list(orders)

    names = {str(it.get("id")): it.get("name") for it in inventory}

    revenue = Decimal("0")
    subtotal = Decimal("0")
    discount = Decimal("0")
    tax = Decimal("0")
    by_payment: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"count": 0, "total": Decimal("0")})
    by_day: Dict[str, Decimal] = defaultdict(Decimal)
    qty_by_item: Dict[str, int] = defaultdict(int)
    revenue_by_item: Dict[str, Decimal] = defaultdict(Decimal)

    for t in transactions:
        final_total = _d(t.get("final_total"))
        revenue += final_total
        subtotal += _d(t.get("subtotal"))
        discount += _d(t.get("discount_amount"))
        tax += _d(t.get("tax_amount"))

        method = (t.get("payment_method") or "unknown").strip().lower()
        by_payment[method]["count"] += 1
        by_payment[method]["total"] += final_total

        day = _day(t.get("transaction_date"))
        if day:
            by_day[day] += final_total

        for line in t.get("items_json") or []:
            item_id = str(line.get("itemId"))
            qty = int(line.get("quantity") or 0)
            qty_by_item[item_id] += qty
            revenue_by_item[item_id] += _d(line.get("price")) * qty

    def _top(values: Dict[str, Any]) -> List[Dict[str, Any]]:
        ranked = sorted(values.items(), key=lambda kv: (-kv[1], names.get(kv[0]) or kv[0]))[:top_n]
        return [
            {"item_id": item_id, "name": names.get(item_id) or "Unknown item", "value": float(v)}
            for item_id, v in ranked
        ]

    low_stock = sorted(
        (
            {"item_id": it.get("id"), "name": it.get("name"), "available_stock": int(it.get("available_stock") or 0)}
            for it in inventory
            if int(it.get("available_stock") or 0) < low_stock_threshold
        ),
        key=lambda r: (r["available_stock"], r["name"] or ""),
    )

    tiers = {tier: 0 for tier in TIERS}
    for m in members:
        tier = m.get("tier") or "Basic"
        tiers[tier] = tiers.get(tier, 0) + 1

    statuses = {s: 0 for s in ORDER_STATUSES}
    for o in orders:
        s = o.get("status") or "pending"
        statuses[s] = statuses.get(s, 0) + 1

    return {
        "summary": {
            "transactions": len(transactions),
            "subtotal": float(subtotal),
            "total_discount": float(discount),
            "total_tax": float(tax),
            "total_revenue": float(revenue),
        },
        "by_payment_method": {
            k: {"count": v["count"], "total": float(v["total"])} for k, v in sorted(by_payment.items())
        },
        "by_day": [{"date": d, "total": float(v)} for d, v in sorted(by_day.items())],
        "top_items_by_quantity": _top(qty_by_item),
        "top_items_by_revenue": _top(revenue_by_item),
        "low_stock": low_stock,
        "members": {"total": len(members), "by_tier": tiers},
        "orders": statuses,
    }


def top_members(members: Iterable[Dict[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    """Members ranked by total purchases, highest first."""
    ranked = sorted(members, key=lambda m: float(m.get("total_purchases") or 0), reverse=True)
    return ranked[:limit]


def reservation_drift(
    inventory: Iterable[Dict[str, Any]], pending_orders: Iterable[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Items whose reserved_stock differs from what pending orders hold.

    Each pending order's lines should be reserved exactly once, so with no
    drift reserved_stock equals the summed pending quantity per item. Lines
    naming unknown items are reported with reserved_stock 0.
    """
    held: Dict[str, int] = defaultdict(int)
    for o in pending_orders:
        for line in o.get("items_json") or []:
            held[str(line.get("itemId"))] += int(line.get("quantity") or 0)

    rows = {str(it.get("id")): it for it in inventory}
    out: List[Dict[str, Any]] = []
    for item_id in sorted(set(rows) | set(held)):
        it = rows.get(item_id) or {}
        reserved = int(it.get("reserved_stock") or 0)
        pending = held.get(item_id, 0)
        if reserved != pending:
            out.append(
                {
                    "item_id": item_id,
                    "name": it.get("name") or "Unknown item",
                    "reserved_stock": reserved,
                    "pending_quantity": pending,
                    "drift": reserved - pending,
                }
            )
    return out
