from datetime import datetime

from core.reports import build_sales_report, reservation_drift, top_members


INVENTORY = [
    {"id": "a", "name": "Blue Dream", "available_stock": 50, "reserved_stock": 2},
    {"id": "b", "name": "Gummies", "available_stock": 3, "reserved_stock": 0},
    {"id": "c", "name": "Pipe", "available_stock": 0, "reserved_stock": 1},
]

TRANSACTIONS = [
    {
        "transaction_date": datetime(2026, 3, 1, 10, 30),
        "payment_method": "Cash",
        "subtotal": 100.0,
        "discount_amount": 10.0,
        "tax_amount": 6.3,
        "final_total": 96.3,
        "items_json": [{"itemId": "a", "quantity": 5, "price": 10.0}, {"itemId": "b", "quantity": 2, "price": 25.0}],
    },
    {
        "transaction_date": "2026-03-02T09:00:00",
        "payment_method": " card ",
        "subtotal": 40.0,
        "discount_amount": 0.0,
        "tax_amount": 0.0,
        "final_total": 40.0,
        "items_json": [{"itemId": "b", "quantity": 1, "price": 25.0}, {"itemId": "zzz", "quantity": 3, "price": 5.0}],
    },
]


def test_sales_report_summary_and_breakdowns():
    report = build_sales_report(TRANSACTIONS, INVENTORY, [], [])

    assert report["summary"] == {
        "transactions": 2,
        "subtotal": 140.0,
        "total_discount": 10.0,
        "total_tax": 6.3,
        "total_revenue": 136.3,
    }
    assert report["by_payment_method"] == {
        "card": {"count": 1, "total": 40.0},
        "cash": {"count": 1, "total": 96.3},
    }
    assert report["by_day"] == [
        {"date": "2026-03-01", "total": 96.3},
        {"date": "2026-03-02", "total": 40.0},
    ]


def test_sales_report_top_items():
    report = build_sales_report(TRANSACTIONS, INVENTORY, [], [], top_n=2)

    by_qty = report["top_items_by_quantity"]
    assert [(r["item_id"], r["value"]) for r in by_qty] == [("a", 5.0), ("b", 3.0)]

    by_rev = report["top_items_by_revenue"]
    assert [(r["name"], r["value"]) for r in by_rev] == [("Gummies", 75.0), ("Blue Dream", 50.0)]


def test_sales_report_unknown_items_are_labelled():
    report = build_sales_report(TRANSACTIONS, INVENTORY, [], [])

    names = {r["item_id"]: r["name"] for r in report["top_items_by_quantity"]}
    assert names["zzz"] == "Unknown item"


def test_sales_report_low_stock_members_and_orders():
    members = [{"tier": "Gold"}, {"tier": "Gold"}, {"tier": None}]
    orders = [{"status": "pending"}, {"status": "fulfilled"}, {"status": "fulfilled"}]

    report = build_sales_report([], INVENTORY, members, orders, low_stock_threshold=10)

    assert [r["name"] for r in report["low_stock"]] == ["Pipe", "Gummies"]
    assert report["members"] == {"total": 3, "by_tier": {"Basic": 1, "Gold": 2, "Supreme": 0}}
    assert report["orders"] == {"pending": 1, "fulfilled": 2, "cancelled": 0}
    assert report["summary"]["transactions"] == 0
    assert report["summary"]["total_revenue"] == 0.0


def test_top_members_orders_by_purchases():
    members = [
        {"name": "A", "total_purchases": 10},
        {"name": "B", "total_purchases": 250.5},
        {"name": "C", "total_purchases": None},
    ]

    assert [m["name"] for m in top_members(members, limit=2)] == ["B", "A"]


def test_reservation_drift_reports_mismatches_only():
    pending = [
        {"items_json": [{"itemId": "a", "quantity": 2}]},
        {"items_json": [{"itemId": "b", "quantity": 1}, {"itemId": "ghost", "quantity": 4}]},
    ]

    drift = reservation_drift(INVENTORY, pending)

    assert [(d["item_id"], d["reserved_stock"], d["pending_quantity"], d["drift"]) for d in drift] == [
        ("b", 0, 1, -1),
        ("c", 1, 0, 1),
        ("ghost", 0, 4, -4),
    ]
    assert drift[2]["name"] == "Unknown item"
