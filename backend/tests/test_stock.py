import asyncio
import uuid

import pytest

from core.stock import (
    AVAILABLE,
    DEDUCT,
    FULFILL,
    OPERATIONS,
    RELEASE,
    RESERVE,
    RESERVED,
    InsufficientStock,
    StockItemNotFound,
    StockLine,
    StockPersistenceError,
    StockRecord,
    apply_to_snapshot,
    deduct_stock,
    fulfill_stock,
    merge_lines,
    plan_adjustments,
    release_stock,
    reserve_stock,
    run_stock_operation,
    update_stock,
)


def _run(coro):
    return asyncio.run(coro)


def test_reserve_then_fulfill_moves_units_out_of_stock(store_with):
    store, item_id = store_with(available=10)

    res = _run(reserve_stock(store, [StockLine(item_id, 4)]))
    assert res.success is True
    assert res.message == "Stock reserved successfully."
    assert store.state(item_id) == (6, 4)

    res = _run(fulfill_stock(store, [StockLine(item_id, 4)]))
    assert res.message == "Stock fulfilled successfully."
    assert store.state(item_id) == (6, 0)


def test_reserve_more_than_available_is_rejected_and_nothing_changes(store_with):
    store, item_id = store_with(available=5, name="OG Kush")

    with pytest.raises(InsufficientStock) as exc_info:
        _run(reserve_stock(store, [StockLine(item_id, 6)]))

    exc = exc_info.value
    assert exc.counter == AVAILABLE
    assert exc.current == 5
    assert exc.requested == 6
    assert exc.item_name == "OG Kush"
    assert "Not enough available stock for OG Kush" in exc.message
    assert store.state(item_id) == (5, 0)
    assert store.writes == 0


def test_release_returns_reserved_units_to_available(store_with):
    store, item_id = store_with(available=3, reserved=4)

    res = _run(release_stock(store, [StockLine(item_id, 4)]))

    assert res.message == "Stock released successfully."
    assert store.state(item_id) == (7, 0)


def test_release_more_than_reserved_is_rejected(store_with):
    store, item_id = store_with(available=3, reserved=4)

    with pytest.raises(InsufficientStock) as exc_info:
        _run(release_stock(store, [StockLine(item_id, 5)]))

    assert exc_info.value.counter == RESERVED
    assert "insufficient for release" in exc_info.value.message
    assert store.state(item_id) == (3, 4)


def test_fulfill_more_than_reserved_is_rejected(store_with):
    store, item_id = store_with(available=10, reserved=1)

    with pytest.raises(InsufficientStock) as exc_info:
        _run(fulfill_stock(store, [StockLine(item_id, 2)]))

    assert "insufficient for fulfillment" in exc_info.value.message
    assert store.state(item_id) == (10, 1)


def test_deduct_takes_from_available_only(store_with):
    store, item_id = store_with(available=10)

    res = _run(deduct_stock(store, [StockLine(item_id, 2)]))

    assert res.message == "Stock deducted successfully."
    assert store.state(item_id) == (8, 0)


def test_deduct_more_than_available_is_rejected(store_with):
    store, item_id = store_with(available=10, reserved=3)

    with pytest.raises(InsufficientStock):
        _run(deduct_stock(store, [StockLine(item_id, 20)]))

    assert store.state(item_id) == (10, 3)


def test_reserve_and_release_keep_total_stock_constant(store_with):
    store, item_id = store_with(available=12, reserved=2)

    _run(reserve_stock(store, [StockLine(item_id, 5)]))
    assert sum(store.state(item_id)) == 14
    _run(release_stock(store, [StockLine(item_id, 5)]))

    assert store.state(item_id) == (12, 2)


def test_release_after_fulfill_of_same_lines_fails(store_with):
    store, item_id = store_with(available=10)
    lines = [StockLine(item_id, 4)]

    _run(reserve_stock(store, lines))
    _run(fulfill_stock(store, lines))

    with pytest.raises(InsufficientStock):
        _run(release_stock(store, lines))
    assert store.state(item_id) == (6, 0)


def test_batch_is_all_or_nothing(make_store, record):
    a = record("Blue Dream", available=10)
    b = record("Gummies", available=1)
    store = make_store(a, b)

    with pytest.raises(InsufficientStock) as exc_info:
        _run(reserve_stock(store, [StockLine(a.id, 3), StockLine(b.id, 2)]))

    assert exc_info.value.item_id == b.id
    assert store.state(a.id) == (10, 0)
    assert store.state(b.id) == (1, 0)


def test_unknown_item_is_not_found(store_with):
    store, item_id = store_with(available=10)
    missing = str(uuid.uuid4())

    with pytest.raises(StockItemNotFound) as exc_info:
        _run(reserve_stock(store, [StockLine(item_id, 1), StockLine(missing, 1)]))

    assert exc_info.value.message == f"Item with ID {missing} not found."
    assert store.state(item_id) == (10, 0)


def test_duplicate_lines_are_summed_before_checking(store_with):
    store, item_id = store_with(available=5)

    with pytest.raises(InsufficientStock) as exc_info:
        _run(reserve_stock(store, [StockLine(item_id, 3), StockLine(item_id, 3)]))
    assert exc_info.value.requested == 6

    _run(reserve_stock(store, [StockLine(item_id, 2), StockLine(item_id, 2)]))
    assert store.state(item_id) == (1, 4)


def test_merge_lines_matches_ids_across_uuid_and_str():
    item_id = uuid.uuid4()
    merged = merge_lines([StockLine(item_id, 1), StockLine(str(item_id), 2), StockLine("other", 1)])

    assert [(str(m.item_id), m.quantity) for m in merged] == [(str(item_id), 3), ("other", 1)]


def test_store_failure_surfaces_as_persistence_error(store_with):
    store, item_id = store_with(available=10)
    store.fail_writes = True

    with pytest.raises(StockPersistenceError) as exc_info:
        _run(reserve_stock(store, [StockLine(item_id, 1)]))

    assert "connection lost" in exc_info.value.message
    assert store.state(item_id) == (10, 0)


def test_stale_snapshot_is_caught_by_the_store(store_with):
    store, item_id = store_with(available=2)
    stale = [StockRecord(id=item_id, name="Blue Dream", available_stock=10, reserved_stock=0)]

    with pytest.raises(InsufficientStock) as exc_info:
        _run(reserve_stock(store, [StockLine(item_id, 5)], stale))

    assert "Stock changed since it was read." in exc_info.value.message
    assert store.state(item_id) == (2, 0)


def test_empty_batch_writes_nothing(store_with):
    store, _ = store_with(available=10)

    res = _run(run_stock_operation(RESERVE, store, []))

    assert res.success is True
    assert res.message == "Nothing to reserve."
    assert store.writes == 0


@pytest.mark.parametrize(
    "op,expected",
    [
        (RESERVE, (-3, 3)),
        (FULFILL, (0, -3)),
        (RELEASE, (3, -3)),
        (DEDUCT, (-3, 0)),
    ],
)
def test_plan_adjustments_deltas(op, expected, record):
    rec = record(available=5, reserved=5)

    [adj] = plan_adjustments(op, [StockLine(rec.id, 3)], [rec])

    assert (adj.available_delta, adj.reserved_delta) == expected
    assert OPERATIONS[op.name] is op


def test_apply_to_snapshot_leaves_other_records_alone(record):
    a = record("A", available=5)
    b = record("B", available=7)

    out = apply_to_snapshot([a, b], plan_adjustments(RESERVE, [StockLine(a.id, 2)], [a, b]))

    assert [(r.available_stock, r.reserved_stock) for r in out] == [(3, 2), (7, 0)]
    assert out[1] is b


def test_record_from_row_treats_missing_counters_as_zero():
    rec = StockRecord.from_row({"id": "x", "name": "Pipe", "available_stock": None})

    assert (rec.available_stock, rec.reserved_stock, rec.total_stock) == (0, 0, 0)


def test_update_stock_writes_rows_without_stock_checks(store_with):
    store, item_id = store_with(available=10, reserved=2)
    new_id = str(uuid.uuid4())

    res = _run(
        update_stock(
            store,
            [
                {"id": item_id, "name": "Blue Dream", "available_stock": 4},
                {"id": new_id, "name": "Vape", "available_stock": 9, "reserved_stock": 0},
            ],
        )
    )

    assert res.message == "Stock updated successfully."
    assert len(res.items) == 2
    assert store.state(item_id) == (4, 2)
    assert store.state(new_id) == (9, 0)
