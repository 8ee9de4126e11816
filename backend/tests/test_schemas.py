import uuid

import pytest
from pydantic import ValidationError

from schemas.categories import CategoryCreate
from schemas.inventory import InventoryItemCreate, InventoryItemUpdate, PricingOption, StockOperationRequest
from schemas.members import MemberCreate
from schemas.orders import OrderCreate, SaleLineIn
from schemas.transactions import TransactionCreate


OPTION = {"name": "Gram", "price": 10, "unit": "g"}


def test_pricing_option_requires_positive_price_and_gets_an_id():
    opt = PricingOption(**OPTION)
    assert opt.id

    with pytest.raises(ValidationError):
        PricingOption(name="Gram", price=0, unit="g")
    with pytest.raises(ValidationError):
        PricingOption(name="  ", price=5, unit="g")


def test_inventory_item_needs_options_and_non_negative_stock():
    item = InventoryItemCreate(name=" Blue Dream ", pricing_options=[OPTION], available_stock=5)
    assert item.name == "Blue Dream"
    assert item.category == "Other"
    assert item.reserved_stock == 0

    with pytest.raises(ValidationError):
        InventoryItemCreate(name="Blue Dream", pricing_options=[])
    with pytest.raises(ValidationError):
        InventoryItemCreate(name="Blue Dream", pricing_options=[OPTION], available_stock=-1)


def test_inventory_update_rejects_blank_name_but_allows_omitting_it():
    assert InventoryItemUpdate().name is None
    with pytest.raises(ValidationError):
        InventoryItemUpdate(name="   ")


def test_stock_operation_request_needs_positive_quantities():
    req = StockOperationRequest(items=[{"item_id": str(uuid.uuid4()), "quantity": 2}])
    assert req.items[0].quantity == 2

    with pytest.raises(ValidationError):
        StockOperationRequest(items=[])
    with pytest.raises(ValidationError):
        StockOperationRequest(items=[{"item_id": str(uuid.uuid4()), "quantity": 0}])


def test_sale_line_accepts_camel_case_and_field_names():
    item_id = uuid.uuid4()
    a = SaleLineIn.model_validate({"itemId": str(item_id), "quantity": 1, "selectedOptionId": "g"})
    b = SaleLineIn(item_id=item_id, quantity=1, selected_option_id="g")

    assert a == b
    with pytest.raises(ValidationError):
        SaleLineIn(item_id=item_id, quantity=-2)


def test_order_requires_member_and_items():
    line = {"itemId": str(uuid.uuid4()), "quantity": 1}
    order = OrderCreate(member_uid=" 04A1B2C3 ", items=[line])
    assert order.member_uid == "04A1B2C3"

    with pytest.raises(ValidationError):
        OrderCreate(member_uid="  ", items=[line])
    with pytest.raises(ValidationError):
        OrderCreate(member_uid="04A1B2C3", items=[])


def test_transaction_needs_items_unless_it_closes_an_order():
    TransactionCreate(payment_method="cash", order_id=uuid.uuid4())
    t = TransactionCreate(payment_method="card", member_uid="  ", items=[{"itemId": str(uuid.uuid4()), "quantity": 1}])
    assert t.member_uid is None

    with pytest.raises(ValidationError):
        TransactionCreate(payment_method="cash")
    with pytest.raises(ValidationError):
        TransactionCreate(payment_method=" ", order_id=uuid.uuid4())


def test_member_and_category_validation():
    m = MemberCreate(uid=" 04A1 ", name="Sam")
    assert (m.uid, m.tier, m.status) == ("04A1", "Basic", "Active")

    with pytest.raises(ValidationError):
        MemberCreate(uid="04A1", name="Sam", tier="Platinum")
    with pytest.raises(ValidationError):
        CategoryCreate(name="")
