from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from storefront import orders
from storefront.invoice import render_invoice
from storefront.models import BillItem, new_id
from storefront.schemas import BillLink, OrderRecord

from factories import (
    at,
    make_bill,
    make_business,
    make_order,
    make_order_item,
    make_product,
    make_shop,
)


def order_record(order_id):
    return OrderRecord(
        id=order_id,
        total_amount=Decimal("100.00"),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        status="pending",
    )


def test_bill_ids_attach_by_metadata_order_id():
    decorated = orders.attach_bill_ids(
        [order_record("o1"), order_record("o2")],
        [BillLink(id="b1", metadata={"order_id": "o1"}), BillLink(id="b2", metadata={})],
    )
    assert decorated[0].bill_id == "b1"
    assert decorated[1].bill_id is None


def test_last_bill_wins_and_junk_metadata_is_ignored():
    index = orders.bill_index([
        BillLink(id="b1", metadata={"order_id": "o1"}),
        BillLink(id="b2", metadata=None),
        BillLink(id="b3", metadata={"order_id": "o1"}),
        BillLink(id="b4", metadata={"note": "walk-in"}),
    ])
    assert index == {"o1": "b3"}


async def test_get_order_assembles_shop_and_items(add, backend):
    business = make_business()
    shop = make_shop(business, name="Green Grocer", logo_url="https://cdn.example.com/logo.png")
    product = make_product(shop, name="Rice")
    order = make_order(shop, customer_name="Anu", status="out_for_delivery")
    await add(business, shop, product, order, make_order_item(order, product, quantity=3, total=Decimal("360.00")))

    record = await orders.get_order(backend, order.id)

    assert record.status == "out_for_delivery"
    assert record.customer_name == "Anu"
    assert record.shop.name == "Green Grocer"
    assert len(record.order_items) == 1
    item = record.order_items[0]
    assert item.quantity == 3
    assert item.total == Decimal("360.00")
    assert item.product.name == "Rice"
    assert record.bill_id is None


async def test_order_snapshot_survives_hidden_or_deleted_product(add, backend):
    business = make_business()
    shop = make_shop(business, is_hidden=True)
    product = make_product(shop, is_active=False)
    order = make_order(shop)
    await add(business, shop, product, order, make_order_item(order, product), make_order_item(order, None))

    record = await orders.get_order(backend, order.id)

    assert record is not None
    assert sorted(i.product is None for i in record.order_items) == [False, True]


async def test_get_order_missing(backend):
    assert await orders.get_order(backend, new_id()) is None
    assert await orders.get_order(backend, "o1") is None


async def test_list_orders_for_user_with_bills(add, backend):
    business = make_business()
    shop = make_shop(business)
    product = make_product(shop)
    older = make_order(shop, created_at=at(0))
    newer = make_order(shop, created_at=at(5))
    someone_else = make_order(shop, user_id="user-2")
    await add(
        business, shop, product, older, newer, someone_else,
        make_order_item(older, product),
        make_bill(older.id, id="b-old", issued_at=at(1)),
        make_bill(older.id, id="b-reissued", issued_at=at(2)),
        make_bill(None, id="b-unlinked"),
    )

    result = await orders.list_orders_for_user(backend, "user-1")

    assert [o.id for o in result] == [newer.id, older.id]
    assert result[0].bill_id is None
    assert result[1].bill_id == "b-reissued"
    assert result[1].order_items[0].product.id == product.id


async def test_orders_survive_bill_lookup_failure(add, backend, monkeypatch, caplog):
    business = make_business()
    shop = make_shop(business)
    order = make_order(shop)
    await add(business, shop, order, make_bill(order.id))

    async def broken(backend, user_id):
        raise OperationalError("SELECT bills", {}, Exception("connection reset"))

    monkeypatch.setattr(orders, "_bills_for_user", broken)
    result = await orders.list_orders_for_user(backend, "user-1")

    assert [o.id for o in result] == [order.id]
    assert result[0].bill_id is None
    assert any("without bill ids" in r.getMessage() for r in caplog.records)


async def test_list_orders_failure_and_empty(backend, bare_backend):
    assert await orders.list_orders_for_user(backend, "nobody") == []
    assert await orders.list_orders_for_user(bare_backend, "user-1") == []


async def test_refused_connection_yields_no_orders(unreachable_backend):
    assert await orders.list_orders_for_user(unreachable_backend, "user-1") == []
    assert await orders.get_order(unreachable_backend, new_id()) is None
    assert await orders.get_bill_id(unreachable_backend, new_id()) is None
    assert await orders.get_bill(unreachable_backend, new_id()) is None


async def test_orders_survive_dropped_connection_during_bill_lookup(add, backend, monkeypatch):
    business = make_business()
    shop = make_shop(business)
    order = make_order(shop)
    await add(business, shop, order, make_bill(order.id))

    async def dropped(backend, user_id):
        raise ConnectionResetError(104, "Connection reset by peer")

    monkeypatch.setattr(orders, "_bills_for_user", dropped)
    result = await orders.list_orders_for_user(backend, "user-1")

    assert [o.id for o in result] == [order.id]
    assert result[0].bill_id is None


async def test_zero_quantity_item_keeps_order_visible(add, backend):
    business = make_business()
    shop = make_shop(business)
    product = make_product(shop)
    order = make_order(shop)
    await add(business, shop, product, order, make_order_item(order, product, quantity=0, total=Decimal("0.00")))

    record = await orders.get_order(backend, order.id)
    assert record.order_items[0].quantity == 0
    assert [o.id for o in await orders.list_orders_for_user(backend, "user-1")] == [order.id]


async def test_get_bill_id_uses_latest_bill(add, backend):
    business = make_business()
    shop = make_shop(business)
    order = make_order(shop)
    await add(
        business, shop, order,
        make_bill(order.id, id="b1", issued_at=at(0)),
        make_bill(order.id, id="b2", issued_at=at(3)),
    )

    assert await orders.get_bill_id(backend, order.id) == "b2"
    assert await orders.get_bill_id(backend, new_id()) is None


async def test_get_bill_and_render_invoice(add, backend):
    business = make_business()
    shop = make_shop(business, name="Green Grocer", city="Kochi")
    bill = make_bill(
        None,
        id=new_id(),
        bill_number="INV-0042",
        shop_id=shop.id,
        customer_name="Anu",
        customer_address="12 MG Road, Kochi",
        subtotal=Decimal("240.00"),
        discount=Decimal("40.00"),
        total=Decimal("200.00"),
        paid_amount=Decimal("50.00"),
        payment_status="partial",
    )
    item = BillItem(id=new_id(), bill_id=bill.id, name="Rice", quantity=2,
                    price=Decimal("120.00"), total=Decimal("240.00"))
    await add(business, shop, bill, item)

    record = await orders.get_bill(backend, bill.id)
    assert record.shop.name == "Green Grocer"
    assert record.balance_due == Decimal("150.00")

    html = render_invoice(record)
    assert "Invoice #INV-0042" in html
    assert "Green Grocer" in html
    assert "Rice" in html
    assert "12 MG Road" in html
    assert "Balance due: 150.00" in html
    assert "PARTIAL" in html

    assert await orders.get_bill(backend, new_id()) is None
