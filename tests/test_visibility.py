from datetime import timedelta
from types import SimpleNamespace

import pytest

from storefront import catalog
from storefront.models import new_id
from storefront.schemas import ListingQuery
from storefront.visibility import is_closure_active, is_item_visible, is_shop_visible

from factories import T0, make_business, make_product, make_service, make_shop


def visible_pair():
    shop = SimpleNamespace(is_hidden=False, hidden_by_admin=False, is_verified=True)
    business = SimpleNamespace(is_hidden=False)
    return shop, business


def test_visible_shop():
    shop, business = visible_pair()
    assert is_shop_visible(shop, business) is True


@pytest.mark.parametrize("target, flag, value", [
    ("shop", "is_hidden", True),
    ("shop", "hidden_by_admin", True),
    ("shop", "is_verified", False),
    ("business", "is_hidden", True),
])
def test_any_single_flag_hides_shop(target, flag, value):
    shop, business = visible_pair()
    setattr(shop if target == "shop" else business, flag, value)
    assert is_shop_visible(shop, business) is False


def test_missing_business_fails_closed():
    shop, _ = visible_pair()
    assert is_shop_visible(shop, None) is False


def test_item_needs_active_and_visible_shop():
    shop, business = visible_pair()
    item = SimpleNamespace(is_active=True, hidden_by_admin=False)
    assert is_item_visible(item, shop, business)
    assert not is_item_visible(SimpleNamespace(is_active=False, hidden_by_admin=False), shop, business)
    assert not is_item_visible(SimpleNamespace(is_active=True, hidden_by_admin=True), shop, business)
    assert not is_item_visible(item, shop, None)
    assert not is_item_visible(item, None, business)


def test_closure_window():
    shop = SimpleNamespace(is_temporarily_closed=True, closure_end_date=None)
    assert is_closure_active(shop, T0)
    shop.closure_end_date = (T0 + timedelta(days=1)).replace(tzinfo=None)
    assert is_closure_active(shop, T0)
    shop.closure_end_date = T0 - timedelta(days=1)
    assert not is_closure_active(shop, T0)
    shop.is_temporarily_closed = False
    shop.closure_end_date = None
    assert not is_closure_active(shop, T0)


# Same rule, enforced by the queries

@pytest.mark.parametrize("target, flag, value", [
    ("shop", "is_hidden", True),
    ("shop", "hidden_by_admin", True),
    ("shop", "is_verified", False),
    ("business", "is_hidden", True),
])
async def test_queries_drop_shop_on_single_flag(add, backend, target, flag, value):
    business = make_business()
    shop = make_shop(business)
    product = make_product(shop)
    setattr(shop if target == "shop" else business, flag, value)
    await add(business, shop, product)

    assert await catalog.get_shop(backend, shop.id) is None
    assert await catalog.get_product(backend, product.id) is None
    assert (await catalog.list_shops(backend)).items == []
    assert (await catalog.list_products(backend, ListingQuery(shop_id=shop.id))).items == []
    assert (await catalog.list_services(backend)).items == []
    assert (await catalog.list_services(backend, ListingQuery(shop_id=shop.id))).items == []


@pytest.mark.parametrize("business_id", [None, new_id()])
async def test_orphaned_shop_is_never_returned(add, backend, business_id):
    shop = make_shop(None, business_id=business_id)
    product = make_product(shop)
    service = make_service(shop)
    await add(shop, product, service)

    assert await catalog.get_shop(backend, shop.id) is None
    assert await catalog.get_product(backend, product.id) is None
    assert await catalog.get_service(backend, service.id) is None
    assert (await catalog.list_shops(backend)).items == []
    assert (await catalog.list_products(backend)).items == []
    assert (await catalog.list_products(backend, ListingQuery(shop_id=shop.id))).items == []
    assert (await catalog.list_services(backend)).items == []
    assert (await catalog.list_services(backend, ListingQuery(shop_id=shop.id))).items == []
