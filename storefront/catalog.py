"""
Catalog reads for the storefront: shops, products, services and the
categories that have something visible in them.

Every query joins the entity to its shop and business with inner joins and
filters on visibility in SQL. Listings are ordered with ``id`` as the final
key so a page never reshuffles between identical requests.
"""

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.future import select
from sqlalchemy.orm import contains_eager

from .models import (
    Backend,
    Product,
    ProductCategory,
    Service,
    ServiceCategory,
    Shop,
    ShopCategory,
    utcnow,
)
from .queries import BACKEND_ERRORS, fetch_all, fetch_one, is_uuid
from .schemas import (
    CategoryRecord,
    ListingQuery,
    ProductPage,
    ProductRecord,
    ServicePage,
    ServiceRecord,
    ShopPage,
    ShopQuery,
    ShopRecord,
)
from .visibility import (
    PRODUCT_SHOP_TYPES,
    SERVICE_SHOP_TYPES,
    browsable_shop_clause,
    location_clause,
    visible_item_clauses,
    visible_shop_clauses,
)

logger = logging.getLogger(__name__)


def _ordering(model, sort_by: str):
    if sort_by == "price_asc":
        keys = [model.price.asc()]
    elif sort_by == "price_desc":
        keys = [model.price.desc()]
    elif sort_by == "name_asc":
        keys = [model.name.asc()]
    else:
        keys = [model.created_at.desc()]
    return keys + [model.id.desc()]


def _search_clause(model, search: Optional[str]):
    term = (search or "").strip()
    if not term:
        return None
    return or_(
        model.name.icontains(term, autoescape=True),
        model.name_ml.icontains(term, autoescape=True),
        model.description.icontains(term, autoescape=True),
    )


def _visible_items(model):
    return (
        select(model)
        .join(model.shop)
        .join(Shop.business)
        .where(*visible_item_clauses(model))
        .options(contains_eager(model.shop))
    )


def _listing(model, shop_types, query: ListingQuery):
    stmt = _visible_items(model).where(Shop.shop_type.in_(shop_types))
    if query.shop_id:
        stmt = stmt.where(model.shop_id == query.shop_id)
    if query.category_id and query.category_id != "all":
        stmt = stmt.where(model.category_id == query.category_id)
    search = _search_clause(model, query.search)
    if search is not None:
        stmt = stmt.where(search)
    where_located = location_clause(query.state, query.district, query.town)
    if where_located is not None:
        stmt = stmt.where(where_located)
    return stmt.order_by(*_ordering(model, query.sort_by)).offset(query.offset).limit(query.limit)


# -------------------------
# Shops
# -------------------------
async def get_shop(backend: Backend, shop_id: str) -> Optional[ShopRecord]:
    if not is_uuid(shop_id):
        logger.warning("Invalid shop id format: %s", shop_id)
        return None
    stmt = (
        select(Shop)
        .join(Shop.business)
        .where(Shop.id == shop_id, *visible_shop_clauses())
    )
    return await fetch_one(backend, stmt, ShopRecord, "shop", shop_id)


async def list_shops(backend: Backend, query: Optional[ShopQuery] = None) -> ShopPage:
    query = query or ShopQuery()
    logger.info("list_shops page=%s limit=%s search=%s", query.page, query.limit, query.search)
    stmt = (
        select(Shop)
        .join(Shop.business)
        .where(*visible_shop_clauses(), browsable_shop_clause(utcnow()))
    )
    if query.category_id and query.category_id != "all":
        stmt = stmt.where(Shop.category_id == query.category_id)
    search = _search_clause(Shop, query.search)
    if search is not None:
        stmt = stmt.where(search)
    where_located = location_clause(query.state, query.district, query.town)
    if where_located is not None:
        stmt = stmt.where(where_located)
    if query.sort_by == "name_asc":
        stmt = stmt.order_by(Shop.name.asc(), Shop.id.desc())
    else:
        stmt = stmt.order_by(Shop.created_at.desc(), Shop.id.desc())
    stmt = stmt.offset(query.offset).limit(query.limit)

    try:
        shops, count = await fetch_all(backend, stmt, ShopRecord, "shop", f"page={query.page}")
    except BACKEND_ERRORS:
        logger.exception("Query failed listing shops page=%s", query.page)
        return ShopPage(page=query.page)
    return ShopPage(items=shops, page=query.page, has_more=count == query.limit)


# -------------------------
# Products / services
# -------------------------
async def get_product(backend: Backend, product_id: str) -> Optional[ProductRecord]:
    if not is_uuid(product_id):
        logger.warning("Invalid product id format: %s", product_id)
        return None
    stmt = _visible_items(Product).where(Product.id == product_id)
    return await fetch_one(backend, stmt, ProductRecord, "product", product_id)


async def get_service(backend: Backend, service_id: str) -> Optional[ServiceRecord]:
    if not is_uuid(service_id):
        logger.warning("Invalid service id format: %s", service_id)
        return None
    stmt = _visible_items(Service).where(Service.id == service_id)
    return await fetch_one(backend, stmt, ServiceRecord, "service", service_id)


async def list_products(backend: Backend, query: Optional[ListingQuery] = None) -> ProductPage:
    query = query or ListingQuery()
    logger.info("list_products shop_id=%s page=%s limit=%s", query.shop_id, query.page, query.limit)
    stmt = _listing(Product, PRODUCT_SHOP_TYPES, query)
    try:
        products, count = await fetch_all(backend, stmt, ProductRecord, "product", f"shop_id={query.shop_id}")
    except BACKEND_ERRORS:
        logger.exception("Query failed listing products shop_id=%s page=%s", query.shop_id, query.page)
        return ProductPage(page=query.page)
    return ProductPage(items=products, page=query.page, has_more=count == query.limit)


async def list_services(backend: Backend, query: Optional[ListingQuery] = None) -> ServicePage:
    query = query or ListingQuery()
    logger.info("list_services shop_id=%s page=%s limit=%s", query.shop_id, query.page, query.limit)
    stmt = _listing(Service, SERVICE_SHOP_TYPES, query)
    try:
        services, count = await fetch_all(backend, stmt, ServiceRecord, "service", f"shop_id={query.shop_id}")
    except BACKEND_ERRORS:
        logger.exception("Query failed listing services shop_id=%s page=%s", query.shop_id, query.page)
        return ServicePage(page=query.page)
    return ServicePage(items=services, page=query.page, has_more=count == query.limit)


# -------------------------
# Categories
# -------------------------
async def _categories(backend: Backend, category_model, used_ids, entity: str) -> List[CategoryRecord]:
    stmt = (
        select(category_model)
        .where(category_model.is_active.is_(True), category_model.id.in_(used_ids))
        .order_by(category_model.sort_order.asc(), category_model.name.asc(), category_model.id.asc())
    )
    try:
        categories, _ = await fetch_all(backend, stmt, CategoryRecord, entity)
    except BACKEND_ERRORS:
        logger.exception("Query failed listing %s", entity)
        return []
    return categories


async def get_product_categories(backend: Backend) -> List[CategoryRecord]:
    used = (
        select(Product.category_id)
        .join(Product.shop)
        .join(Shop.business)
        .where(*visible_item_clauses(Product))
    )
    return await _categories(backend, ProductCategory, used, "product category")


async def get_service_categories(backend: Backend) -> List[CategoryRecord]:
    used = (
        select(Service.category_id)
        .join(Service.shop)
        .join(Shop.business)
        .where(*visible_item_clauses(Service))
    )
    return await _categories(backend, ServiceCategory, used, "service category")


async def get_shop_categories(backend: Backend) -> List[CategoryRecord]:
    used = select(Shop.category_id).join(Shop.business).where(*visible_shop_clauses())
    return await _categories(backend, ShopCategory, used, "shop category")
