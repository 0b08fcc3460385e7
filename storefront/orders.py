"""
Order history and the order/bill correlation.

Bills point back at orders through ``metadata.order_id``, an application
level reference the database does not enforce. Several bills may name the
same order; the most recently issued one wins everywhere (ties broken by
bill id), and an order no bill names has ``bill_id = None``.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.future import select
from sqlalchemy.orm import joinedload

from .models import Backend, Bill, Order, OrderItem
from .queries import BACKEND_ERRORS, fetch_all, fetch_one, is_uuid
from .schemas import BillLink, BillRecord, OrderRecord

logger = logging.getLogger(__name__)


def _order_graph():
    return select(Order).options(
        joinedload(Order.shop),
        joinedload(Order.items).joinedload(OrderItem.product),
    )


def bill_index(bills: Iterable[BillLink]) -> Dict[str, str]:
    """Map order id -> bill id. Bills must come oldest first; later ones overwrite."""
    index = {}
    for bill in bills:
        order_id = bill.metadata.get("order_id") if isinstance(bill.metadata, dict) else None
        if order_id:
            index[str(order_id)] = bill.id
    return index


def attach_bill_ids(orders: List[OrderRecord], bills: Iterable[BillLink]) -> List[OrderRecord]:
    index = bill_index(bills)
    return [order.model_copy(update={"bill_id": index.get(order.id)}) for order in orders]


async def get_order(backend: Backend, order_id: str) -> Optional[OrderRecord]:
    if not is_uuid(order_id):
        logger.warning("Invalid order id format: %s", order_id)
        return None
    stmt = _order_graph().where(Order.id == order_id)
    return await fetch_one(backend, stmt, OrderRecord, "order", order_id)


async def _bills_for_user(backend: Backend, user_id: str) -> List[BillLink]:
    stmt = (
        select(Bill)
        .where(Bill.user_id == user_id)
        .order_by(Bill.issued_at.asc(), Bill.id.asc())
    )
    bills, _ = await fetch_all(backend, stmt, BillLink, "bill", f"user_id={user_id}")
    return bills


async def list_orders_for_user(backend: Backend, user_id: str, limit: Optional[int] = None) -> List[OrderRecord]:
    logger.info("list_orders_for_user user_id=%s", user_id)
    stmt = _order_graph().where(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
    if limit:
        stmt = stmt.limit(limit)
    try:
        orders, _ = await fetch_all(backend, stmt, OrderRecord, "order", f"user_id={user_id}")
    except BACKEND_ERRORS:
        logger.exception("Query failed listing orders for user %s", user_id)
        return []
    if not orders:
        return []

    # bills only decorate; a failure here must not lose the orders
    try:
        bills = await _bills_for_user(backend, user_id)
    except BACKEND_ERRORS:
        logger.warning("Could not load bills for user %s; returning orders without bill ids", user_id, exc_info=True)
        return orders
    if not bills:
        return orders
    return attach_bill_ids(orders, bills)


async def get_bill_id(backend: Backend, order_id: str) -> Optional[str]:
    stmt = (
        select(Bill.id)
        .where(Bill.meta["order_id"].as_string() == order_id)
        .order_by(Bill.issued_at.desc(), Bill.id.desc())
        .limit(1)
    )
    try:
        async with backend.session() as session:
            result = await session.execute(stmt)
            bill_id = result.scalars().first()
    except BACKEND_ERRORS:
        logger.exception("Query failed looking up bill for order %s", order_id)
        return None
    if bill_id is None:
        logger.info("No bill linked to order %s", order_id)
    return bill_id


async def get_bill(backend: Backend, bill_id: str) -> Optional[BillRecord]:
    if not is_uuid(bill_id):
        logger.warning("Invalid bill id format: %s", bill_id)
        return None
    stmt = (
        select(Bill)
        .options(joinedload(Bill.shop), joinedload(Bill.items))
        .where(Bill.id == bill_id)
    )
    return await fetch_one(backend, stmt, BillRecord, "bill", bill_id)
