"""
Which shops, products and services an anonymous visitor may see.

A shop is visible when it is not hidden by its owner or by an admin, it is
verified, and its owning business exists and is not hidden. Products and
services are visible when they are active, not hidden by an admin, and their
shop is visible.

The same rule exists twice: as plain predicates over loaded objects, and as
SQL filter clauses. Queries must use the clauses so invisible rows never
leave the database and page counts only reflect visible rows. The clauses
assume the statement inner-joins Shop and Business, which is what makes a
missing business exclude the shop.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, not_, or_

from .models import Business, Shop

PRODUCT_SHOP_TYPES = ("retail", "both")
SERVICE_SHOP_TYPES = ("service", "both")


def is_shop_visible(shop, business) -> bool:
    if shop is None or business is None:
        return False
    return (
        not shop.is_hidden
        and not shop.hidden_by_admin
        and bool(shop.is_verified)
        and not business.is_hidden
    )


def is_item_visible(item, shop, business) -> bool:
    """Product or service visibility, including its shop and business."""
    if item is None:
        return False
    return bool(item.is_active) and not item.hidden_by_admin and is_shop_visible(shop, business)


def is_closure_active(shop, now: datetime) -> bool:
    if not shop.is_temporarily_closed:
        return False
    end = shop.closure_end_date
    if end is None:
        return True
    # naive timestamps are stored in UTC
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return end > now


def visible_shop_clauses():
    return (
        Shop.is_hidden.is_(False),
        Shop.hidden_by_admin.is_(False),
        Shop.is_verified.is_(True),
        Business.is_hidden.is_(False),
    )


def visible_item_clauses(model):
    return (
        model.is_active.is_(True),
        model.hidden_by_admin.is_(False),
        *visible_shop_clauses(),
    )


def hidden_for_closure_clause(now: datetime):
    return and_(
        Shop.is_temporarily_closed.is_(True),
        Shop.hide_shop_during_closure.is_(True),
        or_(Shop.closure_end_date.is_(None), Shop.closure_end_date > now),
    )


def browsable_shop_clause(now: datetime):
    return not_(hidden_for_closure_clause(now))


def location_clause(state: Optional[str] = None, district: Optional[str] = None, town: Optional[str] = None):
    # the narrowest area given wins
    if town:
        return Shop.town == town
    if district:
        return Shop.district == district
    if state:
        return Shop.state == state
    return None
