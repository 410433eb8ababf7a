"""Back-office dashboard figures.

Month boundaries are computed in UTC. Growth is a percentage against the
previous period and reads 100 when the previous period had nothing to compare.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func

from storefront import get_db
from storefront.models.authz import User
from storefront.models.item import Item
from storefront.models.order import Order

RECENT_ORDERS_LIMIT = 5


def month_bounds(now: datetime):
    """Return (start of previous month, start of current month)."""
    current = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if current.month == 1:
        previous = current.replace(year=current.year - 1, month=12)
    else:
        previous = current.replace(month=current.month - 1)
    return previous, current


def growth(current: float, previous: float) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 100.0


def _count(session, column, *conditions) -> int:
    return session.execute(select(func.count(column)).where(*conditions)).scalar_one()


def _revenue(session, *conditions) -> float:
    return float(session.execute(select(func.sum(Order.original_total)).where(*conditions)).scalar() or 0.0)


def dashboard_stats(session=None, now: Optional[datetime] = None) -> Dict[str, Any]:
    session = session or get_db()
    previous_start, current_start = month_bounds(now or datetime.now(timezone.utc))

    total_users = _count(session, User.id)
    total_orders = _count(session, Order.id)
    total_items = _count(session, Item.id)
    users_before = _count(session, User.id, User.created_at < current_start)
    items_before = _count(session, Item.id, Item.created_at < current_start)
    orders_current = _count(session, Order.id, Order.created_at >= current_start)
    orders_previous = _count(session, Order.id, Order.created_at >= previous_start, Order.created_at < current_start)
    revenue_current = _revenue(session, Order.created_at >= current_start)
    revenue_previous = _revenue(session, Order.created_at >= previous_start, Order.created_at < current_start)

    return {
        'total_users': total_users,
        'total_orders': total_orders,
        'total_items': total_items,
        'revenue': revenue_current,
        'user_growth': growth(total_users, users_before),
        'order_growth': growth(orders_current, orders_previous),
        'item_growth': growth(total_items, items_before),
        'revenue_growth': growth(revenue_current, revenue_previous),
    }


def recent_orders(session=None, limit: int = RECENT_ORDERS_LIMIT) -> List[Dict[str, Any]]:
    session = session or get_db()
    rows = session.execute(
        select(Order, User.name)
        .outerjoin(User, Order.user_id == User.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
    ).all()
    return [
        {
            'id': o.id,
            'customer_name': name,
            'total_price': o.total_price,
            'original_total': o.original_total,
            'currency': o.currency,
            'status': o.status,
            'created_at': o.created_at.isoformat() if o.created_at else None,
        }
        for o, name in rows
    ]

__all__ = ['dashboard_stats', 'recent_orders', 'month_bounds', 'growth']
