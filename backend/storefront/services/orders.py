"""Cart handling and order creation.

Prices on line items are snapshotted in the base currency; ``Order.total_price``
carries the display string in the shopper's currency.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select

from storefront import get_db
from storefront.config.locales import BASE_CURRENCY, SUPPORTED_CURRENCIES
from storefront.models.item import Item, ItemPrice
from storefront.models.order import Cart, CartItem, Order, Payment
from storefront.models.warehouse import Warehouse
from storefront.services.currency import get_exchange_rate
from storefront.services.errors import CheckoutError, NotFoundError
from storefront.services.pricing import convert_price_value, effective_price, format_price

log = logging.getLogger(__name__)


def get_or_create_cart(user_id: int, session=None) -> Cart:
    session = session or get_db()
    cart = session.execute(
        select(Cart).where(Cart.user_id == user_id, Cart.status == Cart.STATUS_PENDING)
    ).scalars().first()
    if cart is None:
        cart = Cart(user_id=user_id, status=Cart.STATUS_PENDING)
        session.add(cart)
        session.flush()
    return cart


def _positive_int(value, label: str) -> int:
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise CheckoutError(f'Invalid quantity for item {label}')
    if qty < 1:
        raise CheckoutError(f'Invalid quantity for item {label}')
    return qty


def add_to_cart(user_id: int, item_id: int, warehouse_id: Optional[int], quantity, session=None) -> CartItem:
    session = session or get_db()
    item = session.get(Item, item_id)
    if item is None:
        raise NotFoundError('Item not found')
    qty = _positive_int(quantity, item.article_id)
    cart = get_or_create_cart(user_id, session)
    for line in cart.items:
        if line.item_id == item_id and line.warehouse_id == warehouse_id:
            line.quantity += qty
            return line
    line = CartItem(cart_id=cart.id, item_id=item_id, warehouse_id=warehouse_id, quantity=qty)
    cart.items.append(line)
    return line


def remove_from_cart(user_id: int, cart_item_id: int, session=None) -> None:
    session = session or get_db()
    cart = get_or_create_cart(user_id, session)
    line = next((l for l in cart.items if l.id == cart_item_id), None)
    if line is None:
        raise NotFoundError('Cart item not found')
    cart.items.remove(line)


def cart_lines(cart: Cart) -> List[Dict[str, Any]]:
    """Checkout payload rows for the items currently in ``cart``."""
    return [
        {'article_id': l.item.article_id, 'warehouse_id': l.warehouse_id, 'quantity': l.quantity}
        for l in cart.items
    ]


def _warehouse_snapshot(wh: Warehouse) -> Dict[str, Any]:
    return {
        'warehouse_id': wh.id,
        'warehouse_name': wh.name or wh.displayed_name or 'Unknown warehouse',
        'warehouse_displayed_name': wh.displayed_name,
        'warehouse_country': wh.country_slug,
    }


def _item_name(item: Item, fallback: Optional[str]) -> str:
    if fallback:
        return fallback
    details = item.details_for('pl')
    if details is not None:
        return details.item_name
    return item.brand_slug or item.article_id


def _warehouse_id(value, label: str) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise CheckoutError(f'Invalid warehouse for item {label}')


def build_line_items(cart_items: List[Dict[str, Any]], session=None) -> Tuple[List[Dict[str, Any]], List[Tuple[ItemPrice, int]], float]:
    """Validate stock and snapshot each cart row.

    Returns ``(line_items, reservations, original_total)`` where reservations
    pairs each ItemPrice with the quantity to take from it. Rows sharing a
    warehouse price are checked against its stock together.
    """
    session = session or get_db()
    if not cart_items:
        raise CheckoutError('Cart is empty')
    if not isinstance(cart_items, list):
        raise CheckoutError('cart_items must be a list')
    if any(not isinstance(c, dict) for c in cart_items):
        raise CheckoutError('Invalid cart item')
    if any(not (c.get('article_id') or c.get('articleId')) for c in cart_items):
        raise CheckoutError('Each cart item must include an articleId')
    lines: List[Dict[str, Any]] = []
    reservations: List[Tuple[ItemPrice, int]] = []
    requested: Dict[int, int] = {}
    total = 0.0
    for c in cart_items:
        article_id = str(c.get('article_id') or c.get('articleId'))
        item = session.execute(select(Item).where(Item.article_id == article_id)).scalars().first()
        if item is None:
            raise NotFoundError(f'Item {article_id} not found')
        qty = _positive_int(c.get('quantity', 1), article_id)
        label = c.get('name') or article_id
        warehouse_id = _warehouse_id(c.get('warehouse_id') or c.get('warehouseId'), label)
        price = None
        if warehouse_id is not None:
            price = session.execute(
                select(ItemPrice).where(ItemPrice.item_slug == item.slug, ItemPrice.warehouse_id == warehouse_id)
            ).scalar_one_or_none()
        if price is None or price.warehouse is None:
            raise CheckoutError(f'Insufficient stock for item {label}')
        requested[price.id] = requested.get(price.id, 0) + qty
        if (price.quantity or 0) < requested[price.id]:
            raise CheckoutError(f'Insufficient stock for item {label}')
        unit, _ = effective_price(price)
        line_total = round(unit * qty, 2)
        total += line_total
        line = {
            'item_id': item.id,
            'article_id': article_id,
            'name': _item_name(item, c.get('name')),
            'quantity': qty,
            'base_price': price.price,
            'base_special_price': price.promotion_price,
            'unit_price': unit,
            'line_total': line_total,
        }
        line.update(_warehouse_snapshot(price.warehouse))
        lines.append(line)
        reservations.append((price, qty))
    return lines, reservations, round(total, 2)


def _order_currency(currency: Optional[str]) -> str:
    currency = (currency or BASE_CURRENCY).upper()
    if currency not in SUPPORTED_CURRENCIES:
        raise CheckoutError('Unsupported currency')
    return currency


def checkout(
    user_id: int,
    cart_items: Optional[List[Dict[str, Any]]] = None,
    currency: Optional[str] = None,
    delivery_id: Optional[str] = None,
    comment: Optional[str] = None,
    session=None,
) -> Order:
    """Turn the given rows (or the user's pending cart) into an order with a pending payment."""
    session = session or get_db()
    currency = _order_currency(currency)
    cart = None
    if cart_items is None:
        cart = get_or_create_cart(user_id, session)
        cart_items = cart_lines(cart)
    lines, reservations, original_total = build_line_items(cart_items, session)
    for price, qty in reservations:
        price.quantity = (price.quantity or 0) - qty
        price.item.sell_counter = (price.item.sell_counter or 0) + qty
    display_total = convert_price_value(original_total, get_exchange_rate(BASE_CURRENCY, currency, session))
    order = Order(
        user_id=user_id,
        status=Order.STATUS_NEW,
        original_total=original_total,
        total_price=format_price(display_total, currency),
        currency=currency,
        line_items=lines,
        delivery_id=delivery_id,
        comment=comment,
    )
    order.payments.append(Payment(
        amount=int(round(display_total * 100)),
        currency=currency,
        status=Payment.STATUS_PENDING,
    ))
    session.add(order)
    if cart is not None:
        cart.status = Cart.STATUS_CHECKED_OUT
    session.commit()
    log.info('order %s created for user %s: %d lines, %s', order.id, user_id, len(lines), order.total_price)
    return order


def create_price_request(
    user_id: int,
    item_id: int,
    warehouse_id: int,
    quantity,
    comment: Optional[str] = None,
    session=None,
) -> Order:
    """Record an ASK_FOR_PRICE order; no stock is reserved and the totals stay at zero."""
    session = session or get_db()
    if not item_id or not warehouse_id or not quantity:
        raise CheckoutError('Missing required fields: item_id, warehouse_id, quantity')
    item = session.get(Item, int(item_id))
    if item is None:
        raise NotFoundError('Item not found')
    qty = _positive_int(quantity, item.article_id)
    price = session.execute(
        select(ItemPrice).where(ItemPrice.item_slug == item.slug, ItemPrice.warehouse_id == int(warehouse_id))
    ).scalar_one_or_none()
    if price is None or price.warehouse is None:
        raise NotFoundError('Item not available in selected warehouse')
    line = {
        'item_id': item.id,
        'article_id': item.article_id,
        'name': _item_name(item, None),
        'quantity': qty,
        'base_price': price.price,
        'base_special_price': price.promotion_price,
        'unit_price': 0,
        'line_total': 0,
    }
    line.update(_warehouse_snapshot(price.warehouse))
    order = Order(
        user_id=user_id,
        status=Order.STATUS_ASK_FOR_PRICE,
        original_total=0.0,
        total_price='0',
        currency=BASE_CURRENCY,
        line_items=[line],
        comment=comment,
    )
    session.add(order)
    session.commit()
    log.info('price request %s created for user %s (item %s)', order.id, user_id, item.article_id)
    return order
