from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select
from storefront import get_db
from storefront.models.order import Order, Payment
from storefront.decorators.auth import require_permissions
from storefront.decorators.audit import audit_log
from storefront.services.orders import (
    add_to_cart,
    checkout,
    create_price_request,
    get_or_create_cart,
    remove_from_cart,
)
from storefront.services.policy import assert_owns_record, current_user_id
from storefront.utils.listing import apply_pagination, handle_conditional, make_cached_list_response
from storefront.utils.filters import apply_filters
from storefront.utils.fsm import TransitionValidator
from storefront.utils.validation import validate_status
from storefront.utils.sorting import apply_multi_sort

orders_bp = Blueprint('orders', __name__)
admin_orders_bp = Blueprint('admin_orders', __name__)
payments_bp = Blueprint('payments', __name__)

# Order lifecycle graph:
# ASK_FOR_PRICE -> NEW | CANCELLED
# NEW -> WAITING_FOR_PAYMENT | PROCESSING | CANCELLED
# WAITING_FOR_PAYMENT -> PROCESSING | CANCELLED
# PROCESSING -> DELIVERY | CANCELLED | REFUND
# DELIVERY -> COMPLETED | REFUND
# COMPLETED -> REFUND
ORDER_FSM = TransitionValidator({
    Order.STATUS_ASK_FOR_PRICE: {Order.STATUS_NEW, Order.STATUS_CANCELLED},
    Order.STATUS_NEW: {Order.STATUS_WAITING_FOR_PAYMENT, Order.STATUS_PROCESSING, Order.STATUS_CANCELLED},
    Order.STATUS_WAITING_FOR_PAYMENT: {Order.STATUS_PROCESSING, Order.STATUS_CANCELLED},
    Order.STATUS_PROCESSING: {Order.STATUS_DELIVERY, Order.STATUS_CANCELLED, Order.STATUS_REFUND},
    Order.STATUS_DELIVERY: {Order.STATUS_COMPLETED, Order.STATUS_REFUND},
    Order.STATUS_COMPLETED: {Order.STATUS_REFUND},
    Order.STATUS_CANCELLED: set(),
    Order.STATUS_REFUND: set(),
}, field_name='order status', allow_same=True)

PAYMENT_FSM = TransitionValidator({
    Payment.STATUS_PENDING: {Payment.STATUS_INITIATED, Payment.STATUS_PROCESSING, Payment.STATUS_COMPLETED,
                             Payment.STATUS_FAILED, Payment.STATUS_CANCELLED},
    Payment.STATUS_INITIATED: {Payment.STATUS_PROCESSING, Payment.STATUS_COMPLETED,
                               Payment.STATUS_FAILED, Payment.STATUS_CANCELLED},
    Payment.STATUS_PROCESSING: {Payment.STATUS_COMPLETED, Payment.STATUS_FAILED},
    Payment.STATUS_COMPLETED: {Payment.STATUS_REFUNDED},
    Payment.STATUS_FAILED: set(),
    Payment.STATUS_CANCELLED: set(),
    Payment.STATUS_REFUNDED: set(),
}, field_name='payment status')

ORDER_SORTS = {
    'created_at': Order.created_at,
    'status': Order.status,
    'total': Order.original_total,
    'id': Order.id,
}


def _payment_json(p: Payment):
    return {
        'id': p.id,
        'order_id': p.order_id,
        'amount': p.amount,
        'currency': p.currency,
        'status': p.status,
        'method': p.method,
        'transaction_id': p.transaction_id,
        'error_message': p.error_message,
        'created_at': p.created_at.isoformat() if p.created_at else None,
    }


def _order_json(o: Order):
    return {
        'id': o.id,
        'user_id': o.user_id,
        'status': o.status,
        'total_price': o.total_price,
        'original_total': o.original_total,
        'currency': o.currency,
        'line_items': o.line_items or [],
        'delivery_id': o.delivery_id,
        'comment': o.comment,
        'payments': [_payment_json(p) for p in o.payments],
        'created_at': o.created_at.isoformat() if o.created_at else None,
        'updated_at': o.updated_at.isoformat() if o.updated_at else None,
    }


def _cart_json(cart):
    lines = []
    for line in cart.items:
        lines.append({
            'id': line.id,
            'item_id': line.item_id,
            'article_id': line.item.article_id if line.item else None,
            'slug': line.item.slug if line.item else None,
            'warehouse_id': line.warehouse_id,
            'quantity': line.quantity,
        })
    return {'id': cart.id, 'status': cart.status, 'items': lines}


def _order_list_response(q):
    q = apply_filters(q, {
        'status': {
            'validate': lambda v: v in Order.ALL_STATUSES,
            'op': lambda qu, v: qu.filter(Order.status == v),
        },
    }, request.args)
    q = apply_multi_sort(q, request.args.get('sort') or '-created_at', ORDER_SORTS, Order.id)
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = max((o.updated_at for o in rows if o.updated_at), default=None)
    resp, etag = make_cached_list_response([_order_json(o) for o in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


def _get_order_or_404(session, order_id: int) -> Order:
    o = session.get(Order, order_id)
    if not o:
        abort(404, description='Order not found')
    return o


# --- Shopper: cart and orders ---

@orders_bp.get('/cart')
@require_permissions('ORDER.CREATE')
def get_cart():
    session = get_db()
    cart = get_or_create_cart(current_user_id(), session)
    session.commit()
    return _cart_json(cart)


@orders_bp.post('/cart')
@require_permissions('ORDER.CREATE')
def add_cart_item():
    session = get_db()
    data = request.json or {}
    if data.get('item_id') is None:
        abort(400, description='item_id required')
    try:
        item_id = int(data['item_id'])
        warehouse_id = int(data['warehouse_id']) if data.get('warehouse_id') is not None else None
    except (TypeError, ValueError):
        abort(400, description='item_id and warehouse_id must be integers')
    add_to_cart(current_user_id(), item_id, warehouse_id, data.get('quantity', 1), session=session)
    session.commit()
    return _cart_json(get_or_create_cart(current_user_id(), session)), 201


@orders_bp.delete('/cart/<int:cart_item_id>')
@require_permissions('ORDER.CREATE')
def delete_cart_item(cart_item_id: int):
    session = get_db()
    remove_from_cart(current_user_id(), cart_item_id, session=session)
    session.commit()
    return _cart_json(get_or_create_cart(current_user_id(), session))


@orders_bp.post('/checkout')
@require_permissions('ORDER.CREATE')
@audit_log('ORDER.CREATE', entity='Order', entity_id_key='id', meta_keys=['total_price', 'currency'])
def checkout_cart():
    """Body ``cart_items`` wins; without it the caller's pending cart is checked out."""
    session = get_db()
    data = request.json or {}
    cart_items = data.get('cart_items', data.get('cartItems'))
    if cart_items is not None and not isinstance(cart_items, list):
        abort(400, description='cart_items must be a list')
    order = checkout(
        current_user_id(),
        cart_items=cart_items,
        currency=data.get('currency'),
        delivery_id=data.get('delivery_id'),
        comment=data.get('comment'),
        session=session,
    )
    return _order_json(order), 201


@orders_bp.post('/price-request')
@require_permissions('ORDER.CREATE')
@audit_log('ORDER.PRICE_REQUEST', entity='Order', entity_id_key='id', meta_keys=['status'])
def price_request():
    data = request.json or {}
    order = create_price_request(
        current_user_id(),
        data.get('item_id'),
        data.get('warehouse_id'),
        data.get('quantity'),
        comment=data.get('comment'),
        session=get_db(),
    )
    return _order_json(order), 201


@orders_bp.get('')
@require_permissions('ORDER.READ_OWN')
def list_my_orders():
    session = get_db()
    return _order_list_response(session.query(Order).filter(Order.user_id == current_user_id()))


@orders_bp.get('/<int:order_id>')
@require_permissions('ORDER.READ_OWN')
def get_my_order(order_id: int):
    o = _get_order_or_404(get_db(), order_id)
    assert_owns_record(o.user_id)
    return _order_json(o)


# --- Back office: orders ---

@admin_orders_bp.get('')
@require_permissions('ORDER.READ')
def list_orders():
    session = get_db()
    q = session.query(Order)
    q = apply_filters(q, {
        'user_id': {'coerce': int, 'op': lambda qu, v: qu.filter(Order.user_id == v)},
    }, request.args)
    return _order_list_response(q)


@admin_orders_bp.get('/<int:order_id>')
@require_permissions('ORDER.READ')
def get_order(order_id: int):
    o = _get_order_or_404(get_db(), order_id)
    body = _order_json(o)
    body['allowed_statuses'] = ORDER_FSM.allowed_targets(o.status)
    return body


@admin_orders_bp.patch('/<int:order_id>/status')
@require_permissions('ORDER.MANAGE')
@audit_log(
    'ORDER.STATUS',
    entity='Order',
    entity_id_key='id',
    diff_keys=['status', 'delivery_id'],
    pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')),
    meta_keys=['status'],
)
def update_order_status(order_id: int):
    session = get_db()
    o = _get_order_or_404(session, order_id)
    data = request.json or {}
    target = data.get('status')
    if not target:
        abort(400, description='status required')
    validate_status(target, Order.ALL_STATUSES, 'status')
    ORDER_FSM.assert_can_transition(o.status, target)
    delivery_id = data.get('delivery_id') or o.delivery_id
    if target == Order.STATUS_DELIVERY and not delivery_id:
        abort(400, description='delivery_id required for DELIVERY status')
    o.delivery_id = delivery_id
    if 'comment' in data:
        o.comment = data['comment']
    o.status = target
    session.commit()
    current_app.logger.info('order %s moved to %s', o.id, target)
    return _order_json(o)


def _prefetch_order(order_id):
    o = get_db().get(Order, order_id)
    if not o:
        return {}
    return {'status': o.status, 'delivery_id': o.delivery_id}


# --- Back office: payments ---

@payments_bp.get('')
@require_permissions('PAY.READ')
def list_payments():
    session = get_db()
    q = session.query(Payment)
    q = apply_filters(q, {
        'status': {
            'validate': lambda v: v in Payment.ALL_STATUSES,
            'op': lambda qu, v: qu.filter(Payment.status == v),
        },
        'order_id': {'coerce': int, 'op': lambda qu, v: qu.filter(Payment.order_id == v)},
    }, request.args)
    paged_q, total, limit, offset = apply_pagination(q.order_by(Payment.id.desc()))
    rows = paged_q.all()
    latest_ts = max((p.updated_at for p in rows if p.updated_at), default=None)
    resp, etag = make_cached_list_response([_payment_json(p) for p in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


def _get_payment_or_404(session, payment_id: int) -> Payment:
    p = session.get(Payment, payment_id)
    if not p:
        abort(404, description='Payment not found')
    return p


@payments_bp.get('/<int:payment_id>')
@require_permissions('PAY.READ')
def get_payment(payment_id: int):
    return _payment_json(_get_payment_or_404(get_db(), payment_id))


@payments_bp.patch('/<int:payment_id>/status')
@require_permissions('PAY.MANAGE')
@audit_log('PAYMENT.STATUS', entity='Payment', entity_id_key='id', meta_keys=['status', 'transaction_id'])
def update_payment_status(payment_id: int):
    """Record a provider outcome; refunds go through the refund endpoint."""
    session = get_db()
    p = _get_payment_or_404(session, payment_id)
    data = request.json or {}
    target = data.get('status')
    if not target:
        abort(400, description='status required')
    validate_status(target, Payment.ALL_STATUSES, 'status')
    if target == Payment.STATUS_REFUNDED:
        abort(400, description='Use the refund endpoint')
    PAYMENT_FSM.assert_can_transition(p.status, target)
    p.status = target
    for key in ('method', 'transaction_id', 'error_message'):
        if key in data:
            setattr(p, key, data[key])
    session.commit()
    return _payment_json(p)


@payments_bp.post('/<int:payment_id>/refund')
@require_permissions('PAY.REFUND')
@audit_log('PAYMENT.REFUND', entity='Payment', entity_id_key='id', meta_keys=['amount', 'currency'])
def refund_payment(payment_id: int):
    session = get_db()
    p = _get_payment_or_404(session, payment_id)
    PAYMENT_FSM.assert_can_transition(p.status, Payment.STATUS_REFUNDED)
    p.status = Payment.STATUS_REFUNDED
    p.order.status = Order.STATUS_REFUND
    session.commit()
    current_app.logger.info('payment %s refunded (order %s)', p.id, p.order_id)
    return _payment_json(p)
