from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select
from storefront import get_db
from storefront.models.warehouse import Warehouse, WarehouseCountry
from storefront.models.item import Item, ItemPrice
from storefront.decorators.auth import require_permissions
from storefront.decorators.audit import audit_log
from storefront.utils.listing import apply_pagination, handle_conditional, make_cached_list_response
from storefront.utils.filters import apply_filters
from storefront.utils.slug import slugify

wh_bp = Blueprint('inventory', __name__)


def _warehouse_json(w: Warehouse):
    return {
        'id': w.id,
        'name': w.name,
        'displayed_name': w.displayed_name,
        'is_visible': w.is_visible,
        'country_slug': w.country_slug,
        'country_code': w.country_code,
    }


def _country_json(c: WarehouseCountry):
    return {
        'id': c.id,
        'slug': c.slug,
        'name': c.name,
        'country_code': c.country_code,
        'phone_code': c.phone_code,
        'is_active': c.is_active,
    }


def _stock_json(p: ItemPrice):
    return {
        'item_slug': p.item_slug,
        'article_id': p.item.article_id if p.item else None,
        'price': p.price,
        'quantity': p.quantity,
        'promotion_price': p.promotion_price,
        'badge': p.badge,
    }


def _get_warehouse_or_404(session, warehouse_id: int) -> Warehouse:
    w = session.get(Warehouse, warehouse_id)
    if not w:
        abort(404, description='Warehouse not found')
    return w


def _country_or_400(session, slug):
    if slug is None:
        return None
    c = session.execute(select(WarehouseCountry).where(WarehouseCountry.slug == slug)).scalar_one_or_none()
    if not c:
        abort(400, description='Unknown warehouse country')
    return c


# --- Warehouses ---

@wh_bp.get('/warehouses')
@require_permissions('WH.READ')
def list_warehouses():
    session = get_db()
    q = session.query(Warehouse)
    q = apply_filters(q, {
        'country': {'op': lambda qu, v: qu.filter(Warehouse.country_slug == v)},
        'is_visible': {
            'coerce': lambda v: v.lower() in ('1', 'true', 'yes'),
            'op': lambda qu, v: qu.filter(Warehouse.is_visible.is_(v)),
        },
    }, request.args)
    paged_q, total, limit, offset = apply_pagination(q.order_by(Warehouse.id.asc()))
    rows = paged_q.all()
    latest_ts = max((w.updated_at for w in rows if w.updated_at), default=None)
    resp, etag = make_cached_list_response([_warehouse_json(w) for w in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@wh_bp.post('/warehouses')
@require_permissions('WH.MANAGE')
@audit_log('WAREHOUSE.CREATE', entity='Warehouse', entity_id_key='id', meta_keys=['name', 'country_slug'])
def create_warehouse():
    session = get_db()
    data = request.json or {}
    displayed_name = data.get('displayed_name')
    if not displayed_name:
        abort(400, description='displayed_name required')
    name = data.get('name') or slugify(displayed_name)
    if session.execute(select(Warehouse).where(Warehouse.name == name)).scalar_one_or_none():
        abort(409, description='Warehouse name already exists')
    country = _country_or_400(session, data.get('country_slug'))
    w = Warehouse(name=name, displayed_name=displayed_name, is_visible=bool(data.get('is_visible', True)),
                  country=country)
    session.add(w)
    session.commit()
    return _warehouse_json(w), 201


@wh_bp.get('/warehouses/<int:warehouse_id>')
@require_permissions('WH.READ')
def get_warehouse(warehouse_id: int):
    return _warehouse_json(_get_warehouse_or_404(get_db(), warehouse_id))


@wh_bp.put('/warehouses/<int:warehouse_id>')
@require_permissions('WH.MANAGE')
@audit_log(
    'WAREHOUSE.UPDATE',
    entity='Warehouse',
    entity_id_key='id',
    diff_keys=['displayed_name', 'is_visible', 'country_slug'],
    pre_fetch=lambda a, kw: _prefetch_warehouse(kw.get('warehouse_id')),
)
def update_warehouse(warehouse_id: int):
    session = get_db()
    w = _get_warehouse_or_404(session, warehouse_id)
    data = request.json or {}
    if 'name' in data and data['name'] != w.name:
        if not data['name']:
            abort(400, description='name cannot be empty')
        if session.execute(select(Warehouse).where(Warehouse.name == data['name'])).scalar_one_or_none():
            abort(409, description='Warehouse name already exists')
        w.name = data['name']
    if 'displayed_name' in data:
        if not data['displayed_name']:
            abort(400, description='displayed_name cannot be empty')
        w.displayed_name = data['displayed_name']
    if 'is_visible' in data:
        w.is_visible = bool(data['is_visible'])
    if 'country_slug' in data:
        w.country = _country_or_400(session, data['country_slug'])
    session.commit()
    return _warehouse_json(w)


@wh_bp.delete('/warehouses/<int:warehouse_id>')
@require_permissions('WH.MANAGE')
@audit_log('WAREHOUSE.DELETE', entity='Warehouse', entity_id_arg='warehouse_id')
def delete_warehouse(warehouse_id: int):
    session = get_db()
    w = _get_warehouse_or_404(session, warehouse_id)
    prices = session.execute(select(ItemPrice).where(ItemPrice.warehouse_id == w.id)).scalars().all()
    if any(p.quantity > 0 for p in prices):
        abort(409, description='Warehouse still holds stock')
    for p in prices:
        if p.item is not None:
            p.item.prices.remove(p)
    session.delete(w)
    session.commit()
    return {'deleted': True, 'id': warehouse_id}


@wh_bp.get('/warehouses/<int:warehouse_id>/stock')
@require_permissions('WH.READ')
def list_warehouse_stock(warehouse_id: int):
    session = get_db()
    _get_warehouse_or_404(session, warehouse_id)
    q = session.query(ItemPrice).filter(ItemPrice.warehouse_id == warehouse_id)
    q = apply_filters(q, {
        'in_stock': {
            'coerce': lambda v: v.lower() in ('1', 'true', 'yes'),
            'op': lambda qu, v: qu.filter(ItemPrice.quantity > 0) if v else qu.filter(ItemPrice.quantity <= 0),
        },
    }, request.args)
    paged_q, total, limit, offset = apply_pagination(q.order_by(ItemPrice.item_slug.asc(), ItemPrice.id.asc()))
    rows = paged_q.all()
    latest_ts = max((p.updated_at for p in rows if p.updated_at), default=None)
    resp, etag = make_cached_list_response([_stock_json(p) for p in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@wh_bp.put('/warehouses/<int:warehouse_id>/stock/<article_id>/adjust')
@require_permissions('WH.MANAGE')
@audit_log(
    'STOCK.ADJUST',
    entity='ItemPrice',
    entity_id_key='item_slug',
    diff_keys=['quantity'],
    pre_fetch=lambda a, kw: _prefetch_stock(kw.get('warehouse_id'), kw.get('article_id')),
    meta_keys=['quantity'],
)
def adjust_stock(warehouse_id: int, article_id: str):
    session = get_db()
    item = session.execute(select(Item).where(Item.article_id == article_id)).scalar_one_or_none()
    if not item:
        abort(404, description='Item not found')
    price = next((p for p in item.prices if p.warehouse_id == warehouse_id), None)
    if price is None:
        abort(404, description='Item not available in selected warehouse')
    data = request.json or {}
    delta = data.get('delta')
    if delta is None:
        abort(400, description='delta required')
    try:
        delta = int(delta)
    except (TypeError, ValueError):
        abort(400, description='delta must be int')
    if price.quantity + delta < 0:
        abort(400, description='quantity cannot go below 0')
    price.quantity = price.quantity + delta
    session.commit()
    return _stock_json(price)


def _prefetch_warehouse(warehouse_id):
    w = get_db().get(Warehouse, warehouse_id)
    if not w:
        return {}
    return {'displayed_name': w.displayed_name, 'is_visible': w.is_visible, 'country_slug': w.country_slug}


def _prefetch_stock(warehouse_id, article_id):
    session = get_db()
    item = session.execute(select(Item).where(Item.article_id == article_id)).scalar_one_or_none()
    if not item:
        return {}
    price = next((p for p in item.prices if p.warehouse_id == warehouse_id), None)
    return {'quantity': price.quantity} if price else {}


# --- Warehouse countries ---

@wh_bp.get('/warehouse-countries')
@require_permissions('WH.READ')
def list_countries():
    session = get_db()
    rows = session.execute(select(WarehouseCountry).order_by(WarehouseCountry.name.asc())).scalars().all()
    resp, _ = make_cached_list_response([_country_json(c) for c in rows], len(rows), len(rows), 0, None)
    return resp


@wh_bp.post('/warehouse-countries')
@require_permissions('WH.MANAGE')
@audit_log('WAREHOUSE_COUNTRY.CREATE', entity='WarehouseCountry', entity_id_key='slug', meta_keys=['country_code'])
def create_country():
    session = get_db()
    data = request.json or {}
    name = data.get('name'); code = data.get('country_code')
    if not name or not code:
        abort(400, description='name and country_code required')
    slug = slugify(data.get('slug') or name)
    if session.execute(select(WarehouseCountry).where(WarehouseCountry.slug == slug)).scalar_one_or_none():
        abort(409, description='slug already exists')
    c = WarehouseCountry(slug=slug, name=name, country_code=code.upper(), phone_code=data.get('phone_code'),
                         is_active=bool(data.get('is_active', True)))
    session.add(c)
    session.commit()
    return _country_json(c), 201


def _get_country_or_404(session, slug):
    c = session.execute(select(WarehouseCountry).where(WarehouseCountry.slug == slug)).scalar_one_or_none()
    if not c:
        abort(404, description='Warehouse country not found')
    return c


@wh_bp.put('/warehouse-countries/<slug>')
@require_permissions('WH.MANAGE')
@audit_log('WAREHOUSE_COUNTRY.UPDATE', entity='WarehouseCountry', entity_id_key='slug', meta_keys=['is_active'])
def update_country(slug: str):
    session = get_db()
    c = _get_country_or_404(session, slug)
    data = request.json or {}
    if 'name' in data:
        if not data['name']:
            abort(400, description='name cannot be empty')
        c.name = data['name']
    if data.get('country_code'):
        c.country_code = data['country_code'].upper()
    if 'phone_code' in data:
        c.phone_code = data['phone_code']
    if 'is_active' in data:
        c.is_active = bool(data['is_active'])
    session.commit()
    return _country_json(c)


@wh_bp.delete('/warehouse-countries/<slug>')
@require_permissions('WH.MANAGE')
@audit_log('WAREHOUSE_COUNTRY.DELETE', entity='WarehouseCountry', entity_id_arg='slug')
def delete_country(slug: str):
    session = get_db()
    c = _get_country_or_404(session, slug)
    if c.warehouses:
        abort(409, description='Country has warehouses')
    session.delete(c)
    session.commit()
    return {'deleted': True, 'slug': slug}
