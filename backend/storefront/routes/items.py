from __future__ import annotations
import io
from datetime import datetime, timezone
from flask import Blueprint, request, abort, current_app, make_response
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
import pandas as pd
from storefront import get_db
from storefront.config.locales import DEFAULT_LOCALE, is_supported_locale
from storefront.decorators.auth import require_permissions
from storefront.decorators.audit import audit_log
from storefront.models.catalog import Brand
from storefront.models.item import Item, ItemDetails, ItemPrice, ItemPriceHistory, ALL_BADGES, BADGE_ABSENT
from storefront.models.warehouse import Warehouse
from storefront.services.bulk_upload import reconcile_prices, import_catalog_rows, upsert_price, parse_datetime
from storefront.services.catalog import category_names
from storefront.services.parsers import parse_upload, XLSX_COLUMNS
from storefront.utils.filters import apply_filters
from storefront.utils.listing import apply_pagination, handle_conditional, make_cached_list_response
from storefront.utils.slug import item_slug
from storefront.utils.sorting import apply_multi_sort

items_bp = Blueprint('admin_items', __name__)

DETAIL_FIELDS = ('item_name', 'description', 'specifications', 'seller', 'discount', 'popularity',
                 'meta_description', 'meta_keywords')


def _iso(dt):
    return dt.isoformat() if dt else None


def _price_json(p: ItemPrice):
    return {
        'id': p.id,
        'warehouse_id': p.warehouse_id,
        'warehouse_name': p.warehouse.displayed_name if p.warehouse else None,
        'price': p.price,
        'quantity': p.quantity,
        'promotion_price': p.promotion_price,
        'promo_code': p.promo_code,
        'promo_start_date': _iso(p.promo_start_date),
        'promo_end_date': _iso(p.promo_end_date),
        'badge': p.badge,
        'updated_at': _iso(p.updated_at),
    }


def _details_json(d: ItemDetails):
    body = {'id': d.id, 'locale': d.locale}
    body.update({f: getattr(d, f) for f in DETAIL_FIELDS})
    return body


def _item_json(i: Item):
    return {
        'id': i.id,
        'article_id': i.article_id,
        'slug': i.slug,
        'alias': i.alias,
        'is_displayed': i.is_displayed,
        'sell_counter': i.sell_counter,
        'warranty_length': i.warranty_length,
        'warranty_type': i.warranty_type,
        'brand_slug': i.brand_slug,
        'category_slug': i.category_slug,
        'image_links': i.image_links or [],
        'linked_items': i.linked_items or [],
        'details': [_details_json(d) for d in sorted(i.details, key=lambda d: d.locale)],
        'prices': [_price_json(p) for p in sorted(i.prices, key=lambda p: p.warehouse_id)],
        'updated_at': _iso(i.updated_at),
    }


def _get_item_or_404(session, article_id: str) -> Item:
    item = session.execute(select(Item).where(Item.article_id == article_id)).scalars().first()
    if not item:
        abort(404, description='Item not found')
    return item


def _parse_bool(value):
    lowered = str(value).lower()
    if lowered not in ('true', 'false'):
        raise ValueError(value)
    return lowered == 'true'


def _as_int(data, key, default=None, minimum=None):
    if data.get(key) is None:
        return default
    try:
        val = int(data[key])
    except (TypeError, ValueError):
        abort(400, description=f'{key} must be int')
    if minimum is not None and val < minimum:
        abort(400, description=f'{key} must be >= {minimum}')
    return val


def _as_float(data, key, default=None):
    if data.get(key) is None:
        return default
    try:
        val = float(data[key])
    except (TypeError, ValueError):
        abort(400, description=f'{key} must be a number')
    if val < 0:
        abort(400, description=f'{key} must be greater than or equal to 0')
    return val


def _as_datetime(data, key):
    try:
        return parse_datetime(data.get(key))
    except ValueError:
        abort(400, description=f'{key} must be a valid date')


def _check_brand(session, brand_slug):
    if brand_slug and not session.execute(select(Brand).where(Brand.alias == brand_slug)).scalar_one_or_none():
        abort(400, description=f'Brand {brand_slug} not found')


def _apply_details(session, item: Item, details_payload):
    if not isinstance(details_payload, list):
        abort(400, description='details must be a list')
    for raw in details_payload:
        locale = raw.get('locale') or DEFAULT_LOCALE
        if not is_supported_locale(locale):
            abort(400, description='Invalid locale')
        existing = next((d for d in item.details if d.locale == locale), None)
        if existing is None:
            if not raw.get('item_name'):
                abort(400, description='item_name required')
            existing = ItemDetails(locale=locale, item_name=raw['item_name'], description='')
            item.details.append(existing)
        for f in DETAIL_FIELDS:
            if f in raw:
                setattr(existing, f, raw[f])
        if existing.description is None:
            existing.description = ''
        if not existing.item_name:
            abort(400, description='item_name cannot be empty')


def _price_values(raw):
    badge = raw.get('badge') or BADGE_ABSENT
    if badge not in ALL_BADGES:
        abort(400, description='badge invalid')
    price = _as_float(raw, 'price')
    if price is None:
        abort(400, description='price required')
    return {
        'price': price,
        'quantity': _as_int(raw, 'quantity', 0, minimum=0),
        'promotion_price': _as_float(raw, 'promotion_price'),
        'promo_code': raw.get('promo_code'),
        'promo_start_date': _as_datetime(raw, 'promo_start_date'),
        'promo_end_date': _as_datetime(raw, 'promo_end_date'),
        'badge': badge,
    }


def _apply_prices(session, item: Item, prices_payload):
    if not isinstance(prices_payload, list):
        abort(400, description='prices must be a list')
    for raw in prices_payload:
        wh_id = _as_int(raw, 'warehouse_id')
        if wh_id is None or session.get(Warehouse, wh_id) is None:
            abort(400, description='Warehouse not found')
        upsert_price(session, item, wh_id, _price_values(raw))


@items_bp.get('')
@require_permissions('ITEM.READ')
def list_items():
    session = get_db()
    q = session.query(Item)
    filter_specs = {
        'q': {'op': lambda qu, v: qu.filter(Item.article_id.ilike(f'%{v}%') | Item.slug.ilike(f'%{v}%'))},
        'category': {'op': lambda qu, v: qu.filter(Item.category_slug == v)},
        'brand': {'op': lambda qu, v: qu.filter(Item.brand_slug == v)},
        'is_displayed': {
            'coerce': _parse_bool,
            'op': lambda qu, v: qu.filter(Item.is_displayed.is_(v)),
        },
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {
        'article_id': Item.article_id,
        'sell_counter': Item.sell_counter,
        'updated_at': Item.updated_at,
        'created_at': Item.created_at,
        'id': Item.id,
    }
    q = apply_multi_sort(q, request.args.get('sort') or '-id', allowed, Item.id)
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = max((i.updated_at for i in rows if i.updated_at), default=None)
    resp, etag = make_cached_list_response([_item_json(i) for i in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@items_bp.post('')
@require_permissions('ITEM.CREATE')
@audit_log('ITEM.CREATE', entity='Item', entity_id_key='article_id', meta_keys=['slug'])
def create_item():
    session = get_db()
    data = request.json or {}
    article_id = (data.get('article_id') or '').strip()
    category_slug = data.get('category_slug')
    if not article_id or not category_slug:
        abort(400, description='article_id and category_slug required')
    if not data.get('details'):
        abort(400, description='details required')
    brand_slug = data.get('brand_slug')
    _check_brand(session, brand_slug)
    slug = data.get('slug') or item_slug(brand_slug, article_id)
    if session.execute(select(Item).where(Item.article_id == article_id)).scalars().first():
        abort(409, description='article_id already exists')
    if session.execute(select(Item).where(Item.slug == slug)).scalar_one_or_none():
        abort(409, description='slug already exists')
    item = Item(
        article_id=article_id,
        slug=slug,
        alias=data.get('alias'),
        is_displayed=bool(data.get('is_displayed', False)),
        warranty_length=_as_int(data, 'warranty_length', 12, minimum=0),
        warranty_type=data.get('warranty_type') or 'manufacturer',
        brand_slug=brand_slug,
        category_slug=category_slug,
        image_links=list(data.get('image_links') or []),
        linked_items=list(data.get('linked_items') or []),
    )
    session.add(item)
    session.flush()
    _apply_details(session, item, data['details'])
    _apply_prices(session, item, data.get('prices') or [])
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        abort(409, description='item conflicts with an existing record')
    return _item_json(item), 201


@items_bp.get('/<article_id>')
@require_permissions('ITEM.READ')
def get_item(article_id: str):
    return _item_json(_get_item_or_404(get_db(), article_id))


def _prefetch_item(article_id):
    session = get_db()
    item = session.execute(select(Item).where(Item.article_id == article_id)).scalars().first()
    if not item:
        return {}
    return {'is_displayed': item.is_displayed, 'category_slug': item.category_slug, 'brand_slug': item.brand_slug}


@items_bp.put('/<article_id>')
@require_permissions('ITEM.MANAGE')
@audit_log('ITEM.UPDATE', entity='Item', entity_id_key='article_id',
           diff_keys=['is_displayed', 'category_slug', 'brand_slug'],
           pre_fetch=lambda a, kw: _prefetch_item(kw.get('article_id')))
def update_item(article_id: str):
    session = get_db()
    item = _get_item_or_404(session, article_id)
    data = request.json or {}
    if 'brand_slug' in data:
        _check_brand(session, data['brand_slug'])
        item.brand_slug = data['brand_slug']
    if 'category_slug' in data:
        if not data['category_slug']:
            abort(400, description='category_slug cannot be empty')
        item.category_slug = data['category_slug']
    if 'is_displayed' in data:
        item.is_displayed = bool(data['is_displayed'])
    if 'warranty_length' in data:
        item.warranty_length = _as_int(data, 'warranty_length', item.warranty_length, minimum=0)
    for key in ('alias', 'warranty_type'):
        if key in data:
            setattr(item, key, data[key])
    for key in ('image_links', 'linked_items'):
        if key in data:
            setattr(item, key, list(data[key] or []))
    if 'details' in data:
        _apply_details(session, item, data['details'])
    if 'prices' in data:
        _apply_prices(session, item, data['prices'])
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        abort(409, description='item conflicts with an existing record')
    return _item_json(item)


@items_bp.delete('/<article_id>')
@require_permissions('ITEM.DELETE')
@audit_log('ITEM.DELETE', entity='Item', entity_id_arg='article_id')
def delete_item(article_id: str):
    session = get_db()
    item = _get_item_or_404(session, article_id)
    session.delete(item)
    session.commit()
    return {'deleted': True, 'article_id': article_id}


@items_bp.post('/<article_id>/set-visible')
@require_permissions('ITEM.MANAGE')
@audit_log('ITEM.VISIBILITY', entity='Item', entity_id_key='article_id', meta_keys=['is_displayed'])
def set_visible(article_id: str):
    session = get_db()
    item = _get_item_or_404(session, article_id)
    data = request.json or {}
    if not isinstance(data.get('is_displayed'), bool):
        abort(400, description='is_displayed must be a boolean')
    item.is_displayed = data['is_displayed']
    session.commit()
    return {'article_id': item.article_id, 'is_displayed': item.is_displayed}


def _article_ids(data):
    ids = data.get('article_ids')
    if not isinstance(ids, list) or not ids:
        abort(400, description='article_ids must be a non-empty list')
    return [str(i) for i in ids]


@items_bp.post('/batch-delete')
@require_permissions('ITEM.DELETE')
@audit_log('ITEM.BATCH_DELETE', entity='Item', meta_keys=['deleted'])
def batch_delete():
    session = get_db()
    ids = _article_ids(request.json or {})
    rows = session.execute(select(Item).where(Item.article_id.in_(ids))).scalars().all()
    for item in rows:
        session.delete(item)
    session.commit()
    found = {i.article_id for i in rows}
    return {'deleted': len(rows), 'not_found': [i for i in ids if i not in found]}


@items_bp.post('/batch-update')
@require_permissions('ITEM.MANAGE')
@audit_log('ITEM.BATCH_UPDATE', entity='Item', meta_keys=['updated', 'fields'])
def batch_update():
    session = get_db()
    data = request.json or {}
    ids = _article_ids(data)
    changes = {}
    if 'is_displayed' in data:
        if not isinstance(data['is_displayed'], bool):
            abort(400, description='is_displayed must be a boolean')
        changes['is_displayed'] = data['is_displayed']
    if data.get('category_slug'):
        changes['category_slug'] = data['category_slug']
    if 'brand_slug' in data:
        _check_brand(session, data['brand_slug'])
        changes['brand_slug'] = data['brand_slug']
    if not changes:
        abort(400, description='nothing to update')
    rows = session.execute(select(Item).where(Item.article_id.in_(ids))).scalars().all()
    for item in rows:
        for k, v in changes.items():
            setattr(item, k, v)
    session.commit()
    return {'updated': len(rows), 'fields': sorted(changes)}


@items_bp.post('/bulk-update-prices')
@require_permissions('ITEM.BULK')
@audit_log('ITEM.BULK_PRICES', entity='Warehouse',
           meta_builder=lambda data, rv, a, kw: dict(data.get('results') or {}))
def bulk_update_prices():
    data = request.json or {}
    items = data.get('items')
    if not isinstance(items, list):
        abort(400, description='Items array is required')
    warehouse_id = data.get('warehouse_id', data.get('warehouseId'))
    current_app.logger.info('bulk price update requested: %d rows', len(items))
    return reconcile_prices(items, warehouse_id)


@items_bp.post('/bulk-upload')
@require_permissions('ITEM.BULK')
@audit_log('ITEM.BULK_UPLOAD', entity='Item', meta_keys=['created', 'updated', 'invalid'])
def bulk_upload():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        abort(400, description='file required')
    locale = request.form.get('locale') or DEFAULT_LOCALE
    if not is_supported_locale(locale):
        abort(400, description='Invalid locale')
    rows = parse_upload(upload.filename, upload.read())
    if not rows:
        abort(400, description='No rows found in file')
    result = import_catalog_rows(rows, locale)
    current_app.logger.info('bulk upload %s: %s', upload.filename, {k: v for k, v in result.items() if k != 'errors'})
    return result


@items_bp.get('/export')
@require_permissions('ITEM.EXPORT')
def export_items():
    """CSV in upload template column order, one row per warehouse price."""
    session = get_db()
    locale = request.args.get('locale') or DEFAULT_LOCALE
    if not is_supported_locale(locale):
        abort(400, description='Invalid locale')
    records = []
    brands = {b.alias: b.name for b in session.execute(select(Brand)).scalars()}
    for item in session.execute(select(Item).order_by(Item.id.asc())).scalars():
        details = item.details_for(locale)
        cat_name, sub_name = category_names(session, item.category_slug)
        base = {
            'article_id': item.article_id,
            'category_name': cat_name,
            'subcategory_name': sub_name,
            'item_name': details.item_name if details else None,
            'description': details.description if details else None,
            'warranty_length': item.warranty_length,
            'sell_counter': item.sell_counter,
            'discount': details.discount if details else None,
            'popularity': details.popularity if details else None,
            'is_displayed': item.is_displayed,
            'brand_name': brands.get(item.brand_slug),
        }
        for p in item.prices or [None]:
            row = dict(base)
            if p is not None:
                row.update({
                    'warehouse_name': p.warehouse.name if p.warehouse else None,
                    'price': p.price,
                    'quantity': p.quantity,
                    'promotion_price': p.promotion_price,
                    'promo_end_date': _iso(p.promo_end_date),
                    'badge': p.badge,
                })
            records.append(row)
    buf = io.StringIO()
    pd.DataFrame(records, columns=XLSX_COLUMNS).to_csv(buf, index=False)
    resp = make_response(buf.getvalue())
    resp.headers['Content-Type'] = 'text/csv; charset=utf-8'
    resp.headers['Content-Disposition'] = f'attachment; filename=items-{datetime.now(timezone.utc):%Y%m%d}.csv'
    return resp


@items_bp.get('/<article_id>/price-history')
@require_permissions('ITEM.READ')
def price_history(article_id: str):
    session = get_db()
    item = _get_item_or_404(session, article_id)
    q = session.query(ItemPriceHistory).filter(ItemPriceHistory.item_id == item.id)
    q = apply_filters(q, {
        'warehouse_id': {'coerce': int, 'op': lambda qu, v: qu.filter(ItemPriceHistory.warehouse_id == v)},
    }, request.args)
    q = q.order_by(ItemPriceHistory.recorded_at.desc(), ItemPriceHistory.id.desc())
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    data = [{
        'id': h.id,
        'warehouse_id': h.warehouse_id,
        'item_price_id': h.item_price_id,
        'price': h.price,
        'quantity': h.quantity,
        'promotion_price': h.promotion_price,
        'promo_code': h.promo_code,
        'promo_start_date': _iso(h.promo_start_date),
        'promo_end_date': _iso(h.promo_end_date),
        'badge': h.badge,
        'recorded_at': _iso(h.recorded_at),
    } for h in rows]
    latest_ts = rows[0].recorded_at if rows else None
    resp, etag = make_cached_list_response(data, total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp
