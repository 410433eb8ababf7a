from __future__ import annotations
import os
from flask import Blueprint, request, abort, current_app, send_from_directory
from sqlalchemy import select, func
from storefront import get_db
from storefront.config.locales import SUPPORTED_CURRENCIES, is_supported_locale
from storefront.models.catalog import Category, Subcategory, Brand
from storefront.models.item import Item, ItemPrice
from storefront.services.catalog import (
    category_scope,
    category_json,
    subcategory_json,
    brand_json,
    find_item,
    item_summary_json,
    item_detail_json,
    min_price_column,
    search_catalog,
)
from storefront.services.currency import get_rates
from storefront.services.pricing import detect_currency_from_locale
from storefront.services.uploads import EXTENSION_MIME_TYPES, resolve_public_file
from storefront.utils.listing import (
    apply_page_pagination,
    build_list_payload,
    handle_conditional,
    make_cached_list_response,
)
from storefront.utils.filters import apply_filters
from storefront.utils.sorting import apply_multi_sort

public_bp = Blueprint('public', __name__)


def _check_locale(locale: str):
    if not is_supported_locale(locale):
        abort(400, description='Invalid locale')


def _display_currency(locale: str) -> str:
    currency = (request.args.get('currency') or detect_currency_from_locale(locale)).upper()
    if currency not in SUPPORTED_CURRENCIES:
        abort(400, description='currency invalid')
    return currency


def _preferred_country() -> str:
    return (request.args.get('country') or current_app.config['PREFERRED_COUNTRY']).upper()


def _price_bound(raw, rate: float):
    """Convert a display-currency bound back to the base currency stored on ItemPrice."""
    return float(raw) / rate


def _item_filters(session, rates, currency):
    rate = rates.get(currency, 1.0) or 1.0
    return {
        'category': {'op': lambda qu, v: qu.filter(Item.category_slug.in_(category_scope(session, v)))},
        'brand': {'op': lambda qu, v: qu.filter(Item.brand_slug.in_([b for b in v.split(',') if b]))},
        'min_price': {
            'coerce': float,
            'validate': lambda v: v >= 0,
            'op': lambda qu, v: qu.filter(Item.prices.any(ItemPrice.price >= _price_bound(v, rate))),
        },
        'max_price': {
            'coerce': float,
            'validate': lambda v: v >= 0,
            'op': lambda qu, v: qu.filter(Item.prices.any(ItemPrice.price <= _price_bound(v, rate))),
        },
        'in_stock': {
            'coerce': lambda v: v.lower() in ('1', 'true', 'yes'),
            'op': lambda qu, v: qu.filter(Item.prices.any(ItemPrice.quantity > 0)) if v else qu,
        },
    }


ITEM_SORTS = {
    'created_at': Item.created_at,
    'popularity': Item.sell_counter,
    'article_id': Item.article_id,
    'id': Item.id,
}


@public_bp.get('/items/<locale>')
def list_items(locale: str):
    _check_locale(locale)
    currency = _display_currency(locale)
    session = get_db()
    rates = get_rates(session)
    q = session.query(Item).filter(Item.is_displayed.is_(True))
    q = apply_filters(q, _item_filters(session, rates, currency), request.args)
    allowed = dict(ITEM_SORTS, price=min_price_column())
    q = apply_multi_sort(q, request.args.get('sort') or '-created_at', allowed, Item.id)
    paged_q, total, limit, offset = apply_page_pagination(q)
    rows = paged_q.all()
    country = _preferred_country()
    data = [item_summary_json(i, locale, currency, rates, country) for i in rows]
    latest_ts = max((i.updated_at for i in rows if i.updated_at), default=None)
    resp, etag = make_cached_list_response(data, total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@public_bp.get('/items/<locale>/<slug>')
def get_item(locale: str, slug: str):
    _check_locale(locale)
    currency = _display_currency(locale)
    session = get_db()
    item = find_item(session, slug)
    if item is None or not item.is_displayed:
        abort(404, description='Item not found')
    return item_detail_json(item, locale, currency, get_rates(session), _preferred_country())


@public_bp.get('/categories/<locale>')
def list_categories(locale: str):
    _check_locale(locale)
    session = get_db()
    rows = session.execute(
        select(Category).where(Category.is_visible.is_(True)).order_by(Category.name.asc(), Category.id.asc())
    ).scalars().all()
    data = [category_json(c, locale) for c in rows]
    latest_ts = max((c.updated_at for c in rows if c.updated_at), default=None)
    resp, etag = make_cached_list_response(data, len(data), len(data), 0, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@public_bp.get('/category/<locale>/<slug>')
def get_category(locale: str, slug: str):
    """Category (or subcategory) header plus a page of its displayed items."""
    _check_locale(locale)
    currency = _display_currency(locale)
    session = get_db()
    category = session.execute(
        select(Category).where(Category.slug == slug, Category.is_visible.is_(True))
    ).scalar_one_or_none()
    if category is not None:
        header = category_json(category, locale)
        scope = category_scope(session, category.slug)
    else:
        sub = session.execute(
            select(Subcategory).where(Subcategory.slug == slug, Subcategory.is_visible.is_(True))
        ).scalar_one_or_none()
        if sub is None:
            abort(404, description='Category not found')
        header = subcategory_json(sub, locale)
        header['parent'] = category_json(sub.category, locale, include_subcategories=False)
        scope = [sub.slug]
    rates = get_rates(session)
    q = session.query(Item).filter(Item.is_displayed.is_(True), Item.category_slug.in_(scope))
    filters = _item_filters(session, rates, currency)
    filters.pop('category')
    q = apply_filters(q, filters, request.args)
    allowed = dict(ITEM_SORTS, price=min_price_column())
    q = apply_multi_sort(q, request.args.get('sort') or '-created_at', allowed, Item.id)
    paged_q, total, limit, offset = apply_page_pagination(q)
    country = _preferred_country()
    data = [item_summary_json(i, locale, currency, rates, country) for i in paged_q.all()]
    body = build_list_payload(data, total, limit, offset)
    body['category'] = header
    return body


@public_bp.get('/brands')
def list_brands():
    session = get_db()
    rows = session.execute(
        select(Brand).where(Brand.is_visible.is_(True)).order_by(func.lower(Brand.name).asc())
    ).scalars().all()
    data = [brand_json(b) for b in rows]
    latest_ts = max((b.updated_at for b in rows if b.updated_at), default=None)
    resp, etag = make_cached_list_response(data, len(data), len(data), 0, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@public_bp.get('/search')
def search():
    term = (request.args.get('q') or '').strip()
    if not term:
        return {'items': [], 'categories': [], 'subcategories': []}
    locale = request.args.get('locale') or current_app.config['DEFAULT_LOCALE']
    _check_locale(locale)
    currency = _display_currency(locale)
    session = get_db()
    found = search_catalog(term, locale, session=session)
    rates = get_rates(session)
    country = _preferred_country()
    found['items'] = [item_summary_json(i, locale, currency, rates, country) for i in found['items']]
    return found


@public_bp.get('/uploads/<path:relative>')
def serve_upload(relative: str):
    target = resolve_public_file(current_app.config['UPLOAD_DIR'], relative)
    if target is None:
        abort(400, description='Invalid path')
    if not os.path.isfile(target):
        abort(404, description='Image not found')
    ext = os.path.splitext(target)[1].lower()
    resp = send_from_directory(current_app.config['UPLOAD_DIR'], relative,
                               mimetype=EXTENSION_MIME_TYPES.get(ext, 'application/octet-stream'))
    resp.headers['Cache-Control'] = 'public, max-age=31536000, immutable'
    return resp
