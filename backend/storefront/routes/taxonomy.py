from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select
from storefront import get_db
from storefront.config.locales import DEFAULT_LOCALE, is_supported_locale
from storefront.decorators.auth import require_permissions
from storefront.decorators.audit import audit_log
from storefront.models.catalog import Category, CategoryTranslation, Subcategory, SubcategoryTranslation, Brand
from storefront.models.item import Item
from storefront.services.catalog import category_json, subcategory_json, brand_json
from storefront.utils.listing import apply_pagination, handle_conditional, make_cached_list_response
from storefront.utils.filters import apply_filters
from storefront.utils.slug import slugify

taxonomy_bp = Blueprint('taxonomy', __name__)


def _locale():
    locale = request.args.get('locale') or DEFAULT_LOCALE
    if not is_supported_locale(locale):
        abort(400, description='Invalid locale')
    return locale


def _translations_json(obj):
    return {t.locale: t.name for t in obj.translations}


def _apply_translations(obj, payload, factory):
    if payload is None:
        return
    if not isinstance(payload, dict):
        abort(400, description='translations must be an object of locale -> name')
    for locale, name in payload.items():
        if not is_supported_locale(locale):
            abort(400, description='Invalid locale')
        existing = next((t for t in obj.translations if t.locale == locale), None)
        if not name:
            if existing is not None:
                obj.translations.remove(existing)
            continue
        if existing is None:
            obj.translations.append(factory(locale=locale, name=name))
        else:
            existing.name = name


def _cached_list(rows, data, total, limit, offset):
    latest_ts = max((r.updated_at for r in rows if getattr(r, 'updated_at', None)), default=None)
    resp, etag = make_cached_list_response(data, total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


def _admin_category_json(c: Category, locale: str):
    body = category_json(c, locale, include_subcategories=False)
    body['translations'] = _translations_json(c)
    body['subcategories'] = [_admin_subcategory_json(s, locale) for s in c.subcategories]
    return body


def _admin_subcategory_json(s: Subcategory, locale: str):
    body = subcategory_json(s, locale)
    body['translations'] = _translations_json(s)
    return body


def _new_slug(data, name_key='name', slug_key='slug'):
    slug = slugify(data.get(slug_key) or data.get(name_key) or '')
    if not slug:
        abort(400, description=f'{name_key} required')
    return slug


def _slug_taken(session, slug: str) -> bool:
    # categories and subcategories share Item.category_slug, so slugs are unique across both
    return (
        session.execute(select(Category.id).where(Category.slug == slug)).first() is not None
        or session.execute(select(Subcategory.id).where(Subcategory.slug == slug)).first() is not None
    )


# --- Categories ---

@taxonomy_bp.get('/categories')
@require_permissions('CAT.READ')
def list_categories():
    session = get_db()
    locale = _locale()
    q = session.query(Category)
    q = apply_filters(q, {
        'q': {'op': lambda qu, v: qu.filter(Category.name.ilike(f'%{v}%'))},
    }, request.args)
    paged_q, total, limit, offset = apply_pagination(q.order_by(Category.name.asc(), Category.id.asc()))
    rows = paged_q.all()
    return _cached_list(rows, [_admin_category_json(c, locale) for c in rows], total, limit, offset)


@taxonomy_bp.post('/categories')
@require_permissions('CAT.MANAGE')
@audit_log('CATEGORY.CREATE', entity='Category', entity_id_key='slug', meta_keys=['name'])
def create_category():
    session = get_db()
    data = request.json or {}
    if not data.get('name'):
        abort(400, description='name required')
    slug = _new_slug(data)
    if _slug_taken(session, slug):
        abort(409, description='slug already exists')
    c = Category(name=data['name'], slug=slug, is_visible=bool(data.get('is_visible', True)),
                 image_link=data.get('image_link'))
    _apply_translations(c, data.get('translations'), CategoryTranslation)
    session.add(c)
    session.commit()
    return _admin_category_json(c, _locale()), 201


def _get_category_or_404(session, slug):
    c = session.execute(select(Category).where(Category.slug == slug)).scalar_one_or_none()
    if not c:
        abort(404, description='Category not found')
    return c


@taxonomy_bp.get('/categories/<slug>')
@require_permissions('CAT.READ')
def get_category(slug: str):
    return _admin_category_json(_get_category_or_404(get_db(), slug), _locale())


@taxonomy_bp.put('/categories/<slug>')
@require_permissions('CAT.MANAGE')
@audit_log('CATEGORY.UPDATE', entity='Category', entity_id_key='slug', meta_keys=['name', 'is_visible'])
def update_category(slug: str):
    session = get_db()
    c = _get_category_or_404(session, slug)
    data = request.json or {}
    if 'name' in data:
        if not data['name']:
            abort(400, description='name cannot be empty')
        c.name = data['name']
    if 'is_visible' in data:
        c.is_visible = bool(data['is_visible'])
    if 'image_link' in data:
        c.image_link = data['image_link']
    _apply_translations(c, data.get('translations'), CategoryTranslation)
    session.commit()
    return _admin_category_json(c, _locale())


@taxonomy_bp.delete('/categories/<slug>')
@require_permissions('CAT.MANAGE')
@audit_log('CATEGORY.DELETE', entity='Category', entity_id_arg='slug')
def delete_category(slug: str):
    session = get_db()
    c = _get_category_or_404(session, slug)
    scope = [c.slug] + [s.slug for s in c.subcategories]
    if session.execute(select(Item.id).where(Item.category_slug.in_(scope))).first():
        abort(409, description='Category has items')
    session.delete(c)
    session.commit()
    return {'deleted': True, 'slug': slug}


# --- Subcategories ---

@taxonomy_bp.get('/subcategories')
@require_permissions('CAT.READ')
def list_subcategories():
    session = get_db()
    locale = _locale()
    q = session.query(Subcategory)
    q = apply_filters(q, {
        'category': {'op': lambda qu, v: qu.filter(Subcategory.category_slug == v)},
        'q': {'op': lambda qu, v: qu.filter(Subcategory.name.ilike(f'%{v}%'))},
    }, request.args)
    paged_q, total, limit, offset = apply_pagination(q.order_by(Subcategory.name.asc(), Subcategory.id.asc()))
    rows = paged_q.all()
    return _cached_list(rows, [_admin_subcategory_json(s, locale) for s in rows], total, limit, offset)


@taxonomy_bp.post('/subcategories')
@require_permissions('CAT.MANAGE')
@audit_log('SUBCATEGORY.CREATE', entity='Subcategory', entity_id_key='slug', meta_keys=['name', 'category_slug'])
def create_subcategory():
    session = get_db()
    data = request.json or {}
    if not data.get('name') or not data.get('category_slug'):
        abort(400, description='name and category_slug required')
    parent = _get_category_or_404(session, data['category_slug'])
    slug = _new_slug(data)
    if _slug_taken(session, slug):
        abort(409, description='slug already exists')
    s = Subcategory(name=data['name'], slug=slug, category_slug=parent.slug,
                    is_visible=bool(data.get('is_visible', True)))
    _apply_translations(s, data.get('translations'), SubcategoryTranslation)
    parent.subcategories.append(s)
    session.commit()
    return _admin_subcategory_json(s, _locale()), 201


def _get_subcategory_or_404(session, slug):
    s = session.execute(select(Subcategory).where(Subcategory.slug == slug)).scalar_one_or_none()
    if not s:
        abort(404, description='Subcategory not found')
    return s


@taxonomy_bp.get('/subcategories/<slug>')
@require_permissions('CAT.READ')
def get_subcategory(slug: str):
    return _admin_subcategory_json(_get_subcategory_or_404(get_db(), slug), _locale())


@taxonomy_bp.put('/subcategories/<slug>')
@require_permissions('CAT.MANAGE')
@audit_log('SUBCATEGORY.UPDATE', entity='Subcategory', entity_id_key='slug', meta_keys=['name', 'category_slug'])
def update_subcategory(slug: str):
    session = get_db()
    s = _get_subcategory_or_404(session, slug)
    data = request.json or {}
    if 'name' in data:
        if not data['name']:
            abort(400, description='name cannot be empty')
        s.name = data['name']
    if 'is_visible' in data:
        s.is_visible = bool(data['is_visible'])
    if data.get('category_slug') and data['category_slug'] != s.category_slug:
        s.category = _get_category_or_404(session, data['category_slug'])
    _apply_translations(s, data.get('translations'), SubcategoryTranslation)
    session.commit()
    return _admin_subcategory_json(s, _locale())


@taxonomy_bp.delete('/subcategories/<slug>')
@require_permissions('CAT.MANAGE')
@audit_log('SUBCATEGORY.DELETE', entity='Subcategory', entity_id_arg='slug')
def delete_subcategory(slug: str):
    session = get_db()
    s = _get_subcategory_or_404(session, slug)
    if session.execute(select(Item.id).where(Item.category_slug == s.slug)).first():
        abort(409, description='Subcategory has items')
    s.category.subcategories.remove(s)
    session.commit()
    return {'deleted': True, 'slug': slug}


# --- Brands ---

@taxonomy_bp.get('/brands')
@require_permissions('CAT.READ')
def list_brands():
    session = get_db()
    q = session.query(Brand)
    q = apply_filters(q, {
        'q': {'op': lambda qu, v: qu.filter(Brand.name.ilike(f'%{v}%'))},
    }, request.args)
    paged_q, total, limit, offset = apply_pagination(q.order_by(Brand.name.asc(), Brand.id.asc()))
    rows = paged_q.all()
    return _cached_list(rows, [brand_json(b) for b in rows], total, limit, offset)


@taxonomy_bp.post('/brands')
@require_permissions('CAT.MANAGE')
@audit_log('BRAND.CREATE', entity='Brand', entity_id_key='alias', meta_keys=['name'])
def create_brand():
    session = get_db()
    data = request.json or {}
    if not data.get('name'):
        abort(400, description='name required')
    alias = _new_slug(data, slug_key='alias')
    if session.execute(select(Brand).where(Brand.alias == alias)).scalar_one_or_none():
        abort(409, description='alias already exists')
    b = Brand(name=data['name'], alias=alias, image_link=data.get('image_link') or '',
              is_visible=bool(data.get('is_visible', True)))
    session.add(b)
    session.commit()
    return brand_json(b), 201


def _get_brand_or_404(session, alias):
    b = session.execute(select(Brand).where(Brand.alias == alias)).scalar_one_or_none()
    if not b:
        abort(404, description='Brand not found')
    return b


@taxonomy_bp.get('/brands/<alias>')
@require_permissions('CAT.READ')
def get_brand(alias: str):
    return brand_json(_get_brand_or_404(get_db(), alias))


@taxonomy_bp.put('/brands/<alias>')
@require_permissions('CAT.MANAGE')
@audit_log('BRAND.UPDATE', entity='Brand', entity_id_key='alias', meta_keys=['name', 'is_visible'])
def update_brand(alias: str):
    session = get_db()
    b = _get_brand_or_404(session, alias)
    data = request.json or {}
    if 'name' in data:
        if not data['name']:
            abort(400, description='name cannot be empty')
        b.name = data['name']
    if 'image_link' in data:
        b.image_link = data['image_link'] or ''
    if 'is_visible' in data:
        b.is_visible = bool(data['is_visible'])
    session.commit()
    return brand_json(b)


@taxonomy_bp.delete('/brands/<alias>')
@require_permissions('CAT.MANAGE')
@audit_log('BRAND.DELETE', entity='Brand', entity_id_arg='alias')
def delete_brand(alias: str):
    session = get_db()
    b = _get_brand_or_404(session, alias)
    for item in session.execute(select(Item).where(Item.brand_slug == b.alias)).scalars():
        item.brand_slug = None
    session.delete(b)
    session.commit()
    return {'deleted': True, 'alias': alias}
