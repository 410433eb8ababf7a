from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select
from storefront import get_db
from storefront.config.locales import is_supported_locale
from storefront.decorators.auth import require_permissions
from storefront.decorators.audit import audit_log
from storefront.models.content import PageContent, Banner
from storefront.utils.listing import apply_pagination, handle_conditional, make_cached_list_response
from storefront.utils.filters import apply_filters
from storefront.utils.slug import slugify

content_bp = Blueprint('content', __name__)
public_content_bp = Blueprint('public_content', __name__)

EDGE_CACHE_CONTROL = 'public, max-age=0, s-maxage=3600, stale-while-revalidate=300'


def page_json(p: PageContent):
    return {
        'id': p.id,
        'slug': p.slug,
        'locale': p.locale,
        'title': p.title,
        'content': p.content,
        'is_published': p.is_published,
        'updated_at': p.updated_at.isoformat() if p.updated_at else None,
    }


def banner_json(b: Banner):
    return {
        'id': b.id,
        'title': b.title,
        'image_url': b.image_url,
        'link_url': b.link_url,
        'position': b.position,
        'device': b.device,
        'locale': b.locale,
        'sort_order': b.sort_order,
        'is_active': b.is_active,
        'updated_at': b.updated_at.isoformat() if b.updated_at else None,
    }


def _cached_list(rows, data, total, limit, offset):
    latest_ts = max((r.updated_at for r in rows if r.updated_at), default=None)
    resp, etag = make_cached_list_response(data, total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


def _parse_bool(v: str) -> bool:
    return v.lower() in ('1', 'true', 'yes')


def _check_locale(locale):
    if not locale or not is_supported_locale(locale):
        abort(400, description='Invalid locale')


# --- Pages ---

@content_bp.get('/pages')
@require_permissions('CONTENT.READ')
def list_pages():
    session = get_db()
    q = session.query(PageContent)
    q = apply_filters(q, {
        'slug': {'op': lambda qu, v: qu.filter(PageContent.slug == v)},
        'locale': {'op': lambda qu, v: qu.filter(PageContent.locale == v), 'validate': is_supported_locale},
    }, request.args)
    paged_q, total, limit, offset = apply_pagination(q.order_by(PageContent.slug.asc(), PageContent.locale.asc()))
    rows = paged_q.all()
    return _cached_list(rows, [page_json(p) for p in rows], total, limit, offset)


@content_bp.post('/pages')
@require_permissions('CONTENT.MANAGE')
@audit_log('PAGE.CREATE', entity='Page', entity_id_key='id', meta_keys=['slug', 'locale'])
def create_page():
    session = get_db()
    data = request.json or {}
    slug = slugify(data.get('slug') or '')
    if not slug or not data.get('locale') or not data.get('title') or not data.get('content'):
        abort(400, description='Missing required fields: slug, locale, title, content')
    _check_locale(data['locale'])
    exists = session.execute(
        select(PageContent.id).where(PageContent.slug == slug, PageContent.locale == data['locale'])
    ).first()
    if exists:
        abort(409, description='Page with this slug and locale already exists')
    p = PageContent(slug=slug, locale=data['locale'], title=data['title'], content=data['content'],
                    is_published=bool(data.get('is_published', True)))
    session.add(p)
    session.commit()
    return page_json(p), 201


def _get_page_or_404(session, page_id):
    p = session.get(PageContent, page_id)
    if not p:
        abort(404, description='Page not found')
    return p


@content_bp.get('/pages/<int:page_id>')
@require_permissions('CONTENT.READ')
def get_page(page_id: int):
    return page_json(_get_page_or_404(get_db(), page_id))


@content_bp.put('/pages/<int:page_id>')
@require_permissions('CONTENT.MANAGE')
@audit_log('PAGE.UPDATE', entity='Page', entity_id_key='id', meta_keys=['slug', 'locale', 'is_published'])
def update_page(page_id: int):
    session = get_db()
    p = _get_page_or_404(session, page_id)
    data = request.json or {}
    if not data.get('title') and not data.get('content') and 'is_published' not in data:
        abort(400, description='At least one field (title, content, is_published) must be provided')
    if data.get('title'):
        p.title = data['title']
    if data.get('content'):
        p.content = data['content']
    if 'is_published' in data:
        p.is_published = bool(data['is_published'])
    session.commit()
    return page_json(p)


@content_bp.delete('/pages/<int:page_id>')
@require_permissions('CONTENT.MANAGE')
@audit_log('PAGE.DELETE', entity='Page', entity_id_arg='page_id')
def delete_page(page_id: int):
    session = get_db()
    session.delete(_get_page_or_404(session, page_id))
    session.commit()
    return {'deleted': page_id}


# --- Banners ---

def _apply_banner_fields(b: Banner, data: dict):
    if 'position' in data:
        if data['position'] not in Banner.ALL_POSITIONS:
            abort(400, description=f"position must be one of: {', '.join(Banner.ALL_POSITIONS)}")
        b.position = data['position']
    if 'device' in data:
        if data['device'] not in Banner.ALL_DEVICES:
            abort(400, description=f"device must be one of: {', '.join(Banner.ALL_DEVICES)}")
        b.device = data['device']
    if 'locale' in data:
        _check_locale(data['locale'])
        b.locale = data['locale']
    if 'sort_order' in data:
        try:
            b.sort_order = int(data['sort_order'] or 0)
        except (TypeError, ValueError):
            abort(400, description='sort_order invalid')
    for key in ('title', 'link_url'):
        if key in data:
            setattr(b, key, data[key] or None)
    if data.get('image_url'):
        b.image_url = data['image_url']
    if 'is_active' in data:
        b.is_active = bool(data['is_active'])


def _banner_filters():
    return {
        'position': {'op': lambda qu, v: qu.filter(Banner.position == v), 'validate': lambda v: v in Banner.ALL_POSITIONS},
        'device': {'op': lambda qu, v: qu.filter(Banner.device == v), 'validate': lambda v: v in Banner.ALL_DEVICES},
        'locale': {'op': lambda qu, v: qu.filter(Banner.locale == v), 'validate': is_supported_locale},
    }


def _banner_order(q):
    return q.order_by(Banner.sort_order.asc(), Banner.updated_at.desc(), Banner.id.asc())


@content_bp.get('/banners')
@require_permissions('CONTENT.READ')
def list_banners():
    session = get_db()
    specs = _banner_filters()
    specs['is_active'] = {'op': lambda qu, v: qu.filter(Banner.is_active.is_(_parse_bool(v)))}
    q = apply_filters(session.query(Banner), specs, request.args)
    paged_q, total, limit, offset = apply_pagination(_banner_order(q))
    rows = paged_q.all()
    return _cached_list(rows, [banner_json(b) for b in rows], total, limit, offset)


@content_bp.post('/banners')
@require_permissions('CONTENT.MANAGE')
@audit_log('BANNER.CREATE', entity='Banner', entity_id_key='id', meta_keys=['position', 'device', 'locale'])
def create_banner():
    session = get_db()
    data = request.json or {}
    if not data.get('image_url') or not data.get('position') or not data.get('locale'):
        abort(400, description='Missing required fields: image_url, position, locale')
    b = Banner(device=Banner.DEVICE_DESKTOP, sort_order=0, is_active=True)
    _apply_banner_fields(b, data)
    session.add(b)
    session.commit()
    return banner_json(b), 201


def _get_banner_or_404(session, banner_id):
    b = session.get(Banner, banner_id)
    if not b:
        abort(404, description='Banner not found')
    return b


@content_bp.get('/banners/<int:banner_id>')
@require_permissions('CONTENT.READ')
def get_banner(banner_id: int):
    return banner_json(_get_banner_or_404(get_db(), banner_id))


@content_bp.put('/banners/<int:banner_id>')
@require_permissions('CONTENT.MANAGE')
@audit_log('BANNER.UPDATE', entity='Banner', entity_id_key='id', meta_keys=['position', 'is_active'])
def update_banner(banner_id: int):
    session = get_db()
    b = _get_banner_or_404(session, banner_id)
    _apply_banner_fields(b, request.json or {})
    session.commit()
    return banner_json(b)


@content_bp.delete('/banners/<int:banner_id>')
@require_permissions('CONTENT.MANAGE')
@audit_log('BANNER.DELETE', entity='Banner', entity_id_arg='banner_id')
def delete_banner(banner_id: int):
    session = get_db()
    session.delete(_get_banner_or_404(session, banner_id))
    session.commit()
    return {'deleted': banner_id}


# --- Public ---

@public_content_bp.get('/pages/<locale>/<slug>')
def public_page(locale: str, slug: str):
    _check_locale(locale)
    p = get_db().execute(
        select(PageContent).where(
            PageContent.slug == slug,
            PageContent.locale == locale,
            PageContent.is_published.is_(True),
        )
    ).scalar_one_or_none()
    if not p:
        abort(404, description='Page not found')
    return page_json(p), 200, {'Cache-Control': EDGE_CACHE_CONTROL}


@public_content_bp.get('/banners')
def public_banners():
    q = get_db().query(Banner).filter(Banner.is_active.is_(True))
    q = apply_filters(q, _banner_filters(), request.args)
    rows = _banner_order(q).all()
    resp = _cached_list(rows, [banner_json(b) for b in rows], len(rows), len(rows), 0)
    resp.headers['Cache-Control'] = EDGE_CACHE_CONTROL
    return resp
