from __future__ import annotations
from flask import Blueprint, request, abort
from sqlalchemy import select, func
from storefront import get_db
from storefront.decorators.auth import require_permissions
from storefront.decorators.audit import audit_log
from storefront.models.discount import DiscountLevel, discount_level_users
from storefront.utils.listing import handle_conditional, make_cached_list_response

discounts_bp = Blueprint('discounts', __name__)


def _user_counts(session):
    rows = session.execute(
        select(discount_level_users.c.discount_level_id, func.count(discount_level_users.c.user_id))
        .group_by(discount_level_users.c.discount_level_id)
    ).all()
    return dict(rows)


def discount_level_json(d: DiscountLevel, user_count: int = 0):
    return {
        'id': d.id,
        'level': d.level,
        'discount_percentage': d.discount_percentage,
        'user_count': user_count,
        'created_at': d.created_at.isoformat() if d.created_at else None,
        'updated_at': d.updated_at.isoformat() if d.updated_at else None,
    }


def _parse_level(raw) -> int:
    try:
        level = int(raw)
    except (TypeError, ValueError):
        level = 0
    if level < 1:
        abort(400, description='Level must be a positive number')
    return level


def _parse_percentage(raw) -> float:
    try:
        pct = float(raw)
    except (TypeError, ValueError):
        pct = -1.0
    if not 0 <= pct <= 100:
        abort(400, description='Discount percentage must be between 0 and 100')
    return pct


def _ensure_level_free(session, level: int, exclude_id=None):
    q = select(DiscountLevel.id).where(DiscountLevel.level == level)
    if exclude_id is not None:
        q = q.where(DiscountLevel.id != exclude_id)
    if session.execute(q).first():
        abort(409, description='A discount level with this number already exists')


def _get_level_or_404(session, level_id):
    d = session.get(DiscountLevel, level_id)
    if not d:
        abort(404, description='Discount level not found')
    return d


@discounts_bp.get('')
@require_permissions('DISC.READ')
def list_discount_levels():
    session = get_db()
    rows = session.execute(select(DiscountLevel).order_by(DiscountLevel.level.asc())).scalars().all()
    counts = _user_counts(session)
    data = [discount_level_json(d, counts.get(d.id, 0)) for d in rows]
    latest_ts = max((d.updated_at for d in rows if d.updated_at), default=None)
    resp, etag = make_cached_list_response(data, len(data), len(data), 0, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@discounts_bp.post('')
@require_permissions('DISC.MANAGE')
@audit_log('DISCOUNT.CREATE', entity='DiscountLevel', entity_id_key='id', meta_keys=['level', 'discount_percentage'])
def create_discount_level():
    session = get_db()
    data = request.json or {}
    level = _parse_level(data.get('level'))
    pct = _parse_percentage(data.get('discount_percentage'))
    _ensure_level_free(session, level)
    d = DiscountLevel(level=level, discount_percentage=pct)
    session.add(d)
    session.commit()
    return discount_level_json(d), 201


@discounts_bp.get('/<int:level_id>')
@require_permissions('DISC.READ')
def get_discount_level(level_id: int):
    session = get_db()
    d = _get_level_or_404(session, level_id)
    return discount_level_json(d, _user_counts(session).get(d.id, 0))


def _prefetch_level(level_id):
    d = get_db().get(DiscountLevel, level_id)
    return {'level': d.level, 'discount_percentage': d.discount_percentage} if d else {}


@discounts_bp.put('/<int:level_id>')
@require_permissions('DISC.MANAGE')
@audit_log('DISCOUNT.UPDATE', entity='DiscountLevel', entity_id_key='id',
           diff_keys=['level', 'discount_percentage'], pre_fetch=lambda a, kw: _prefetch_level(kw.get('level_id')))
def update_discount_level(level_id: int):
    session = get_db()
    d = _get_level_or_404(session, level_id)
    data = request.json or {}
    if 'level' in data:
        level = _parse_level(data['level'])
        _ensure_level_free(session, level, exclude_id=d.id)
        d.level = level
    if 'discount_percentage' in data:
        d.discount_percentage = _parse_percentage(data['discount_percentage'])
    session.commit()
    return discount_level_json(d, _user_counts(session).get(d.id, 0))


@discounts_bp.delete('/<int:level_id>')
@require_permissions('DISC.MANAGE')
@audit_log('DISCOUNT.DELETE', entity='DiscountLevel', entity_id_arg='level_id')
def delete_discount_level(level_id: int):
    session = get_db()
    d = _get_level_or_404(session, level_id)
    # assignments go with the level
    d.users = []
    session.delete(d)
    session.commit()
    return {'deleted': level_id}
