from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from sqlalchemy import select
from storefront import get_db
from storefront.models.authz import User
from storefront.models.discount import DiscountLevel
from storefront.constants.permissions import ALL_ROLES, ROLE_USER, permissions_for_role
from storefront.config.locales import DEFAULT_LOCALE, is_supported_locale
from storefront.services.policy import build_claims, assert_not_demoting_last_admin
from storefront.utils.listing import apply_pagination, handle_conditional, make_cached_list_response
from storefront.utils.filters import apply_filters
from storefront.utils.sorting import apply_multi_sort
from storefront.decorators.audit import audit_log
from storefront.decorators.auth import require_permissions

auth_bp = Blueprint('auth', __name__)
users_bp = Blueprint('users', __name__)

MIN_PASSWORD_LENGTH = 8


def _user_json(u: User):
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'role': u.role,
        'phone_number': u.phone_number,
        'country_code': u.country_code,
        'company_name': u.company_name,
        'locale': u.locale,
        'is_active': u.is_active,
        'banned': u.banned,
        'discount_level_id': u.discount_levels[0].id if u.discount_levels else None,
        'created_at': u.created_at.isoformat() if u.created_at else None,
    }


def _issue_token(user: User) -> str:
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    return create_access_token(identity=str(user.id), additional_claims=build_claims(user))


@auth_bp.post('/register')
def register():
    data = request.json or {}
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not name or not email or not password:
        abort(400, description='name, email & password required')
    if '@' not in email:
        abort(400, description='email invalid')
    if len(password) < MIN_PASSWORD_LENGTH:
        abort(400, description=f'password must be at least {MIN_PASSWORD_LENGTH} characters')
    locale = data.get('locale') or DEFAULT_LOCALE
    if not is_supported_locale(locale):
        abort(400, description='Invalid locale')
    session = get_db()
    if session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        abort(409, description='email already registered')
    user = User(
        name=name,
        email=email,
        role=ROLE_USER,
        phone_number=data.get('phone_number'),
        country_code=data.get('country_code') or '+48',
        company_name=data.get('company_name'),
        locale=locale,
    )
    user.set_password(password)
    session.add(user)
    session.commit()
    return {'user': _user_json(user), 'access_token': _issue_token(user)}, 201


@auth_bp.post('/login')
def login():
    data = request.json or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.verify_password(password):
        abort(401, description='invalid credentials')
    if user.banned or not user.is_active:
        abort(403, description='account disabled')
    return {'access_token': _issue_token(user), 'user': _user_json(user)}


@auth_bp.get('/me')
@jwt_required()
def me():
    # Identity stored as string, cast back to int for DB lookup
    user_id = int(get_jwt_identity())
    session = get_db()
    user = session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        abort(404)
    body = _user_json(user)
    body['perms'] = permissions_for_role(user.role)
    return body


@users_bp.get('')
@require_permissions('ADMIN.USER.MANAGE')
def list_users():
    session = get_db()
    q = session.query(User)
    filter_specs = {
        'role': {'op': lambda qu, v: qu.filter(User.role == v), 'validate': lambda v: v in ALL_ROLES},
        'q': {'op': lambda qu, v: qu.filter(User.email.ilike(f'%{v}%') | User.name.ilike(f'%{v}%'))},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {'name': User.name, 'email': User.email, 'role': User.role, 'created_at': User.created_at, 'id': User.id}
    q = apply_multi_sort(q, request.args.get('sort'), allowed, User.id)
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = max((u.updated_at for u in rows if u.updated_at), default=None)
    resp, etag = make_cached_list_response([_user_json(u) for u in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


def _prefetch_user(user_id):
    u = get_db().get(User, user_id)
    return {'role': u.role} if u else {}


@users_bp.put('/<int:user_id>/role')
@require_permissions('ADMIN.USER.MANAGE')
@audit_log('USER.ROLE.SET', entity='User', entity_id_key='id', diff_keys=['role'],
           pre_fetch=lambda a, kw: _prefetch_user(kw.get('user_id')), meta_keys=['role'])
def set_user_role(user_id: int):
    data = request.json or {}
    role = data.get('role')
    if role not in ALL_ROLES:
        abort(400, description=f"role must be one of: {', '.join(ALL_ROLES)}")
    session = get_db()
    user = session.get(User, user_id)
    if not user:
        abort(404, description='User not found')
    assert_not_demoting_last_admin(session, user, role)
    user.role = role
    if 'banned' in data:
        user.banned = bool(data['banned'])
    session.commit()
    return _user_json(user)


def _prefetch_user_level(user_id):
    u = get_db().get(User, user_id)
    if not u:
        return {}
    return {'discount_level_id': u.discount_levels[0].id if u.discount_levels else None}


@users_bp.put('/<int:user_id>/discount-level')
@require_permissions('ADMIN.USER.MANAGE')
@audit_log('USER.DISCOUNT.SET', entity='User', entity_id_key='id', diff_keys=['discount_level_id'],
           pre_fetch=lambda a, kw: _prefetch_user_level(kw.get('user_id')))
def set_user_discount_level(user_id: int):
    """Assign a discount level to a user, replacing any previous one; null clears it."""
    data = request.json or {}
    session = get_db()
    user = session.get(User, user_id)
    if not user:
        abort(404, description='User not found')
    level_id = data.get('discount_level_id')
    if level_id is None:
        user.discount_levels = []
    else:
        try:
            level = session.get(DiscountLevel, int(level_id))
        except (TypeError, ValueError):
            abort(400, description='discount_level_id invalid')
        if not level:
            abort(404, description='Discount level not found')
        user.discount_levels = [level]
    session.commit()
    return _user_json(user)
