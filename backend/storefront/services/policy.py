from __future__ import annotations
from typing import Set
from flask import abort
from flask_jwt_extended import get_jwt, get_jwt_identity

from storefront.constants.permissions import ROLE_ADMIN, permissions_for_role
from storefront.models.authz import User


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def has_permissions(*codes: str) -> bool:
    perms = current_permissions()
    return all(c in perms for c in codes)


def current_user_id() -> int:
    return int(get_jwt_identity())


def build_claims(user: User):
    """Extra JWT claims minted at login; permissions follow the user's role preset."""
    return {
        'role': user.role,
        'perms': permissions_for_role(user.role),
    }


def assert_owns_record(owner_user_id: int):
    """Owners may read their own records; ORDER.READ holders may read any."""
    if current_user_id() == owner_user_id or has_permissions('ORDER.READ'):
        return
    abort(403, description='Record ownership required')


def assert_not_demoting_last_admin(session, target: User, new_role: str):
    if target.role != ROLE_ADMIN or new_role == ROLE_ADMIN:
        return
    admins = session.query(User).filter(User.role == ROLE_ADMIN).count()
    if admins <= 1:
        abort(400, description='Cannot remove last admin')
