"""Central enum-like definitions to avoid typos in permission/service strings.
Role names mirror the ``User.role`` column; permissions are derived at login and
stored in the access token claims.
"""
from __future__ import annotations
from typing import List, Dict

SERVICES = ['CAT', 'ITEM', 'WH', 'CUR', 'ORDER', 'PAY', 'UPLOAD', 'CONTENT', 'DISC', 'ADMIN']

SERVICE_ACTIONS = {
    'CAT': ['READ', 'MANAGE'],
    'ITEM': ['READ', 'CREATE', 'MANAGE', 'DELETE', 'BULK', 'EXPORT'],
    'WH': ['READ', 'MANAGE'],
    'CUR': ['MANAGE'],
    'ORDER': ['CREATE', 'READ_OWN', 'READ', 'MANAGE'],
    'PAY': ['READ', 'MANAGE', 'REFUND'],
    'UPLOAD': ['READ', 'MANAGE'],
    'CONTENT': ['READ', 'MANAGE'],
    'DISC': ['READ', 'MANAGE'],
    'ADMIN': ['USER.MANAGE', 'DASHBOARD.READ'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            codes.append(f"{svc}.{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

ROLE_USER = 'user'
ROLE_EMPLOYEE = 'employee'
ROLE_ADMIN = 'admin'
ALL_ROLES = (ROLE_USER, ROLE_EMPLOYEE, ROLE_ADMIN)

ROLE_PRESETS: Dict[str, List[str]] = {
    ROLE_USER: ['ORDER.CREATE', 'ORDER.READ_OWN'],
    # Employees run the shop floor: catalog + stock + orders, no user administration
    ROLE_EMPLOYEE: [
        'ORDER.CREATE', 'ORDER.READ_OWN', 'ORDER.READ', 'ORDER.MANAGE',
        'CAT.READ', 'ITEM.READ', 'ITEM.MANAGE', 'WH.READ', 'UPLOAD.READ', 'CONTENT.READ',
    ],
    ROLE_ADMIN: ['*'],
}


def permissions_for_role(role: str) -> List[str]:
    codes = ROLE_PRESETS.get(role, [])
    if '*' in codes:
        return list(ALL_PERMISSION_CODES)
    return sorted(codes)
