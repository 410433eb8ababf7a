#!/usr/bin/env python
"""Idempotent seed script for reference data.

Creates warehouse countries, warehouses, default categories, currency rates
and an initial admin user when they are missing.

Usage:
    python backend/scripts/seed_reference.py            # seed normally
    python backend/scripts/seed_reference.py --dry-run  # run logic then rollback (no DB changes)
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, inspect

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from storefront import create_app, get_db  # type: ignore
from storefront.config.locales import BASE_CURRENCY, FALLBACK_RATES
from storefront.constants.permissions import ROLE_ADMIN
from storefront.models.authz import Base, User
from storefront.models.catalog import Category, CategoryTranslation
from storefront.models.currency import CurrencyExchange
from storefront.models.warehouse import Warehouse, WarehouseCountry
from storefront.services.currency import set_exchange_rate

COUNTRIES = [
    {'slug': 'poland', 'name': 'Poland', 'country_code': 'PL', 'phone_code': '+48'},
    {'slug': 'ukraine', 'name': 'Ukraine', 'country_code': 'UA', 'phone_code': '+380'},
    {'slug': 'spain', 'name': 'Spain', 'country_code': 'ES', 'phone_code': '+34'},
]

WAREHOUSES = [
    {'name': 'warehouse-1', 'displayed_name': 'Warsaw', 'country_slug': 'poland'},
    {'name': 'warehouse-2', 'displayed_name': 'Kyiv', 'country_slug': 'ukraine'},
    {'name': 'warehouse-3', 'displayed_name': 'Madrid', 'country_slug': 'spain'},
]

CATEGORIES = [
    {'slug': 'uncategorized', 'name': 'Uncategorized', 'translations': {'pl': 'Bez kategorii', 'en': 'Uncategorized'}},
    {'slug': 'laptops', 'name': 'Laptops', 'translations': {'pl': 'Laptopy', 'en': 'Laptops', 'ua': 'Ноутбуки', 'es': 'Portátiles'}},
    {'slug': 'smartphones', 'name': 'Smartphones', 'translations': {'pl': 'Smartfony', 'en': 'Smartphones', 'ua': 'Смартфони', 'es': 'Smartphones'}},
]


def ensure_countries(session):
    existing = {c.slug for c in session.execute(select(WarehouseCountry)).scalars().all()}
    created = 0
    for spec in COUNTRIES:
        if spec['slug'] not in existing:
            session.add(WarehouseCountry(**spec))
            created += 1
    session.flush()
    return created


def ensure_warehouses(session):
    existing = {w.name for w in session.execute(select(Warehouse)).scalars().all()}
    created = 0
    for spec in WAREHOUSES:
        if spec['name'] not in existing:
            session.add(Warehouse(is_visible=True, **spec))
            created += 1
    session.flush()
    return created


def ensure_categories(session):
    existing = {c.slug for c in session.execute(select(Category)).scalars().all()}
    created = 0
    for spec in CATEGORIES:
        if spec['slug'] in existing:
            continue
        category = Category(slug=spec['slug'], name=spec['name'], is_visible=spec['slug'] != 'uncategorized')
        for locale, name in spec['translations'].items():
            category.translations.append(CategoryTranslation(locale=locale, name=name))
        session.add(category)
        created += 1
    session.flush()
    return created


def ensure_rates(session):
    existing = {
        (r.from_currency, r.to_currency) for r in session.execute(select(CurrencyExchange)).scalars().all()
    }
    created = 0
    for currency, rate in FALLBACK_RATES.items():
        if currency == BASE_CURRENCY or (BASE_CURRENCY, currency) in existing:
            continue
        set_exchange_rate(BASE_CURRENCY, currency, rate, session=session)
        created += 1
    return created


def ensure_initial_admin(session):
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    existing_admin = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if existing_admin:
        return 0
    user = User(name='Admin', email=admin_email, role=ROLE_ADMIN)
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
    session.add(user)
    session.flush()
    print(f"[INFO] Created initial admin user {admin_email} with temporary password.")
    return 1


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed warehouses, categories, currency rates and an admin user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_reference.py\n  dry run: seed_reference.py --dry-run\n""")
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args(argv)


def main(argv=None, app=None):
    args = parse_args(argv)
    app = app or create_app()
    with app.app_context():
        session = get_db()
        engine = session.get_bind()
        if not inspect(engine).has_table('warehouses'):
            # Bootstrap schema; in real env prefer alembic upgrade
            Base.metadata.create_all(engine)
        try:
            counts = {
                'countries': ensure_countries(session),
                'warehouses': ensure_warehouses(session),
                'categories': ensure_categories(session),
                'rates': ensure_rates(session),
                'admins': ensure_initial_admin(session),
            }
            summary = ', '.join(f"{k}: {v}" for k, v in counts.items())
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Would create {summary}")
            else:
                session.commit()
                print(f"[DONE] Created {summary}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
