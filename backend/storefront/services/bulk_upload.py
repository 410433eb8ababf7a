"""Bulk price/inventory reconciliation.

Both entry points work row by row and commit after every row: a failing row is
rolled back and reported, earlier rows stay persisted. Whenever an existing
ItemPrice is overwritten its previous values are first copied to
ItemPriceHistory.
"""
from __future__ import annotations
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, or_

from storefront import get_db
from storefront.config.locales import DEFAULT_LOCALE
from storefront.models.catalog import Brand, Category, Subcategory
from storefront.models.item import Item, ItemDetails, ItemPrice, ItemPriceHistory, ALL_BADGES, BADGE_ABSENT
from storefront.models.warehouse import Warehouse
from storefront.services.bulk_validation import validate_bulk_items
from storefront.services.errors import BulkUploadError
from storefront.utils.slug import item_slug, placeholder_item_slug

log = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 10
UNCATEGORIZED_SLUG = 'uncategorized'

# accepted spellings for price upload payload keys
_PRICE_ROW_KEYS = {
    'article_id': ('article_id', 'articleId'),
    'price': ('price',),
    'quantity': ('quantity',),
    'badge': ('badge',),
    'brand': ('brand', 'brand_name', 'brandName'),
    'promo_code': ('promo_code', 'promoCode'),
    'promo_price': ('promo_price', 'promoPrice', 'promotion_price', 'promotionPrice'),
    'promo_start_date': ('promo_start_date', 'promoStartDate'),
    'promo_end_date': ('promo_end_date', 'promoEndDate'),
}


def _pick(row: Dict[str, Any], key: str):
    for alias in _PRICE_ROW_KEYS[key]:
        if row.get(alias) not in (None, ''):
            return row[alias]
    return None


def parse_datetime(value) -> Optional[datetime]:
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def archive_price(session, item: Item, price: ItemPrice) -> ItemPriceHistory:
    entry = ItemPriceHistory(
        item_id=item.id,
        warehouse_id=price.warehouse_id,
        item_price_id=price.id,
        price=price.price,
        quantity=price.quantity,
        promotion_price=price.promotion_price,
        promo_code=price.promo_code,
        promo_start_date=price.promo_start_date,
        promo_end_date=price.promo_end_date,
        badge=price.badge or BADGE_ABSENT,
        recorded_at=datetime.now(timezone.utc),
    )
    item.price_history.append(entry)
    return entry


def upsert_price(session, item: Item, warehouse_id: int, values: Dict[str, Any]) -> bool:
    """Write ``values`` onto the (item, warehouse) price. Returns True when an existing row was updated."""
    existing = next((p for p in item.prices if p.warehouse_id == warehouse_id), None)
    if existing is not None:
        archive_price(session, item, existing)
        for k, v in values.items():
            setattr(existing, k, v)
        existing.updated_at = datetime.now(timezone.utc)
        return True
    item.prices.append(ItemPrice(warehouse_id=warehouse_id, **values))
    return False


def _price_values(row: Dict[str, Any]) -> Dict[str, Any]:
    price = _pick(row, 'price')
    quantity = _pick(row, 'quantity')
    if price is None:
        raise ValueError('price is required')
    promo_price = _pick(row, 'promo_price')
    badge = _pick(row, 'badge') or BADGE_ABSENT
    if badge not in ALL_BADGES:
        raise ValueError(f'Invalid badge {badge}')
    return {
        'price': float(price),
        'quantity': int(float(quantity)) if quantity is not None else 0,
        'badge': badge,
        'promo_code': _pick(row, 'promo_code'),
        'promotion_price': float(promo_price) if promo_price is not None else None,
        'promo_start_date': parse_datetime(_pick(row, 'promo_start_date')),
        'promo_end_date': parse_datetime(_pick(row, 'promo_end_date')),
    }


def _find_brand(session, name: Optional[str]) -> Optional[Brand]:
    if not name:
        return None
    needle = str(name).strip().lower()
    return session.execute(
        select(Brand).where(or_(func.lower(Brand.name) == needle, func.lower(Brand.alias) == needle))
    ).scalars().first()


def _create_placeholder_item(session, article_id: str, brand_name: Optional[str]) -> Item:
    slug = placeholder_item_slug(article_id)
    brand = _find_brand(session, brand_name)
    item = Item(
        article_id=article_id,
        slug=slug,
        is_displayed=False,
        brand_slug=brand.alias if brand else None,
        category_slug=UNCATEGORIZED_SLUG,
    )
    item.details.append(ItemDetails(locale=DEFAULT_LOCALE, item_name=article_id, description=article_id))
    session.add(item)
    session.flush()
    return item


def reconcile_prices(rows: List[Dict[str, Any]], warehouse_id, session=None) -> Dict[str, Any]:
    session = session or get_db()
    if not rows:
        raise BulkUploadError('Items array is required')
    if warehouse_id in (None, ''):
        raise BulkUploadError('Warehouse ID is required')
    try:
        warehouse_id = int(warehouse_id)
    except (TypeError, ValueError):
        raise BulkUploadError('Warehouse not found')
    if session.get(Warehouse, warehouse_id) is None:
        raise BulkUploadError('Warehouse not found')

    started = time.monotonic()
    log.info('bulk price update started: %d rows, warehouse %s', len(rows), warehouse_id)
    updated = created = not_found = 0
    errors: List[str] = []
    for row in rows:
        article_id = _pick(row, 'article_id') if isinstance(row, dict) else None
        if not article_id:
            errors.append('Missing articleId in row')
            continue
        article_id = str(article_id).strip()
        try:
            item = session.execute(select(Item).where(Item.article_id == article_id)).scalars().first()
            values = _price_values(row)
            if item is None:
                item = _create_placeholder_item(session, article_id, _pick(row, 'brand'))
            if upsert_price(session, item, warehouse_id, values):
                updated += 1
            else:
                created += 1
            session.commit()
        except Exception as e:
            session.rollback()
            log.error('bulk price update failed for %s: %s', article_id, e)
            errors.append(f'Error processing {article_id}: {e}')
    log.info(
        'bulk price update finished: updated=%d created=%d not_found=%d errors=%d in %.3fs',
        updated, created, not_found, len(errors), time.monotonic() - started,
    )
    return {
        'message': f'Successfully processed {updated + created} items',
        'results': {
            'updated': updated,
            'created': created,
            'not_found': not_found,
            'errors': len(errors),
        },
        'details': errors[:MAX_REPORTED_ERRORS],
    }


def _resolve_references(session, row: Dict[str, Any], row_no: int):
    errs: List[str] = []
    cat_name = str(row['category_name']).strip()
    sub_name = str(row['subcategory_name']).strip()
    category = session.execute(
        select(Category).where(func.lower(Category.name) == cat_name.lower(), Category.is_visible.is_(True))
    ).scalars().first()
    subcategory = None
    if category is not None:
        subcategory = session.execute(
            select(Subcategory).where(
                func.lower(Subcategory.name) == sub_name.lower(),
                Subcategory.category_slug == category.slug,
                Subcategory.is_visible.is_(True),
            )
        ).scalars().first()
        if subcategory is None:
            errs.append(f"Row {row_no}: SubCategory '{sub_name}' does not exist in category '{cat_name}' or is not visible")
    else:
        errs.append(f"Row {row_no}: Category '{cat_name}' does not exist or is not visible")
        orphan = session.execute(
            select(Subcategory).where(func.lower(Subcategory.name) == sub_name.lower(), Subcategory.is_visible.is_(True))
        ).scalars().first()
        if orphan is not None:
            errs.append(f"Row {row_no}: SubCategory '{sub_name}' exists but does not belong to category '{cat_name}'")
        else:
            errs.append(f"Row {row_no}: SubCategory '{sub_name}' does not exist or is not visible")
    wh_name = str(row['warehouse_name']).strip().lower()
    warehouse = session.execute(
        select(Warehouse).where(
            or_(func.lower(Warehouse.name) == wh_name, func.lower(Warehouse.displayed_name) == wh_name),
            Warehouse.is_visible.is_(True),
        )
    ).scalars().first()
    if warehouse is None:
        errs.append(f"Row {row_no}: Warehouse '{row['warehouse_name']}' does not exist or is not visible")
    brand = None
    if row.get('brand_name'):
        brand = _find_brand(session, row['brand_name'])
        if brand is None or not brand.is_visible:
            errs.append(f"Row {row_no}: Brand '{row['brand_name']}' does not exist or is not visible")
    return category, subcategory, warehouse, brand, errs


def _upsert_details(session, item: Item, locale: str, row: Dict[str, Any]):
    details = next((d for d in item.details if d.locale == locale), None)
    if details is None:
        details = ItemDetails(locale=locale, item_name=row['item_name'])
        item.details.append(details)
    details.item_name = row['item_name']
    details.description = row.get('description') or ''
    if row.get('discount') is not None:
        details.discount = float(row['discount'])
    if row.get('popularity') is not None:
        details.popularity = int(row['popularity'])
    return details


def import_catalog_rows(rows: List[Dict[str, Any]], locale: str = DEFAULT_LOCALE, session=None) -> Dict[str, Any]:
    """Validate, resolve and upsert full catalog rows (item, details, warehouse price)."""
    session = session or get_db()
    if not rows:
        raise BulkUploadError('No rows to import')
    started = time.monotonic()
    validation = validate_bulk_items(rows)
    errors: List[str] = list(validation.errors)
    created = updated = 0
    row_numbers = {id(r): n for n, r in enumerate(rows, start=1)}
    for row in validation.valid_items:
        row_no = row_numbers.get(id(row), 0)
        category, subcategory, warehouse, brand, ref_errors = _resolve_references(session, row, row_no)
        if ref_errors:
            errors.extend(ref_errors)
            continue
        article_id = row['article_id']
        try:
            item = session.execute(select(Item).where(Item.article_id == article_id)).scalars().first()
            is_new = item is None
            if item is None:
                item = Item(article_id=article_id, slug=item_slug(brand.alias if brand else None, article_id))
                session.add(item)
            item.category_slug = subcategory.slug if subcategory else category.slug
            item.brand_slug = brand.alias if brand else item.brand_slug
            item.is_displayed = bool(row.get('is_displayed', False))
            if row.get('warranty_length') is not None:
                item.warranty_length = int(row['warranty_length'])
            if row.get('sell_counter') is not None:
                item.sell_counter = int(row['sell_counter'])
            session.flush()
            _upsert_details(session, item, locale, row)
            upsert_price(session, item, warehouse.id, {
                'price': float(row['price']),
                'quantity': int(row['quantity']),
                'promotion_price': float(row['promotion_price']) if row.get('promotion_price') is not None else None,
                'promo_code': row.get('promo_code') or None,
                'promo_start_date': parse_datetime(row.get('promo_start_date')),
                'promo_end_date': parse_datetime(row.get('promo_end_date')),
                'badge': row.get('badge') or BADGE_ABSENT,
            })
            session.commit()
            if is_new:
                created += 1
            else:
                updated += 1
        except Exception as e:
            session.rollback()
            log.error('catalog import failed for %s: %s', article_id, e)
            errors.append(f'Row {row_no}: Error processing {article_id}: {e}')
    log.info(
        'catalog import finished: %d rows, created=%d updated=%d errors=%d in %.3fs',
        len(rows), created, updated, len(errors), time.monotonic() - started,
    )
    return {
        'processed': created + updated,
        'created': created,
        'updated': updated,
        'invalid': len(rows) - created - updated,
        'errors': errors,
    }
