"""Catalog lookups and JSON shapes shared by the public and admin routes."""
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select, func, or_

from storefront import get_db
from storefront.models.catalog import Category, Subcategory, Brand
from storefront.models.item import Item, ItemDetails, ItemPrice
from storefront.services.pricing import resolve_item_price, available_warehouses


def category_scope(session, slug: str) -> List[str]:
    """Slugs an item may carry to belong to ``slug``: the slug itself plus its subcategories."""
    subs = session.execute(select(Subcategory.slug).where(Subcategory.category_slug == slug)).scalars().all()
    return [slug] + list(subs)


def min_price_column():
    return (
        select(func.min(ItemPrice.price))
        .where(ItemPrice.item_slug == Item.slug)
        .correlate(Item)
        .scalar_subquery()
    )


def find_item(session, key: str) -> Optional[Item]:
    """Look an item up by slug, falling back to article id."""
    item = session.execute(select(Item).where(Item.slug == key)).scalar_one_or_none()
    if item is None:
        item = session.execute(select(Item).where(Item.article_id == key)).scalars().first()
    return item


def category_json(c: Category, locale: str, include_subcategories: bool = True) -> Dict[str, Any]:
    body = {
        'id': c.id,
        'slug': c.slug,
        'name': c.name_for(locale),
        'image_link': c.image_link,
        'is_visible': c.is_visible,
    }
    if include_subcategories:
        body['subcategories'] = [
            subcategory_json(s, locale) for s in sorted(c.subcategories, key=lambda s: s.name) if s.is_visible
        ]
    return body


def subcategory_json(s: Subcategory, locale: str) -> Dict[str, Any]:
    return {
        'id': s.id,
        'slug': s.slug,
        'name': s.name_for(locale),
        'category_slug': s.category_slug,
        'is_visible': s.is_visible,
    }


def brand_json(b: Brand) -> Dict[str, Any]:
    return {
        'id': b.id,
        'name': b.name,
        'alias': b.alias,
        'image_link': b.image_link,
        'is_visible': b.is_visible,
    }


def item_summary_json(
    item: Item,
    locale: str,
    currency: str,
    rates: Mapping[str, float],
    preferred_country: str,
) -> Dict[str, Any]:
    details = item.details_for(locale)
    return {
        'id': item.id,
        'article_id': item.article_id,
        'slug': item.slug,
        'name': details.item_name if details else item.article_id,
        'brand_slug': item.brand_slug,
        'category_slug': item.category_slug,
        'image_links': item.image_links or [],
        'sell_counter': item.sell_counter,
        'price': resolve_item_price(item.prices, preferred_country, currency, rates),
    }


def item_detail_json(
    item: Item,
    locale: str,
    currency: str,
    rates: Mapping[str, float],
    preferred_country: str,
) -> Dict[str, Any]:
    body = item_summary_json(item, locale, currency, rates, preferred_country)
    details = item.details_for(locale)
    body.update({
        'locale': details.locale if details else locale,
        'description': details.description if details else '',
        'specifications': details.specifications if details else None,
        'seller': details.seller if details else None,
        'meta_description': details.meta_description if details else None,
        'meta_keywords': details.meta_keywords if details else None,
        'warranty_length': item.warranty_length,
        'warranty_type': item.warranty_type,
        'brand': brand_json(item.brand) if item.brand else None,
        'linked_items': item.linked_items or [],
        'warehouses': available_warehouses(item.prices, currency, rates),
    })
    return body


def search_catalog(term: str, locale: str, limit: int = 20, session=None) -> Dict[str, List[Dict[str, Any]]]:
    session = session or get_db()
    needle = f"%{term.strip().lower()}%"
    items = session.execute(
        select(Item)
        .outerjoin(ItemDetails, ItemDetails.item_slug == Item.slug)
        .where(
            Item.is_displayed.is_(True),
            or_(func.lower(Item.article_id).like(needle), func.lower(ItemDetails.item_name).like(needle)),
        )
        .order_by(Item.sell_counter.desc(), Item.id.asc())
    ).scalars().unique().all()[:limit]
    categories = session.execute(
        select(Category).where(Category.is_visible.is_(True), func.lower(Category.name).like(needle)).order_by(Category.name)
    ).scalars().all()
    subcategories = session.execute(
        select(Subcategory).where(Subcategory.is_visible.is_(True), func.lower(Subcategory.name).like(needle)).order_by(Subcategory.name)
    ).scalars().all()
    return {
        'items': items,
        'categories': [category_json(c, locale, include_subcategories=False) for c in categories],
        'subcategories': [subcategory_json(s, locale) for s in subcategories],
    }


def category_names(session, category_slug: Optional[str]):
    """Return ``(category_name, subcategory_name)`` for an item's category slug."""
    if not category_slug:
        return None, None
    cat = session.execute(select(Category).where(Category.slug == category_slug)).scalar_one_or_none()
    if cat is not None:
        return cat.name, None
    sub = session.execute(select(Subcategory).where(Subcategory.slug == category_slug)).scalar_one_or_none()
    if sub is not None:
        return (sub.category.name if sub.category else None), sub.name
    return None, None
