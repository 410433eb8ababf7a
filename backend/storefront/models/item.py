from __future__ import annotations
from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, Float, Boolean, ForeignKey, DateTime, JSON, UniqueConstraint, Index, func

from .authz import Base

BADGE_NEW_ARRIVALS = 'NEW_ARRIVALS'
BADGE_BESTSELLER = 'BESTSELLER'
BADGE_HOT_DEALS = 'HOT_DEALS'
BADGE_LIMITED_EDITION = 'LIMITED_EDITION'
BADGE_ABSENT = 'ABSENT'
BADGE_USED = 'USED'
ALL_BADGES = (
    BADGE_NEW_ARRIVALS,
    BADGE_BESTSELLER,
    BADGE_HOT_DEALS,
    BADGE_LIMITED_EDITION,
    BADGE_ABSENT,
    BADGE_USED,
)


class Item(Base):
    __tablename__ = 'items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    article_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    alias: Mapped[Optional[str]] = mapped_column(String(200))
    is_displayed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sell_counter: Mapped[int] = mapped_column(Integer, default=0)
    warranty_length: Mapped[int] = mapped_column(Integer, nullable=False, default=12)
    warranty_type: Mapped[str] = mapped_column(String(32), nullable=False, default='manufacturer')
    brand_slug: Mapped[Optional[str]] = mapped_column(ForeignKey('brands.alias', ondelete='SET NULL', onupdate='CASCADE'), nullable=True, index=True)
    # either a category slug or a subcategory slug
    category_slug: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    image_links: Mapped[List[str]] = mapped_column(JSON, default=list)
    linked_items: Mapped[List[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    brand = relationship('Brand')
    details = relationship('ItemDetails', back_populates='item', cascade='all, delete-orphan')
    prices = relationship('ItemPrice', back_populates='item', cascade='all, delete-orphan')
    price_history = relationship('ItemPriceHistory', back_populates='item', cascade='all, delete-orphan')

    def details_for(self, locale: str) -> Optional['ItemDetails']:
        fallback = None
        for d in self.details:
            if d.locale == locale:
                return d
            if fallback is None:
                fallback = d
        return fallback


class ItemDetails(Base):
    __tablename__ = 'item_details'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_slug: Mapped[str] = mapped_column(ForeignKey('items.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False, index=True)
    locale: Mapped[str] = mapped_column(String(8), nullable=False, default='pl')
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    specifications: Mapped[Optional[str]] = mapped_column(Text)
    seller: Mapped[Optional[str]] = mapped_column(String(128))
    discount: Mapped[Optional[float]] = mapped_column(Float)
    popularity: Mapped[Optional[int]] = mapped_column(Integer)
    meta_description: Mapped[Optional[str]] = mapped_column(Text)
    meta_keywords: Mapped[Optional[str]] = mapped_column(Text)

    item = relationship('Item', back_populates='details')

    __table_args__ = (UniqueConstraint('item_slug', 'locale', name='uq_item_details_locale'),)


class ItemPrice(Base):
    __tablename__ = 'item_prices'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_slug: Mapped[str] = mapped_column(ForeignKey('items.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False, index=True)
    warehouse_id: Mapped[int] = mapped_column(ForeignKey('warehouses.id', ondelete='CASCADE'), nullable=False, index=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    promotion_price: Mapped[Optional[float]] = mapped_column(Float)
    promo_code: Mapped[Optional[str]] = mapped_column(String(64))
    promo_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    promo_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    badge: Mapped[str] = mapped_column(String(32), nullable=False, default=BADGE_ABSENT)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    item = relationship('Item', back_populates='prices')
    warehouse = relationship('Warehouse', back_populates='prices')

    __table_args__ = (UniqueConstraint('item_slug', 'warehouse_id', name='uq_item_price_warehouse'),)


class ItemPriceHistory(Base):
    """Append-only snapshot of an ItemPrice row taken right before it is overwritten."""
    __tablename__ = 'item_price_history'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey('items.id', ondelete='CASCADE'), nullable=False)
    warehouse_id: Mapped[int] = mapped_column(ForeignKey('warehouses.id', ondelete='CASCADE'), nullable=False)
    item_price_id: Mapped[Optional[int]] = mapped_column(ForeignKey('item_prices.id', ondelete='SET NULL'), nullable=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    promotion_price: Mapped[Optional[float]] = mapped_column(Float)
    promo_code: Mapped[Optional[str]] = mapped_column(String(64))
    promo_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    promo_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    badge: Mapped[str] = mapped_column(String(32), nullable=False, default=BADGE_ABSENT)
    recorded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())

    item = relationship('Item', back_populates='price_history')

    __table_args__ = (
        Index('ix_item_price_history_item_wh_recorded', 'item_id', 'warehouse_id', 'recorded_at'),
    )

__all__ = ['Item', 'ItemDetails', 'ItemPrice', 'ItemPriceHistory', 'ALL_BADGES', 'BADGE_ABSENT']
