from __future__ import annotations
from datetime import datetime
from typing import Optional, Any
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Boolean, DateTime, JSON, UniqueConstraint, func

from .authz import Base


class PageContent(Base):
    """Editable static page; one row per (slug, locale)."""
    __tablename__ = 'page_content'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    locale: Mapped[str] = mapped_column(String(5), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # structured blocks rendered by the storefront; stored as-is
    content: Mapped[Any] = mapped_column(JSON, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint('slug', 'locale', name='uq_page_slug_locale'),)


class Banner(Base):
    __tablename__ = 'banners'
    POSITION_HOME_TOP = 'home_top'
    POSITION_CATALOG_SIDEBAR = 'catalog_sidebar'
    POSITION_PROMO = 'promo'
    ALL_POSITIONS = (POSITION_HOME_TOP, POSITION_CATALOG_SIDEBAR, POSITION_PROMO)
    DEVICE_DESKTOP = 'desktop'
    DEVICE_MOBILE = 'mobile'
    ALL_DEVICES = (DEVICE_DESKTOP, DEVICE_MOBILE)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(String(255))
    image_url: Mapped[str] = mapped_column(String(512), nullable=False)
    link_url: Mapped[Optional[str]] = mapped_column(String(512))
    position: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    device: Mapped[str] = mapped_column(String(20), nullable=False, default=DEVICE_DESKTOP)
    locale: Mapped[str] = mapped_column(String(5), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

__all__ = ['PageContent', 'Banner']
