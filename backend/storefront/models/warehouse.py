from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Boolean, ForeignKey, DateTime, func

from .authz import Base


class WarehouseCountry(Base):
    __tablename__ = 'warehouse_countries'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    country_code: Mapped[str] = mapped_column(String(8), nullable=False)
    phone_code: Mapped[Optional[str]] = mapped_column(String(8))
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    warehouses = relationship('Warehouse', back_populates='country')


class Warehouse(Base):
    __tablename__ = 'warehouses'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # internal code used by upload files, e.g. "warehouse-1"
    name: Mapped[Optional[str]] = mapped_column(String(128), unique=True, index=True)
    displayed_name: Mapped[str] = mapped_column(String(128), nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)
    country_slug: Mapped[Optional[str]] = mapped_column(ForeignKey('warehouse_countries.slug', ondelete='SET NULL', onupdate='CASCADE'), nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    country = relationship('WarehouseCountry', back_populates='warehouses')
    prices = relationship('ItemPrice', back_populates='warehouse', cascade='all, delete-orphan')

    @property
    def country_code(self) -> Optional[str]:
        return self.country.country_code if self.country else None

__all__ = ['WarehouseCountry', 'Warehouse']
