from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Boolean, ForeignKey, DateTime, UniqueConstraint, func

from .authz import Base


class Category(Base):
    __tablename__ = 'categories'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    slug: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)
    image_link: Mapped[Optional[str]] = mapped_column(String(512))
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    translations = relationship('CategoryTranslation', back_populates='category', cascade='all, delete-orphan')
    subcategories = relationship('Subcategory', back_populates='category', cascade='all, delete-orphan')

    def name_for(self, locale: str) -> str:
        for tr in self.translations:
            if tr.locale == locale:
                return tr.name
        return self.name


class CategoryTranslation(Base):
    __tablename__ = 'category_translations'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_slug: Mapped[str] = mapped_column(ForeignKey('categories.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False)
    locale: Mapped[str] = mapped_column(String(8), nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)

    category = relationship('Category', back_populates='translations')

    __table_args__ = (UniqueConstraint('category_slug', 'locale', name='uq_category_translation'),)


class Subcategory(Base):
    __tablename__ = 'subcategories'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    slug: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    category_slug: Mapped[str] = mapped_column(ForeignKey('categories.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False, index=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship('Category', back_populates='subcategories')
    translations = relationship('SubcategoryTranslation', back_populates='subcategory', cascade='all, delete-orphan')

    def name_for(self, locale: str) -> str:
        for tr in self.translations:
            if tr.locale == locale:
                return tr.name
        return self.name


class SubcategoryTranslation(Base):
    __tablename__ = 'subcategory_translations'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    subcategory_slug: Mapped[str] = mapped_column(ForeignKey('subcategories.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False)
    locale: Mapped[str] = mapped_column(String(8), nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)

    subcategory = relationship('Subcategory', back_populates='translations')

    __table_args__ = (UniqueConstraint('subcategory_slug', 'locale', name='uq_subcategory_translation'),)


class Brand(Base):
    __tablename__ = 'brands'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    alias: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    image_link: Mapped[str] = mapped_column(String(512), nullable=False, default='')
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

__all__ = ['Category', 'CategoryTranslation', 'Subcategory', 'SubcategoryTranslation', 'Brand']
