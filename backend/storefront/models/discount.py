from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, Float, DateTime, ForeignKey, Table, Column, func

from .authz import Base

# A user holds at most one level; the admin endpoint replaces the row on assignment
discount_level_users = Table(
    'discount_level_users',
    Base.metadata,
    Column('discount_level_id', ForeignKey('discount_levels.id', ondelete='CASCADE'), primary_key=True),
    Column('user_id', ForeignKey('users.id', ondelete='CASCADE'), primary_key=True, index=True),
)


class DiscountLevel(Base):
    __tablename__ = 'discount_levels'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    level: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    discount_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    users = relationship('User', secondary=discount_level_users, back_populates='discount_levels')

__all__ = ['DiscountLevel', 'discount_level_users']
