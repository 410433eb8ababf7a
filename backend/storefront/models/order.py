from __future__ import annotations
from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Float, Text, ForeignKey, DateTime, JSON, func

from .authz import Base


class Cart(Base):
    __tablename__ = 'carts'
    STATUS_PENDING = 'PENDING'
    STATUS_CHECKED_OUT = 'CHECKED_OUT'
    ALL_STATUSES = (STATUS_PENDING, STATUS_CHECKED_OUT)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_PENDING)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship('User', back_populates='carts')
    items = relationship('CartItem', back_populates='cart', cascade='all, delete-orphan')


class CartItem(Base):
    __tablename__ = 'cart_items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cart_id: Mapped[int] = mapped_column(ForeignKey('carts.id', ondelete='CASCADE'), nullable=False, index=True)
    item_id: Mapped[int] = mapped_column(ForeignKey('items.id', ondelete='CASCADE'), nullable=False)
    warehouse_id: Mapped[Optional[int]] = mapped_column(ForeignKey('warehouses.id', ondelete='SET NULL'), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    cart = relationship('Cart', back_populates='items')
    item = relationship('Item')


class Order(Base):
    __tablename__ = 'orders'
    # Lifecycle status constants
    STATUS_NEW = 'NEW'
    STATUS_WAITING_FOR_PAYMENT = 'WAITING_FOR_PAYMENT'
    STATUS_PROCESSING = 'PROCESSING'
    STATUS_DELIVERY = 'DELIVERY'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_REFUND = 'REFUND'
    STATUS_ASK_FOR_PRICE = 'ASK_FOR_PRICE'
    ALL_STATUSES = (
        STATUS_NEW,
        STATUS_WAITING_FOR_PAYMENT,
        STATUS_PROCESSING,
        STATUS_DELIVERY,
        STATUS_COMPLETED,
        STATUS_CANCELLED,
        STATUS_REFUND,
        STATUS_ASK_FOR_PRICE
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_NEW, index=True)
    # display string in the order currency, e.g. "123.45 zł"
    total_price: Mapped[str] = mapped_column(String(64), nullable=False, default='0')
    original_total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default='EUR')
    line_items: Mapped[List[dict]] = mapped_column(JSON, default=list)
    delivery_id: Mapped[Optional[str]] = mapped_column(String(128))
    comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship('User', back_populates='orders')
    payments = relationship('Payment', back_populates='order', cascade='all, delete-orphan')


class Payment(Base):
    __tablename__ = 'payments'
    STATUS_PENDING = 'PENDING'
    STATUS_INITIATED = 'INITIATED'
    STATUS_PROCESSING = 'PROCESSING'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_FAILED = 'FAILED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_REFUNDED = 'REFUNDED'
    ALL_STATUSES = (
        STATUS_PENDING,
        STATUS_INITIATED,
        STATUS_PROCESSING,
        STATUS_COMPLETED,
        STATUS_FAILED,
        STATUS_CANCELLED,
        STATUS_REFUNDED
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    # minor units (grosze / cents)
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default='EUR')
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_PENDING)
    method: Mapped[Optional[str]] = mapped_column(String(32))
    transaction_id: Mapped[Optional[str]] = mapped_column(String(128))
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order = relationship('Order', back_populates='payments')
