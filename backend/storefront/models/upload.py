from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, UniqueConstraint, func

from .authz import Base


class UploadedImage(Base):
    __tablename__ = 'uploaded_images'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # directory relative to UPLOAD_DIR, no leading/trailing slash
    path: Mapped[str] = mapped_column(String(255), nullable=False, default='', index=True)
    mime_type: Mapped[str] = mapped_column(String(64), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint('path', 'file_name', name='uq_uploaded_image_path'),)
