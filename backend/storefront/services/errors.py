"""Service-layer exceptions.

Services stay free of Flask; the application error handler renders any
``StorefrontError`` as ``{"error": message}`` using its ``status_code``.
"""
from __future__ import annotations


class StorefrontError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ParseError(StorefrontError):
    """Uploaded file could not be read into rows."""


class BulkUploadError(StorefrontError):
    """Batch-level failure (empty batch, unknown warehouse)."""


class CheckoutError(StorefrontError):
    """Cart could not be turned into an order."""


class NotFoundError(StorefrontError):
    status_code = 404


class UploadRejected(StorefrontError):
    """Image upload failed mime, size or path checks."""
