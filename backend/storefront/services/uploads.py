"""Image library stored on the local filesystem under ``UPLOAD_DIR``."""
from __future__ import annotations
import logging
import os
from typing import Optional

from sqlalchemy import select
from werkzeug.security import safe_join
from werkzeug.utils import secure_filename

from storefront import get_db
from storefront.models.upload import UploadedImage
from storefront.services.errors import UploadRejected

log = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = (
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/webp',
    'image/svg+xml',
    'image/avif',
)

EXTENSION_MIME_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.svg': 'image/svg+xml',
    '.avif': 'image/avif',
}

MAX_FILE_SIZE = 10 * 1024 * 1024
PUBLIC_PREFIX = '/public/uploads'


def sanitize_path(raw: str) -> str:
    """Folder path made of ``secure_filename`` segments; empty and dot segments are dropped."""
    segments = [secure_filename(s) for s in (raw or '').replace('\\', '/').split('/')]
    return '/'.join(s for s in segments if s)


def sanitize_file_name(name: str) -> str:
    base, ext = os.path.splitext(secure_filename(name or ''))
    return f"{base}{ext.lower()}"


def public_url(path: str, file_name: str) -> str:
    relative = '/'.join(p for p in (path, file_name) if p)
    return f"{PUBLIC_PREFIX}/{relative}"


def resolve_public_file(upload_dir: str, relative: str) -> Optional[str]:
    """Absolute path of a stored file, or None when ``relative`` escapes the upload dir."""
    return safe_join(upload_dir, relative)


def store_image(upload_dir: str, path: str, file_name: str, mime_type: str, content: bytes,
                max_size: int = MAX_FILE_SIZE, created_by: Optional[int] = None, session=None) -> UploadedImage:
    session = session or get_db()
    if mime_type not in ALLOWED_MIME_TYPES:
        raise UploadRejected(f'Unsupported file type: {mime_type}')
    if len(content) > max_size:
        raise UploadRejected(f'File too large (max {max_size // (1024 * 1024)}MB)')
    clean_path = sanitize_path(path)
    clean_name = sanitize_file_name(file_name)
    target = safe_join(upload_dir, clean_path, clean_name) if clean_name else None
    if target is None:
        raise UploadRejected('Invalid file name')
    existing = session.execute(
        select(UploadedImage).where(UploadedImage.path == clean_path, UploadedImage.file_name == clean_name)
    ).scalar_one_or_none()
    if existing is not None:
        raise UploadRejected('File already exists', status_code=409)
    os.makedirs(os.path.dirname(target), exist_ok=True)
    with open(target, 'wb') as fh:
        fh.write(content)
    image = UploadedImage(file_name=clean_name, path=clean_path, mime_type=mime_type,
                          size=len(content), created_by=created_by)
    session.add(image)
    session.commit()
    log.info('stored image %s/%s (%d bytes)', clean_path, clean_name, len(content))
    return image


def delete_image(upload_dir: str, image: UploadedImage, session=None) -> None:
    session = session or get_db()
    target = safe_join(upload_dir, image.path, image.file_name)
    if target and os.path.exists(target):
        os.remove(target)
    session.delete(image)
    session.commit()


def image_json(image: UploadedImage):
    return {
        'id': image.id,
        'file_name': image.file_name,
        'path': image.path,
        'mime_type': image.mime_type,
        'size': image.size,
        'url': public_url(image.path, image.file_name),
        'created_at': image.created_at.isoformat() if image.created_at else None,
    }
