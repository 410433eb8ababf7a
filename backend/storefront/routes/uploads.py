from __future__ import annotations
import os
from flask import Blueprint, request, abort, current_app
from storefront import get_db
from storefront.models.upload import UploadedImage
from storefront.decorators.auth import require_permissions
from storefront.decorators.audit import audit_log
from storefront.services.policy import current_user_id
from storefront.services.uploads import EXTENSION_MIME_TYPES, delete_image, image_json, sanitize_path, store_image
from storefront.utils.listing import apply_pagination, handle_conditional, make_cached_list_response
from storefront.utils.filters import apply_filters

uploads_bp = Blueprint('uploads', __name__)


@uploads_bp.get('')
@require_permissions('UPLOAD.READ')
def list_images():
    session = get_db()
    q = session.query(UploadedImage)
    q = apply_filters(q, {
        'path': {'op': lambda qu, v: qu.filter(UploadedImage.path == sanitize_path(v))},
        'q': {'op': lambda qu, v: qu.filter(UploadedImage.file_name.ilike(f'%{v}%'))},
    }, request.args)
    paged_q, total, limit, offset = apply_pagination(q.order_by(UploadedImage.id.desc()))
    rows = paged_q.all()
    latest_ts = max((i.created_at for i in rows if i.created_at), default=None)
    resp, etag = make_cached_list_response([image_json(i) for i in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@uploads_bp.post('')
@require_permissions('UPLOAD.MANAGE')
@audit_log('UPLOAD.CREATE', entity='UploadedImage', entity_id_key='id', meta_keys=['path', 'file_name', 'size'])
def upload_image():
    f = request.files.get('file')
    if f is None or not f.filename:
        abort(400, description='file required')
    mime_type = f.mimetype
    if not mime_type or mime_type == 'application/octet-stream':
        mime_type = EXTENSION_MIME_TYPES.get(os.path.splitext(f.filename)[1].lower(), mime_type)
    image = store_image(
        current_app.config['UPLOAD_DIR'],
        request.form.get('path', ''),
        request.form.get('file_name') or f.filename,
        mime_type,
        f.read(),
        max_size=current_app.config['MAX_UPLOAD_BYTES'],
        created_by=current_user_id(),
        session=get_db(),
    )
    return image_json(image), 201


@uploads_bp.delete('/<int:image_id>')
@require_permissions('UPLOAD.MANAGE')
@audit_log('UPLOAD.DELETE', entity='UploadedImage', entity_id_arg='image_id')
def remove_image(image_id: int):
    session = get_db()
    image = session.get(UploadedImage, image_id)
    if not image:
        abort(404, description='Image not found')
    delete_image(current_app.config['UPLOAD_DIR'], image, session=session)
    return {'deleted': True, 'id': image_id}
