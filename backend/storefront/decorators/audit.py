from __future__ import annotations
"""Audit logging decorator so route handlers don't call add_audit() by hand.

Usage examples:

@audit_log('ITEM.CREATE', entity='Item', entity_id_key='article_id', meta_keys=['slug'])
def create_item():
    ... return {'article_id': item.article_id, 'slug': item.slug}, 201

@audit_log('ITEM.BULK_PRICES', entity='Warehouse',
           meta_builder=lambda data, rv, args, kwargs: data.get('results'))
def bulk_update_prices(): ...

Parameters:
  action: required audit action code (e.g. ITEM.CREATE)
  entity: optional entity label (Item, Order, Warehouse)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: view keyword argument used for entity_id when the key is absent.
  meta_keys: keys projected from the returned JSON into meta.
  meta_builder: callable(data, rv, args, kwargs) -> dict; overrides meta_keys.
  diff_keys / pre_fetch: pre_fetch(args, kwargs) snapshots the entity before the
    view runs; changed diff_keys are stored under meta['changes'].

Only successful (< 400) responses are audited. The audit row is committed on
its own so a failure there never changes the response already produced.
"""

import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from storefront.services.audit import add_audit
from storefront import get_db

log = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return (data, status) for the common Flask return shapes."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, getattr(rv, 'status_code', 200)


def _changes(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]):
    out = {}
    for k in keys:
        if k in before and k in after and before.get(k) != after.get(k):
            out[k] = {'before': before.get(k), 'after': after.get(k)}
    return out


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data, status = _extract_payload(rv)
            if status >= 400:
                return rv
            if not isinstance(data, dict):
                data = {}
            entity_id = data.get(entity_id_key) if entity_id_key else None
            if entity_id is None and entity_id_arg:
                entity_id = kwargs.get(entity_id_arg)
            if meta_builder:
                meta = meta_builder(data, rv, args, kwargs) or {}
            else:
                meta = {k: data.get(k) for k in (meta_keys or []) if k in data}
            if diff_keys and isinstance(before, dict):
                changes = _changes(before, data, diff_keys)
                if changes:
                    meta['changes'] = changes
            session = get_db()
            try:
                add_audit(action, entity, entity_id, meta)
                session.commit()
            except Exception:
                session.rollback()
                log.exception('audit write failed for %s', action)
            return rv
        return wrapper
    return outer
