from __future__ import annotations
from flask import abort


def parse_sort(sort_expr: str | None):
    """Split ``"-price,created_at"`` into ``[('price', True), ('created_at', False)]``."""
    out = []
    for raw in (sort_expr or '').split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        out.append((token[1:] if desc else token, desc))
    return out


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker):
    """Apply multi-field sort to a SQLAlchemy query.
    sort_expr: comma-separated tokens, each optionally prefixed with '-'.
    allowed: mapping of field key -> column (or scalar subquery) expression.
    tie_breaker: column to append for deterministic ordering.
    """
    clauses = []
    for key, desc in parse_sort(sort_expr):
        col = allowed.get(key)
        if col is None:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)
