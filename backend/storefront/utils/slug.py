from __future__ import annotations
import re

_NON_WORD = re.compile(r'[^\w\s-]')
_SEPARATORS = re.compile(r'[\s_]+')
_NON_ALNUM = re.compile(r'[^a-z0-9]')


def slugify(text: str) -> str:
    """Lowercase, drop punctuation, collapse spaces/underscores into '-'."""
    processed = _NON_WORD.sub('', (text or '').strip().lower())
    processed = _SEPARATORS.sub('-', processed)
    return re.sub(r'-{2,}', '-', processed).strip('-')


def item_slug(brand_alias: str | None, article_id: str) -> str:
    return f"{brand_alias or 'unknown'}_{slugify(article_id)}"


def placeholder_item_slug(article_id: str) -> str:
    """Slug for items created implicitly by price uploads."""
    return 'unknown_' + _NON_ALNUM.sub('_', article_id.lower())

__all__ = ['slugify', 'item_slug', 'placeholder_item_slug']
