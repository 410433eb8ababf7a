"""Row-level checks for catalog uploads, run before any database lookup."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from storefront.models.item import ALL_BADGES

REQUIRED_FIELDS = (
    'article_id',
    'category_name',
    'subcategory_name',
    'item_name',
    'description',
    'warehouse_name',
    'price',
    'quantity',
)

NUMERIC_FIELDS = ('price', 'quantity', 'promotion_price', 'warranty_length', 'sell_counter', 'discount', 'popularity')

# field -> (min, max, message suffix)
RANGES = {
    'warranty_length': (0, 120, 'must be between 0 and 120 months'),
    'discount': (0, 100, 'must be between 0 and 100 percent'),
    'popularity': (0, 10, 'must be between 0 and 10'),
}

NON_NEGATIVE = ('price', 'quantity', 'promotion_price')


@dataclass
class ValidationResult:
    valid_items: List[Dict[str, Any]] = field(default_factory=list)
    invalid_items: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _valid_date(value) -> bool:
    if isinstance(value, datetime):
        return True
    try:
        datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return False
    return True


def validate_row(row: Dict[str, Any], row_no: int, seen: set) -> List[str]:
    errs: List[str] = []
    for f in REQUIRED_FIELDS:
        if _blank(row.get(f)):
            errs.append(f'Row {row_no}: {f} is required')
    for f in NUMERIC_FIELDS:
        value = row.get(f)
        if _blank(value) or isinstance(value, bool):
            continue
        try:
            row[f] = float(value)
        except (TypeError, ValueError):
            errs.append(f'Row {row_no}: {f} must be a number')
            continue
        if f in ('quantity', 'warranty_length', 'sell_counter', 'popularity') and row[f].is_integer():
            row[f] = int(row[f])
    for f in NON_NEGATIVE:
        value = row.get(f)
        if isinstance(value, (int, float)) and value < 0:
            errs.append(f'Row {row_no}: {f} must be greater than or equal to 0')
    for f, (lo, hi, msg) in RANGES.items():
        value = row.get(f)
        if isinstance(value, (int, float)) and not (lo <= value <= hi):
            errs.append(f'Row {row_no}: {f} {msg}')
    badge = row.get('badge')
    if not _blank(badge) and badge not in ALL_BADGES:
        errs.append(f"Row {row_no}: badge must be one of: {', '.join(ALL_BADGES)}")
    if not _blank(row.get('promo_end_date')) and not _valid_date(row['promo_end_date']):
        errs.append(f'Row {row_no}: promo_end_date must be a valid date')
    article_id = row.get('article_id')
    if not _blank(article_id):
        article_id = str(article_id).strip()
        row['article_id'] = article_id
        if len(article_id) < 3 or len(article_id) > 50:
            errs.append(f'Row {row_no}: article_id must be between 3 and 50 characters')
        if article_id in seen:
            errs.append(f"Row {row_no}: Duplicate article_id '{article_id}' found in batch")
        else:
            seen.add(article_id)
    return errs


def validate_bulk_items(rows: List[Dict[str, Any]]) -> ValidationResult:
    result = ValidationResult()
    seen: set = set()
    for idx, row in enumerate(rows, start=1):
        errs = validate_row(row, idx, seen)
        if errs:
            result.invalid_items.append({'row': idx, 'item': row, 'errors': errs})
            result.errors.extend(errs)
        else:
            result.valid_items.append(row)
    return result
