"""Readers turning uploaded catalog files into plain row dicts.

CSV and XLSX go through pandas (openpyxl engine for workbooks); JSON is
decoded directly. All parsers return the same snake_case keys.
"""
from __future__ import annotations
import io
import json
import logging
from typing import Any, Callable, Dict, List

import pandas as pd

from storefront.services.errors import ParseError

log = logging.getLogger(__name__)

# Workbook columns A..Q in upload template order
XLSX_COLUMNS = [
    'article_id',
    'category_name',
    'subcategory_name',
    'item_name',
    'description',
    'warehouse_name',
    'price',
    'quantity',
    'promotion_price',
    'promo_end_date',
    'warranty_length',
    'sell_counter',
    'discount',
    'popularity',
    'is_displayed',
    'brand_name',
    'badge',
]

NUMERIC_FIELDS = ('price', 'quantity', 'promotion_price', 'warranty_length', 'sell_counter', 'discount', 'popularity')

# camelCase headers used by the storefront export / older templates
HEADER_ALIASES = {
    'articleId': 'article_id',
    'categoryName': 'category_name',
    'subCategoryName': 'subcategory_name',
    'itemName': 'item_name',
    'warehouseName': 'warehouse_name',
    'promotionPrice': 'promotion_price',
    'promoEndDate': 'promo_end_date',
    'warrantyLength': 'warranty_length',
    'sellCounter': 'sell_counter',
    'isDisplayed': 'is_displayed',
    'brandName': 'brand_name',
}


def _to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('true', '1', 'yes')


def _to_iso(value):
    if value in (None, ''):
        return None
    ts = pd.to_datetime(value, errors='coerce', utc=True)
    if pd.isna(ts):
        # keep raw text so validation can report it
        return str(value)
    return ts.isoformat().replace('+00:00', 'Z')


def _coerce_number(value):
    if value is None or value == '':
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    try:
        return float(str(value).strip())
    except ValueError:
        return value


def normalize_row(raw: Dict[str, Any]) -> Dict[str, Any]:
    row: Dict[str, Any] = {}
    for key, value in raw.items():
        if key is None:
            continue
        name = HEADER_ALIASES.get(str(key).strip(), str(key).strip())
        if isinstance(value, float) and pd.isna(value):
            value = None
        elif isinstance(value, str):
            value = value.strip() or None
        row[name] = value
    for f in NUMERIC_FIELDS:
        if f in row:
            row[f] = _coerce_number(row[f])
    if 'is_displayed' in row:
        row['is_displayed'] = _to_bool(row['is_displayed'])
    if row.get('promo_end_date') is not None:
        row['promo_end_date'] = _to_iso(row['promo_end_date'])
    if row.get('article_id') is not None:
        # numeric article ids come back as floats from spreadsheets
        aid = row['article_id']
        if isinstance(aid, float) and aid.is_integer():
            aid = int(aid)
        row['article_id'] = str(aid)
    return row


def _frame_rows(df: 'pd.DataFrame') -> List[Dict[str, Any]]:
    df = df.dropna(how='all')
    df = df.astype(object).where(pd.notna(df), None)
    return [normalize_row(r) for r in df.to_dict(orient='records')]


def parse_csv(content: bytes) -> List[Dict[str, Any]]:
    try:
        df = pd.read_csv(io.BytesIO(content), dtype=str, skip_blank_lines=True)
    except Exception as e:
        raise ParseError(f'Failed to parse CSV: {e}')
    return _frame_rows(df)


def parse_xlsx(content: bytes) -> List[Dict[str, Any]]:
    try:
        df = pd.read_excel(io.BytesIO(content), engine='openpyxl', header=0)
    except Exception as e:
        raise ParseError(f'Failed to parse XLSX: {e}')
    # positional mapping, header text is ignored
    df = df.iloc[:, :len(XLSX_COLUMNS)]
    df.columns = XLSX_COLUMNS[:len(df.columns)]
    return _frame_rows(df)


def parse_json(content: bytes) -> List[Dict[str, Any]]:
    try:
        data = json.loads(content.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise ParseError(f'Failed to parse JSON: {e}')
    items = data if isinstance(data, list) else [data]
    if not all(isinstance(i, dict) for i in items):
        raise ParseError('Failed to parse JSON: rows must be objects')
    return [normalize_row(i) for i in items]


PARSERS: Dict[str, Callable[[bytes], List[Dict[str, Any]]]] = {
    'csv': parse_csv,
    'xlsx': parse_xlsx,
    'xls': parse_xlsx,
    'json': parse_json,
}


def get_parser(file_type: str):
    parser = PARSERS.get((file_type or '').lower())
    if parser is None:
        raise ParseError(f'Unsupported file type: {file_type}')
    return parser


def parse_upload(filename: str, content: bytes) -> List[Dict[str, Any]]:
    ext = filename.rsplit('.', 1)[-1] if filename and '.' in filename else ''
    rows = get_parser(ext)(content)
    log.info('parsed %s: %d rows', filename, len(rows))
    return rows
