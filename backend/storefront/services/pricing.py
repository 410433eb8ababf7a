"""Multi-warehouse price resolution.

Pure helpers over ItemPrice-like objects (anything exposing ``price``,
``quantity``, ``promotion_price``, ``promo_start_date``, ``promo_end_date`` and
``warehouse``). Nothing here touches the database; exchange rates are passed in.
"""
from __future__ import annotations
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from storefront.config.locales import (
    BASE_CURRENCY,
    CURRENCY_SYMBOLS,
    DEFAULT_PREFERRED_COUNTRY,
    FALLBACK_RATES,
)

_NUMERIC_CHARS = re.compile(r'[^0-9.,-]')


def _warehouse_country(price) -> Optional[str]:
    wh = getattr(price, 'warehouse', None)
    if wh is None:
        return None
    code = getattr(wh, 'country_code', None)
    return code.upper() if code else None


def _as_aware(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def select_recommended_price(prices: Sequence[Any], preferred_country: str = DEFAULT_PREFERRED_COUNTRY):
    """Pick the warehouse price a shopper should see first.

    Order of preference: preferred country with stock, preferred country,
    any warehouse with stock, then the first entry.
    """
    if not prices:
        return None
    country = (preferred_country or '').upper()
    in_country = [p for p in prices if _warehouse_country(p) == country]
    for p in in_country:
        if (p.quantity or 0) > 0:
            return p
    if in_country:
        return in_country[0]
    for p in prices:
        if (p.quantity or 0) > 0:
            return p
    return prices[0]


def is_promotion_active(price, now: Optional[datetime] = None) -> bool:
    if not price.promotion_price:
        return False
    now = _as_aware(now) or datetime.now(timezone.utc)
    start = _as_aware(price.promo_start_date)
    end = _as_aware(price.promo_end_date)
    if start is not None and start > now:
        return False
    if end is not None and end <= now:
        return False
    return True


def effective_price(price, now: Optional[datetime] = None) -> Tuple[float, Optional[float]]:
    """Return ``(price_to_pay, original_price_or_None)``.

    The original is only reported while a promotion is running.
    """
    base = float(price.price or 0)
    if is_promotion_active(price, now):
        return float(price.promotion_price), base
    return base, None


def convert_price_value(value: float, rate: float) -> float:
    try:
        converted = float(value) * float(rate)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(converted):
        return 0.0
    # half-up at 2 dp; float round() is banker's rounding
    rounded = math.floor(converted * 100 + 0.5 + 1e-9) / 100
    return rounded if math.isfinite(rounded) else 0.0


def parse_price_string(value) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if value is None:
        return 0.0
    normalized = _NUMERIC_CHARS.sub('', str(value)).replace(',', '.')
    # "1.234.50" -> keep the last separator as the decimal point
    if normalized.count('.') > 1:
        head, _, tail = normalized.rpartition('.')
        normalized = head.replace('.', '') + '.' + tail
    try:
        parsed = float(normalized)
    except ValueError:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def calculate_discount_percentage(original, discount) -> int:
    o = parse_price_string(original)
    d = parse_price_string(discount)
    if o <= 0 or d <= 0 or d >= o:
        return 0
    return int(math.floor((o - d) / o * 100 + 0.5))


def detect_currency_from_locale(locale: Optional[str]) -> str:
    if not locale:
        return BASE_CURRENCY
    normalized = locale.lower()
    if 'pl' in normalized:
        return 'PLN'
    if 'ua' in normalized or 'uk' in normalized:
        return 'UAH'
    return BASE_CURRENCY


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get((currency or '').upper(), CURRENCY_SYMBOLS[BASE_CURRENCY])


def format_price(value: float, currency: str) -> str:
    return f"{value:.2f} {currency_symbol(currency)}"


def _rate_for(currency: str, rates: Optional[Mapping[str, float]]) -> float:
    currency = (currency or BASE_CURRENCY).upper()
    if currency == BASE_CURRENCY:
        return 1.0
    if rates and currency in rates:
        return float(rates[currency])
    return FALLBACK_RATES.get(currency, 1.0)


def _warehouse_summary(price) -> Dict[str, Any]:
    wh = getattr(price, 'warehouse', None)
    return {
        'warehouse_id': getattr(wh, 'id', None) if wh is not None else getattr(price, 'warehouse_id', None),
        'warehouse_name': getattr(wh, 'displayed_name', None) if wh is not None else None,
        'warehouse_country': _warehouse_country(price),
    }


def resolve_item_price(
    prices: Sequence[Any],
    preferred_country: str = DEFAULT_PREFERRED_COUNTRY,
    currency: str = BASE_CURRENCY,
    rates: Optional[Mapping[str, float]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    currency = (currency or BASE_CURRENCY).upper()
    chosen = select_recommended_price(prices, preferred_country)
    if chosen is None:
        return {
            'price': 0.0,
            'original_price': None,
            'discount_percent': 0,
            'in_stock': False,
            'quantity': 0,
            'warehouse_id': None,
            'warehouse_name': None,
            'warehouse_country': None,
            'badge': None,
            'currency': currency,
        }
    rate = _rate_for(currency, rates)
    value, original = effective_price(chosen, now)
    price_out = convert_price_value(value, rate)
    original_out = convert_price_value(original, rate) if original is not None else None
    summary = {
        'price': price_out,
        'original_price': original_out,
        'discount_percent': calculate_discount_percentage(original_out, price_out) if original_out is not None else 0,
        'in_stock': (chosen.quantity or 0) > 0,
        'quantity': chosen.quantity or 0,
        'badge': getattr(chosen, 'badge', None),
        'currency': currency,
    }
    summary.update(_warehouse_summary(chosen))
    return summary


def available_warehouses(
    prices: Iterable[Any],
    currency: str = BASE_CURRENCY,
    rates: Optional[Mapping[str, float]] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Per-warehouse availability rows for a product page, stocked warehouses first."""
    currency = (currency or BASE_CURRENCY).upper()
    rate = _rate_for(currency, rates)
    rows = []
    for p in prices:
        wh = getattr(p, 'warehouse', None)
        if wh is not None and not getattr(wh, 'is_visible', True):
            continue
        value, original = effective_price(p, now)
        row = {
            'price': convert_price_value(value, rate),
            'original_price': convert_price_value(original, rate) if original is not None else None,
            'quantity': p.quantity or 0,
            'in_stock': (p.quantity or 0) > 0,
            'badge': getattr(p, 'badge', None),
            'currency': currency,
        }
        row.update(_warehouse_summary(p))
        rows.append(row)
    rows.sort(key=lambda r: (not r['in_stock'], r['price']))
    return rows


__all__ = [
    'select_recommended_price',
    'is_promotion_active',
    'effective_price',
    'resolve_item_price',
    'available_warehouses',
    'convert_price_value',
    'calculate_discount_percentage',
    'parse_price_string',
    'detect_currency_from_locale',
    'currency_symbol',
    'format_price',
]
