from __future__ import annotations
import logging
from typing import Dict, Optional

from sqlalchemy import select

from storefront import get_db
from storefront.config.locales import BASE_CURRENCY, FALLBACK_RATES, SUPPORTED_CURRENCIES
from storefront.models.currency import CurrencyExchange

log = logging.getLogger(__name__)


def _stored_rate(session, from_currency: str, to_currency: str) -> Optional[float]:
    row = session.execute(
        select(CurrencyExchange).where(
            CurrencyExchange.from_currency == from_currency,
            CurrencyExchange.to_currency == to_currency,
        )
    ).scalar_one_or_none()
    return float(row.rate) if row else None


def _base_rate(session, currency: str) -> float:
    """Units of ``currency`` per one unit of the base currency."""
    if currency == BASE_CURRENCY:
        return 1.0
    rate = _stored_rate(session, BASE_CURRENCY, currency)
    if rate is not None:
        return rate
    inverse = _stored_rate(session, currency, BASE_CURRENCY)
    if inverse:
        return 1.0 / inverse
    return FALLBACK_RATES.get(currency, 1.0)


def get_exchange_rate(from_currency: str, to_currency: str, session=None) -> float:
    """Rate to multiply an amount in ``from_currency`` by to get ``to_currency``.

    Direct rows win; otherwise the pair is bridged through the base currency,
    falling back to the static table for any leg without a stored row.
    """
    session = session or get_db()
    src = (from_currency or BASE_CURRENCY).upper()
    dst = (to_currency or BASE_CURRENCY).upper()
    if src == dst:
        return 1.0
    direct = _stored_rate(session, src, dst)
    if direct is not None:
        return direct
    rate = _base_rate(session, dst) / _base_rate(session, src)
    log.debug('bridged exchange rate %s->%s = %s', src, dst, rate)
    return rate


def get_rates(session=None) -> Dict[str, float]:
    """Base-currency rates for every supported currency."""
    session = session or get_db()
    return {c: _base_rate(session, c) for c in SUPPORTED_CURRENCIES}


def set_exchange_rate(from_currency: str, to_currency: str, rate: float, session=None) -> CurrencyExchange:
    session = session or get_db()
    row = session.execute(
        select(CurrencyExchange).where(
            CurrencyExchange.from_currency == from_currency,
            CurrencyExchange.to_currency == to_currency,
        )
    ).scalar_one_or_none()
    if row is None:
        row = CurrencyExchange(from_currency=from_currency, to_currency=to_currency, rate=rate)
        session.add(row)
    else:
        row.rate = rate
    session.flush()
    return row
