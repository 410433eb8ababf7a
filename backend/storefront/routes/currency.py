from __future__ import annotations
import math
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select
from storefront import get_db
from storefront.config.locales import BASE_CURRENCY, SUPPORTED_CURRENCIES
from storefront.decorators.auth import require_permissions
from storefront.decorators.audit import audit_log
from storefront.models.currency import CurrencyExchange
from storefront.services.currency import get_rates, set_exchange_rate

currency_bp = Blueprint('currency', __name__)


def _row_json(row: CurrencyExchange):
    return {
        'id': row.id,
        'from': row.from_currency,
        'to': row.to_currency,
        'rate': row.rate,
        'updated_at': row.updated_at.isoformat() if row.updated_at else None,
    }


@currency_bp.get('')
def list_rates():
    """Stored exchange rows plus the effective base-currency rate table."""
    session = get_db()
    rows = session.execute(
        select(CurrencyExchange).order_by(CurrencyExchange.from_currency.asc(), CurrencyExchange.to_currency.asc())
    ).scalars().all()
    return {
        'base': BASE_CURRENCY,
        'rates': get_rates(session),
        'data': [_row_json(r) for r in rows],
    }


@currency_bp.put('')
@require_permissions('CUR.MANAGE')
@audit_log('CURRENCY.UPDATE', entity='CurrencyExchange', entity_id_key='id', meta_keys=['from', 'to', 'rate'])
def update_rate():
    session = get_db()
    data = request.json or {}
    src = (data.get('from') or '').upper()
    dst = (data.get('to') or '').upper()
    if not src or not dst or data.get('rate') is None:
        abort(400, description='from, to and rate required')
    if src not in SUPPORTED_CURRENCIES or dst not in SUPPORTED_CURRENCIES:
        abort(400, description='Unsupported currency')
    if src == dst:
        abort(400, description='from and to must differ')
    try:
        rate = float(data['rate'])
    except (TypeError, ValueError):
        abort(400, description='rate must be a number')
    if not math.isfinite(rate) or rate <= 0:
        abort(400, description='rate must be positive')
    row = set_exchange_rate(src, dst, rate, session=session)
    session.commit()
    current_app.logger.info('exchange rate %s->%s set to %s', src, dst, rate)
    return _row_json(row)
