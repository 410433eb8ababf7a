from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
import pytest
from storefront.services.pricing import (
    available_warehouses,
    calculate_discount_percentage,
    convert_price_value,
    detect_currency_from_locale,
    effective_price,
    format_price,
    is_promotion_active,
    parse_price_string,
    resolve_item_price,
    select_recommended_price,
)

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def _wh(wid, country, visible=True):
    return SimpleNamespace(id=wid, displayed_name=f'WH {wid}', country_code=country, is_visible=visible)


def _price(wid, country, price, qty, promo=None, start=None, end=None, badge='ABSENT'):
    return SimpleNamespace(
        warehouse=_wh(wid, country), warehouse_id=wid, price=price, quantity=qty,
        promotion_price=promo, promo_start_date=start, promo_end_date=end, badge=badge,
    )


def test_recommended_prefers_country_with_stock():
    prices = [_price(1, 'UA', 10, 5), _price(2, 'PL', 12, 0), _price(3, 'PL', 14, 3)]
    assert select_recommended_price(prices, 'PL').warehouse_id == 3


def test_recommended_falls_back_to_country_without_stock_then_any_stock():
    prices = [_price(1, 'UA', 10, 5), _price(2, 'PL', 12, 0)]
    assert select_recommended_price(prices, 'PL').warehouse_id == 2
    prices = [_price(1, 'UA', 10, 0), _price(2, 'ES', 12, 4)]
    assert select_recommended_price(prices, 'PL').warehouse_id == 2
    prices = [_price(1, 'UA', 10, 0), _price(2, 'ES', 12, 0)]
    assert select_recommended_price(prices, 'PL').warehouse_id == 1
    assert select_recommended_price([], 'PL') is None


def test_promotion_window_is_honoured():
    running = _price(1, 'PL', 100, 1, promo=80, end=NOW + timedelta(days=1))
    expired = _price(1, 'PL', 100, 1, promo=80, end=NOW - timedelta(seconds=1))
    future = _price(1, 'PL', 100, 1, promo=80, start=NOW + timedelta(hours=1))
    open_ended = _price(1, 'PL', 100, 1, promo=80)
    assert is_promotion_active(running, NOW)
    assert not is_promotion_active(expired, NOW)
    assert not is_promotion_active(future, NOW)
    assert effective_price(open_ended, NOW) == (80.0, 100.0)
    assert effective_price(expired, NOW) == (100.0, None)


def test_naive_promo_dates_are_treated_as_utc():
    p = _price(1, 'PL', 100, 1, promo=50, end=datetime(2026, 5, 2))
    assert is_promotion_active(p, NOW)


def test_zero_promotion_price_is_not_a_promotion():
    free = _price(1, 'PL', 100, 1, promo=0, end=NOW + timedelta(days=1))
    assert not is_promotion_active(free, NOW)
    assert effective_price(free, NOW) == (100.0, None)


def test_convert_price_value_rounds_half_up():
    assert convert_price_value(10, 4.5) == 45.0
    assert convert_price_value(1.005, 1) == 1.01
    assert convert_price_value(2.675, 1) == 2.68
    assert convert_price_value('abc', 2) == 0.0
    assert convert_price_value(float('inf'), 2) == 0.0


@pytest.mark.parametrize('raw,expected', [
    ('45,99 zł', 45.99),
    ('€ 12.50', 12.5),
    ('1.234,50', 1234.5),
    (None, 0.0),
    ('', 0.0),
    (7, 7.0),
])
def test_parse_price_string(raw, expected):
    assert parse_price_string(raw) == expected


def test_discount_percentage():
    assert calculate_discount_percentage(100, 75) == 25
    assert calculate_discount_percentage('200 zł', '150 zł') == 25
    assert calculate_discount_percentage(100, 100) == 0
    assert calculate_discount_percentage(0, 10) == 0


def test_currency_helpers():
    assert detect_currency_from_locale('pl') == 'PLN'
    assert detect_currency_from_locale('ua') == 'UAH'
    assert detect_currency_from_locale('en') == 'EUR'
    assert detect_currency_from_locale(None) == 'EUR'
    assert format_price(45, 'PLN') == '45.00 zł'
    assert format_price(3.5, 'EUR') == '3.50 €'


def test_resolve_item_price_converts_and_reports_discount():
    prices = [_price(1, 'PL', 100, 2, promo=80, end=NOW + timedelta(days=3), badge='HOT_DEALS')]
    out = resolve_item_price(prices, 'PL', 'PLN', {'PLN': 4.5}, NOW)
    assert out['price'] == 360.0
    assert out['original_price'] == 450.0
    assert out['discount_percent'] == 20
    assert out['in_stock'] is True
    assert out['badge'] == 'HOT_DEALS'
    assert out['currency'] == 'PLN'
    assert out['warehouse_id'] == 1 and out['warehouse_country'] == 'PL'


def test_resolve_item_price_without_prices():
    out = resolve_item_price([], 'PL', 'EUR', {}, NOW)
    assert out['price'] == 0.0 and out['in_stock'] is False and out['warehouse_id'] is None


def test_available_warehouses_orders_stock_first_and_hides_invisible():
    hidden = _price(4, 'PL', 1, 9)
    hidden.warehouse.is_visible = False
    prices = [_price(1, 'PL', 10, 0), _price(2, 'UA', 30, 1), _price(3, 'ES', 20, 1), hidden]
    rows = available_warehouses(prices, 'EUR', {}, NOW)
    assert [r['warehouse_id'] for r in rows] == [3, 2, 1]
