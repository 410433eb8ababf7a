import pytest
from storefront import get_db
from storefront.models.currency import CurrencyExchange
from storefront.services.currency import get_exchange_rate, get_rates, set_exchange_rate
from tests.test_utils_seed import admin_headers, ensure_user, jwt_headers


def _clear_rates():
    session = get_db()
    session.query(CurrencyExchange).delete()
    session.commit()


def test_same_currency_and_fallback_rates():
    _clear_rates()
    assert get_exchange_rate('PLN', 'PLN') == 1.0
    assert get_exchange_rate('EUR', 'PLN') == 4.5
    assert get_exchange_rate('PLN', 'UAH') == pytest.approx(40.0 / 4.5)


def test_direct_row_then_bridge_through_base():
    _clear_rates()
    session = get_db()
    set_exchange_rate('EUR', 'PLN', 4.0, session=session)
    set_exchange_rate('UAH', 'EUR', 0.025, session=session)
    session.commit()
    assert get_exchange_rate('EUR', 'PLN') == 4.0
    # EUR->UAH derived from the inverse row
    assert get_exchange_rate('EUR', 'UAH') == pytest.approx(40.0)
    assert get_exchange_rate('PLN', 'UAH') == pytest.approx(40.0 / 4.0)
    rates = get_rates(session)
    assert rates['EUR'] == 1.0 and rates['PLN'] == 4.0
    _clear_rates()


def test_public_get_lists_rates(client):
    resp = client.get('/currency-exchange')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['base'] == 'EUR'
    assert set(body['rates']) == {'EUR', 'PLN', 'UAH'}
    assert 'data' in body


def test_put_requires_permission(client, app_instance):
    resp = client.put('/currency-exchange', json={'from': 'EUR', 'to': 'PLN', 'rate': 4.3})
    assert resp.status_code == 401
    user = ensure_user('cur_shopper@example.com')
    resp = client.put('/currency-exchange', json={'from': 'EUR', 'to': 'PLN', 'rate': 4.3},
                      headers=jwt_headers(app_instance, user))
    assert resp.status_code == 403


@pytest.mark.parametrize('payload', [
    {'from': 'EUR', 'to': 'PLN', 'rate': 0},
    {'from': 'EUR', 'to': 'PLN', 'rate': -1},
    {'from': 'EUR', 'to': 'PLN', 'rate': 'abc'},
    {'from': 'EUR', 'to': 'USD', 'rate': 1.1},
    {'from': 'EUR', 'to': 'EUR', 'rate': 1},
    {'from': 'EUR', 'rate': 1},
])
def test_put_validation(client, app_instance, payload):
    resp = client.put('/currency-exchange', json=payload, headers=admin_headers(app_instance))
    assert resp.status_code == 400
    assert 'error' in resp.get_json()


def test_put_upserts_rate(client, app_instance):
    _clear_rates()
    headers = admin_headers(app_instance)
    first = client.put('/currency-exchange', json={'from': 'eur', 'to': 'pln', 'rate': 4.25}, headers=headers)
    assert first.status_code == 200
    assert first.get_json()['rate'] == 4.25
    second = client.put('/currency-exchange', json={'from': 'EUR', 'to': 'PLN', 'rate': 4.4}, headers=headers)
    assert second.get_json()['id'] == first.get_json()['id']
    assert get_exchange_rate('EUR', 'PLN') == 4.4
    _clear_rates()
