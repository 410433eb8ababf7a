from storefront import get_db
from storefront.models.item import ItemPrice
from storefront.services.currency import get_exchange_rate
from storefront.services.pricing import convert_price_value, format_price
from tests.test_utils_seed import admin_headers, ensure_category, ensure_item, ensure_user, ensure_warehouse, jwt_headers


def _seed(article_id, quantity=5, price=20.0, promotion_price=None):
    ensure_category('ord-cat')
    wh = ensure_warehouse('ord-wh', 'Order Warehouse')
    item = ensure_item(article_id, 'ord-cat', name=f'{article_id} name', prices=[
        {'warehouse_id': wh.id, 'price': price, 'quantity': quantity, 'promotion_price': promotion_price},
    ])
    return item, wh


def _stock(item, wh):
    session = get_db()
    return session.query(ItemPrice).filter_by(item_slug=item.slug, warehouse_id=wh.id).one().quantity


def _checkout(client, headers, article_id, wh, quantity=1, currency='EUR', **extra):
    body = {'cart_items': [{'article_id': article_id, 'warehouse_id': wh.id, 'quantity': quantity}], 'currency': currency}
    body.update(extra)
    return client.post('/orders/checkout', json=body, headers=headers)


def test_cart_add_merge_and_remove(client, app_instance):
    item, wh = _seed('ORD-CART')
    headers = jwt_headers(app_instance, ensure_user('ord_cart@example.com'))
    assert client.get('/orders/cart', headers=headers).get_json()['items'] == []
    resp = client.post('/orders/cart', json={'item_id': item.id, 'warehouse_id': wh.id, 'quantity': 2}, headers=headers)
    assert resp.status_code == 201
    resp = client.post('/orders/cart', json={'item_id': item.id, 'warehouse_id': wh.id}, headers=headers)
    lines = resp.get_json()['items']
    assert len(lines) == 1
    assert lines[0]['quantity'] == 3 and lines[0]['article_id'] == 'ORD-CART'
    assert client.post('/orders/cart', json={'item_id': 999999}, headers=headers).status_code == 404
    assert client.post('/orders/cart', json={'item_id': item.id, 'quantity': 0}, headers=headers).status_code == 400
    resp = client.delete(f"/orders/cart/{lines[0]['id']}", headers=headers)
    assert resp.get_json()['items'] == []
    assert client.delete(f"/orders/cart/{lines[0]['id']}", headers=headers).status_code == 404


def test_checkout_snapshots_lines_and_reserves_stock(client, app_instance):
    item, wh = _seed('ORD-CHK', quantity=5, price=20.0)
    user = ensure_user('ord_checkout@example.com')
    headers = jwt_headers(app_instance, user)
    resp = _checkout(client, headers, 'ORD-CHK', wh, quantity=2, comment='leave at door')
    assert resp.status_code == 201, resp.get_json()
    order = resp.get_json()
    assert order['status'] == 'NEW'
    assert order['user_id'] == user.id
    assert order['original_total'] == 40.0
    assert order['total_price'] == '40.00 €'
    assert order['comment'] == 'leave at door'
    line = order['line_items'][0]
    assert line['article_id'] == 'ORD-CHK'
    assert line['unit_price'] == 20.0 and line['line_total'] == 40.0
    assert line['warehouse_name'] == 'ord-wh'
    assert order['payments'][0]['status'] == 'PENDING'
    assert order['payments'][0]['amount'] == 4000
    assert _stock(item, wh) == 3
    assert item.sell_counter == 2


def test_checkout_uses_running_promotion_and_display_currency(client, app_instance):
    _seed('ORD-PROMO', quantity=5, price=50.0, promotion_price=40.0)
    wh = ensure_warehouse('ord-wh')
    headers = jwt_headers(app_instance, ensure_user('ord_promo@example.com'))
    resp = _checkout(client, headers, 'ORD-PROMO', wh, quantity=1, currency='PLN')
    assert resp.status_code == 201
    order = resp.get_json()
    assert order['original_total'] == 40.0
    expected = convert_price_value(40.0, get_exchange_rate('EUR', 'PLN'))
    assert order['total_price'] == format_price(expected, 'PLN')
    assert order['currency'] == 'PLN'


def test_checkout_from_pending_cart(client, app_instance):
    item, wh = _seed('ORD-FROMCART', quantity=4)
    headers = jwt_headers(app_instance, ensure_user('ord_fromcart@example.com'))
    client.post('/orders/cart', json={'item_id': item.id, 'warehouse_id': wh.id, 'quantity': 1}, headers=headers)
    resp = client.post('/orders/checkout', json={'currency': 'EUR'}, headers=headers)
    assert resp.status_code == 201
    assert resp.get_json()['line_items'][0]['article_id'] == 'ORD-FROMCART'
    # the checked-out cart is replaced by a fresh one
    assert client.get('/orders/cart', headers=headers).get_json()['items'] == []


def test_checkout_errors(client, app_instance):
    item, wh = _seed('ORD-ERR', quantity=1)
    headers = jwt_headers(app_instance, ensure_user('ord_err@example.com'))
    resp = client.post('/orders/checkout', json={'cart_items': []}, headers=headers)
    assert resp.get_json() == {'error': 'Cart is empty'}
    resp = client.post('/orders/checkout', json={'cart_items': [{'quantity': 1}]}, headers=headers)
    assert resp.get_json() == {'error': 'Each cart item must include an articleId'}
    resp = _checkout(client, headers, 'ORD-NOPE', wh)
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Item ORD-NOPE not found'}
    resp = _checkout(client, headers, 'ORD-ERR', wh, quantity=2)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Insufficient stock for item ORD-ERR'}
    assert _checkout(client, headers, 'ORD-ERR', wh, currency='USD').status_code == 400
    assert _stock(item, wh) == 1


def test_checkout_sums_rows_for_the_same_warehouse_price(client, app_instance):
    item, wh = _seed('ORD-DUP', quantity=3)
    headers = jwt_headers(app_instance, ensure_user('ord_dup@example.com'))
    row = {'article_id': 'ORD-DUP', 'warehouse_id': wh.id, 'quantity': 2}
    resp = client.post('/orders/checkout', json={'cart_items': [row, row]}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Insufficient stock for item ORD-DUP'}
    assert _stock(item, wh) == 3
    one = dict(row, quantity=1)
    resp = client.post('/orders/checkout', json={'cart_items': [row, one]}, headers=headers)
    assert resp.status_code == 201
    assert _stock(item, wh) == 0


def test_checkout_rejects_malformed_rows(client, app_instance):
    item, wh = _seed('ORD-BAD', quantity=2)
    headers = jwt_headers(app_instance, ensure_user('ord_bad@example.com'))
    resp = client.post('/orders/checkout', json={'cart_items': [{'article_id': 'ORD-BAD', 'warehouse_id': 'abc'}]},
                       headers=headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid warehouse for item ORD-BAD'}
    resp = client.post('/orders/checkout', json={'cart_items': ['ORD-BAD']}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid cart item'}
    assert _stock(item, wh) == 2


def test_price_request(client, app_instance):
    item, wh = _seed('ORD-ASK')
    headers = jwt_headers(app_instance, ensure_user('ord_ask@example.com'))
    resp = client.post('/orders/price-request', json={'item_id': item.id, 'warehouse_id': wh.id, 'quantity': 10,
                                                     'comment': 'bulk price?'}, headers=headers)
    assert resp.status_code == 201
    order = resp.get_json()
    assert order['status'] == 'ASK_FOR_PRICE'
    assert order['payments'] == []
    assert _stock(item, wh) == 5
    resp = client.post('/orders/price-request', json={'item_id': item.id}, headers=headers)
    assert resp.get_json() == {'error': 'Missing required fields: item_id, warehouse_id, quantity'}
    other = ensure_warehouse('ord-wh-empty')
    resp = client.post('/orders/price-request', json={'item_id': item.id, 'warehouse_id': other.id, 'quantity': 1},
                       headers=headers)
    assert resp.status_code == 404


def test_order_ownership(client, app_instance):
    _, wh = _seed('ORD-OWN', quantity=10)
    owner = jwt_headers(app_instance, ensure_user('ord_owner@example.com'))
    stranger = jwt_headers(app_instance, ensure_user('ord_stranger@example.com'))
    order_id = _checkout(client, owner, 'ORD-OWN', wh).get_json()['id']
    assert client.get(f'/orders/{order_id}', headers=owner).status_code == 200
    assert client.get(f'/orders/{order_id}', headers=stranger).status_code == 403
    assert client.get(f'/orders/{order_id}', headers=admin_headers(app_instance)).status_code == 200
    mine = client.get('/orders', headers=owner).get_json()
    assert [o['id'] for o in mine['data']] == [order_id]
    assert client.get('/orders', headers=stranger).get_json()['data'] == []
    assert client.get('/orders?status=BOGUS', headers=owner).status_code == 400
    assert client.get('/orders/999999', headers=owner).status_code == 404


def test_admin_order_status_flow(client, app_instance):
    _, wh = _seed('ORD-FSM', quantity=10)
    shopper = jwt_headers(app_instance, ensure_user('ord_fsm@example.com'))
    admin = admin_headers(app_instance)
    order_id = _checkout(client, shopper, 'ORD-FSM', wh).get_json()['id']

    detail = client.get(f'/admin/orders/{order_id}', headers=admin).get_json()
    assert detail['allowed_statuses'] == ['CANCELLED', 'PROCESSING', 'WAITING_FOR_PAYMENT']

    url = f'/admin/orders/{order_id}/status'
    resp = client.patch(url, json={'status': 'COMPLETED'}, headers=admin)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid order status transition NEW -> COMPLETED'}
    assert client.patch(url, json={'status': 'SHIPPED'}, headers=admin).get_json() == {'error': 'status invalid'}
    assert client.patch(url, json={'status': 'PROCESSING'}, headers=admin).get_json()['status'] == 'PROCESSING'
    resp = client.patch(url, json={'status': 'DELIVERY'}, headers=admin)
    assert resp.get_json() == {'error': 'delivery_id required for DELIVERY status'}
    resp = client.patch(url, json={'status': 'DELIVERY', 'delivery_id': 'DHL-123'}, headers=admin)
    assert resp.get_json()['delivery_id'] == 'DHL-123'
    assert client.patch(url, json={'status': 'COMPLETED'}, headers=admin).get_json()['status'] == 'COMPLETED'
    assert client.patch(url, json={'status': 'NEW'}, headers=admin).status_code == 400

    listed = client.get('/admin/orders?status=COMPLETED&sort=-id', headers=admin).get_json()
    assert order_id in [o['id'] for o in listed['data']]
    assert client.patch(url, json={'status': 'PROCESSING'}, headers=shopper).status_code == 403


def test_payment_status_and_refund(client, app_instance):
    _, wh = _seed('ORD-PAY', quantity=10)
    shopper = jwt_headers(app_instance, ensure_user('ord_pay@example.com'))
    admin = admin_headers(app_instance)
    order = _checkout(client, shopper, 'ORD-PAY', wh).get_json()
    payment_id = order['payments'][0]['id']

    listed = client.get(f"/admin/payments?order_id={order['id']}", headers=admin).get_json()
    assert [p['id'] for p in listed['data']] == [payment_id]

    refund = f'/admin/payments/{payment_id}/refund'
    assert client.post(refund, headers=admin).status_code == 400
    resp = client.patch(f'/admin/payments/{payment_id}/status', json={'status': 'REFUNDED'}, headers=admin)
    assert resp.get_json() == {'error': 'Use the refund endpoint'}
    resp = client.patch(f'/admin/payments/{payment_id}/status',
                        json={'status': 'COMPLETED', 'method': 'card', 'transaction_id': 'tx-1'}, headers=admin)
    assert resp.status_code == 200
    assert resp.get_json()['transaction_id'] == 'tx-1'
    resp = client.post(refund, headers=admin)
    assert resp.get_json()['status'] == 'REFUNDED'
    assert client.get(f"/admin/orders/{order['id']}", headers=admin).get_json()['status'] == 'REFUND'
    resp = client.patch(f'/admin/payments/{payment_id}/status', json={'status': 'FAILED'}, headers=admin)
    assert resp.get_json() == {'error': 'Invalid payment status transition REFUNDED -> FAILED'}
    assert client.get('/admin/payments/999999', headers=admin).status_code == 404
    assert client.get('/admin/payments', headers=shopper).status_code == 403
