from tests.test_utils_seed import admin_headers, ensure_category, ensure_country, ensure_item, ensure_user, ensure_warehouse, jwt_headers


def test_warehouse_crud(client, app_instance):
    headers = admin_headers(app_instance)
    ensure_country('inv-poland', 'PL')
    resp = client.post('/admin/warehouses', json={'displayed_name': 'Inv Krakow', 'country_slug': 'inv-poland'}, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    wh = resp.get_json()
    assert wh['name'] == 'inv-krakow'
    assert wh['country_code'] == 'PL'

    dup = client.post('/admin/warehouses', json={'displayed_name': 'Inv Krakow'}, headers=headers)
    assert dup.status_code == 409
    bad = client.post('/admin/warehouses', json={'displayed_name': 'Inv X', 'country_slug': 'atlantis'}, headers=headers)
    assert bad.get_json() == {'error': 'Unknown warehouse country'}
    assert client.post('/admin/warehouses', json={}, headers=headers).status_code == 400

    resp = client.put(f"/admin/warehouses/{wh['id']}", json={'displayed_name': 'Inv Krakow 2', 'is_visible': False},
                      headers=headers)
    assert resp.get_json()['displayed_name'] == 'Inv Krakow 2'
    listed = client.get('/admin/warehouses?country=inv-poland&is_visible=false', headers=headers).get_json()
    assert [w['id'] for w in listed['data']] == [wh['id']]

    assert client.delete(f"/admin/warehouses/{wh['id']}", headers=headers).get_json() == {'deleted': True, 'id': wh['id']}
    assert client.get(f"/admin/warehouses/{wh['id']}", headers=headers).status_code == 404


def test_warehouse_with_stock_cannot_be_deleted(client, app_instance):
    headers = admin_headers(app_instance)
    ensure_category('inv-cat')
    full = ensure_warehouse('inv-full')
    empty = ensure_warehouse('inv-empty')
    item = ensure_item('INV-1', 'inv-cat', prices=[
        {'warehouse_id': full.id, 'price': 10.0, 'quantity': 3},
        {'warehouse_id': empty.id, 'price': 10.0, 'quantity': 0},
    ])
    resp = client.delete(f'/admin/warehouses/{full.id}', headers=headers)
    assert resp.status_code == 409
    assert resp.get_json() == {'error': 'Warehouse still holds stock'}
    assert client.delete(f'/admin/warehouses/{empty.id}', headers=headers).status_code == 200
    assert [p.warehouse_id for p in item.prices] == [full.id]


def test_stock_listing_and_adjust(client, app_instance):
    headers = admin_headers(app_instance)
    ensure_category('inv-cat')
    wh = ensure_warehouse('inv-stock')
    ensure_item('INV-2', 'inv-cat', prices=[{'warehouse_id': wh.id, 'price': 5.0, 'quantity': 2}])
    ensure_item('INV-3', 'inv-cat', prices=[{'warehouse_id': wh.id, 'price': 5.0, 'quantity': 0}])
    stock = client.get(f'/admin/warehouses/{wh.id}/stock?in_stock=true', headers=headers).get_json()
    assert [r['article_id'] for r in stock['data']] == ['INV-2']

    url = f'/admin/warehouses/{wh.id}/stock/INV-2/adjust'
    resp = client.put(url, json={'delta': 5}, headers=headers)
    assert resp.get_json()['quantity'] == 7
    resp = client.put(url, json={'delta': -8}, headers=headers)
    assert resp.get_json() == {'error': 'quantity cannot go below 0'}
    assert client.put(url, json={}, headers=headers).get_json() == {'error': 'delta required'}
    assert client.put(url, json={'delta': 'x'}, headers=headers).get_json() == {'error': 'delta must be int'}
    resp = client.put(f'/admin/warehouses/{wh.id}/stock/INV-NONE/adjust', json={'delta': 1}, headers=headers)
    assert resp.get_json() == {'error': 'Item not found'}
    other = ensure_warehouse('inv-other')
    resp = client.put(f'/admin/warehouses/{other.id}/stock/INV-2/adjust', json={'delta': 1}, headers=headers)
    assert resp.get_json() == {'error': 'Item not available in selected warehouse'}


def test_warehouse_countries(client, app_instance):
    headers = admin_headers(app_instance)
    resp = client.post('/admin/warehouse-countries', json={'name': 'Inv Czechia', 'country_code': 'cz'}, headers=headers)
    assert resp.status_code == 201
    assert resp.get_json()['country_code'] == 'CZ'
    assert resp.get_json()['slug'] == 'inv-czechia'
    assert client.post('/admin/warehouse-countries', json={'name': 'Inv Czechia', 'country_code': 'CZ'},
                       headers=headers).status_code == 409
    assert client.post('/admin/warehouse-countries', json={'name': 'Nope'}, headers=headers).status_code == 400
    resp = client.put('/admin/warehouse-countries/inv-czechia', json={'phone_code': '+420'}, headers=headers)
    assert resp.get_json()['phone_code'] == '+420'

    ensure_warehouse('inv-prague', country_slug='inv-czechia')
    resp = client.delete('/admin/warehouse-countries/inv-czechia', headers=headers)
    assert resp.get_json() == {'error': 'Country has warehouses'}
    client.post('/admin/warehouse-countries', json={'name': 'Inv Empty', 'country_code': 'EE'}, headers=headers)
    assert client.delete('/admin/warehouse-countries/inv-empty', headers=headers).status_code == 200
    slugs = [c['slug'] for c in client.get('/admin/warehouse-countries', headers=headers).get_json()['data']]
    assert 'inv-czechia' in slugs and 'inv-empty' not in slugs


def test_employee_reads_but_cannot_manage(client, app_instance):
    employee = jwt_headers(app_instance, ensure_user('inv_employee@example.com', role='employee'))
    assert client.get('/admin/warehouses', headers=employee).status_code == 200
    assert client.post('/admin/warehouses', json={'displayed_name': 'Nope'}, headers=employee).status_code == 403
