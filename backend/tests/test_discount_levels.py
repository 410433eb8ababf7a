from storefront import get_db
from storefront.models.audit import AuditLog
from tests.test_utils_seed import admin_headers, ensure_user


def _create(client, headers, level, pct):
    return client.post('/admin/discount-levels', json={'level': level, 'discount_percentage': pct}, headers=headers)


def test_discount_level_crud(client, app_instance):
    headers = admin_headers(app_instance)
    resp = _create(client, headers, 7, 5)
    assert resp.status_code == 201
    gold = resp.get_json()
    assert gold['level'] == 7 and gold['discount_percentage'] == 5.0 and gold['user_count'] == 0
    assert _create(client, headers, 7, 10).get_json() == {'error': 'A discount level with this number already exists'}
    platinum = _create(client, headers, 8, 12.5).get_json()

    levels = [d['level'] for d in client.get('/admin/discount-levels', headers=headers).get_json()['data']]
    assert levels.index(7) < levels.index(8)

    url = f"/admin/discount-levels/{gold['id']}"
    assert client.put(url, json={'level': 8}, headers=headers).status_code == 409
    updated = client.put(url, json={'discount_percentage': 7.5}, headers=headers).get_json()
    assert updated['discount_percentage'] == 7.5
    entry = get_db().query(AuditLog).filter_by(action='DISCOUNT.UPDATE', entity_id=str(gold['id'])).one()
    assert entry.meta['changes'] == {'discount_percentage': {'before': 5.0, 'after': 7.5}}

    assert client.delete(f"/admin/discount-levels/{platinum['id']}", headers=headers).status_code == 200
    assert client.get(f"/admin/discount-levels/{platinum['id']}", headers=headers).status_code == 404


def test_discount_level_validation(client, app_instance):
    headers = admin_headers(app_instance)
    assert _create(client, headers, 0, 5).get_json() == {'error': 'Level must be a positive number'}
    assert _create(client, headers, 'x', 5).get_json() == {'error': 'Level must be a positive number'}
    assert _create(client, headers, 20, 101).get_json() == {'error': 'Discount percentage must be between 0 and 100'}
    assert _create(client, headers, 20, None).status_code == 400


def test_assign_discount_level_to_user(client, app_instance):
    headers = admin_headers(app_instance)
    silver = _create(client, headers, 30, 3).get_json()
    bronze = _create(client, headers, 31, 1).get_json()
    customer = ensure_user('discount_customer@example.com')
    url = f'/admin/users/{customer.id}/discount-level'

    assert client.put(url, json={'discount_level_id': silver['id']}, headers=headers).get_json()['discount_level_id'] == silver['id']
    # a new assignment replaces the old one
    assert client.put(url, json={'discount_level_id': bronze['id']}, headers=headers).get_json()['discount_level_id'] == bronze['id']
    counts = {d['id']: d['user_count'] for d in client.get('/admin/discount-levels', headers=headers).get_json()['data']}
    assert counts[silver['id']] == 0 and counts[bronze['id']] == 1

    listed = client.get('/admin/users?q=discount_customer', headers=headers).get_json()['data']
    assert listed[0]['discount_level_id'] == bronze['id']

    assert client.put(url, json={'discount_level_id': 999999}, headers=headers).status_code == 404
    assert client.put(url, json={'discount_level_id': 'gold'}, headers=headers).status_code == 400
    assert client.put('/admin/users/999999/discount-level', json={}, headers=headers).status_code == 404

    # deleting the level drops the assignment
    client.delete(f"/admin/discount-levels/{bronze['id']}", headers=headers)
    listed = client.get('/admin/users?q=discount_customer', headers=headers).get_json()['data']
    assert listed[0]['discount_level_id'] is None
