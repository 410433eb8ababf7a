from tests.test_utils_seed import admin_headers, ensure_brand, ensure_category, ensure_item, ensure_user, jwt_headers


def test_category_crud_with_translations(client, app_instance):
    headers = admin_headers(app_instance)
    resp = client.post('/admin/categories', json={
        'name': 'Tax Laptops', 'translations': {'pl': 'Tax Laptopy', 'en': 'Tax Laptops EN'},
    }, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['slug'] == 'tax-laptops'
    assert body['translations'] == {'pl': 'Tax Laptopy', 'en': 'Tax Laptops EN'}
    assert body['name'] == 'Tax Laptopy'

    dup = client.post('/admin/categories', json={'name': 'Tax Laptops'}, headers=headers)
    assert dup.status_code == 409
    assert dup.get_json() == {'error': 'slug already exists'}

    resp = client.put('/admin/categories/tax-laptops?locale=en', json={
        'is_visible': False, 'translations': {'pl': None},
    }, headers=headers)
    body = resp.get_json()
    assert body['is_visible'] is False
    assert body['translations'] == {'en': 'Tax Laptops EN'}
    assert body['name'] == 'Tax Laptops EN'

    listed = client.get('/admin/categories?q=Tax Lap', headers=headers).get_json()
    assert [c['slug'] for c in listed['data']] == ['tax-laptops']
    assert client.get('/admin/categories?locale=xx', headers=headers).status_code == 400

    assert client.delete('/admin/categories/tax-laptops', headers=headers).get_json() == {'deleted': True, 'slug': 'tax-laptops'}
    assert client.get('/admin/categories/tax-laptops', headers=headers).status_code == 404


def test_category_validation(client, app_instance):
    headers = admin_headers(app_instance)
    assert client.post('/admin/categories', json={}, headers=headers).status_code == 400
    resp = client.post('/admin/categories', json={'name': 'Tax Bad', 'translations': {'xx': 'nope'}}, headers=headers)
    assert resp.get_json() == {'error': 'Invalid locale'}
    assert client.put('/admin/categories/no-such', json={'name': 'x'}, headers=headers).status_code == 404


def test_subcategories(client, app_instance):
    headers = admin_headers(app_instance)
    ensure_category('tax-phones')
    ensure_category('tax-tablets')
    resp = client.post('/admin/subcategories', json={'name': 'Tax Android', 'category_slug': 'tax-phones'}, headers=headers)
    assert resp.status_code == 201
    assert resp.get_json()['category_slug'] == 'tax-phones'
    parent = client.get('/admin/categories/tax-phones', headers=headers).get_json()
    assert [s['slug'] for s in parent['subcategories']] == ['tax-android']

    # slugs are shared with categories
    resp = client.post('/admin/subcategories', json={'name': 'Tax Phones', 'category_slug': 'tax-tablets'}, headers=headers)
    assert resp.status_code == 409
    resp = client.post('/admin/subcategories', json={'name': 'Orphan', 'category_slug': 'no-such'}, headers=headers)
    assert resp.status_code == 404
    assert client.post('/admin/subcategories', json={'name': 'No parent'}, headers=headers).status_code == 400

    resp = client.put('/admin/subcategories/tax-android', json={'category_slug': 'tax-tablets'}, headers=headers)
    assert resp.get_json()['category_slug'] == 'tax-tablets'
    listed = client.get('/admin/subcategories?category=tax-tablets', headers=headers).get_json()
    assert [s['slug'] for s in listed['data']] == ['tax-android']

    ensure_item('TAX-SUB-1', 'tax-android')
    resp = client.delete('/admin/subcategories/tax-android', headers=headers)
    assert resp.status_code == 409
    assert resp.get_json() == {'error': 'Subcategory has items'}
    resp = client.delete('/admin/categories/tax-tablets', headers=headers)
    assert resp.get_json() == {'error': 'Category has items'}


def test_delete_empty_subcategory(client, app_instance):
    headers = admin_headers(app_instance)
    ensure_category('tax-audio')
    client.post('/admin/subcategories', json={'name': 'Tax Headphones', 'category_slug': 'tax-audio'}, headers=headers)
    resp = client.delete('/admin/subcategories/tax-headphones', headers=headers)
    assert resp.get_json() == {'deleted': True, 'slug': 'tax-headphones'}
    assert client.get('/admin/categories/tax-audio', headers=headers).get_json()['subcategories'] == []


def test_brands(client, app_instance):
    headers = admin_headers(app_instance)
    resp = client.post('/admin/brands', json={'name': 'Tax Brand Co'}, headers=headers)
    assert resp.status_code == 201
    assert resp.get_json()['alias'] == 'tax-brand-co'
    assert client.post('/admin/brands', json={'name': 'Other', 'alias': 'tax-brand-co'}, headers=headers).status_code == 409
    resp = client.put('/admin/brands/tax-brand-co', json={'is_visible': False, 'image_link': '/img/logo.png'}, headers=headers)
    assert resp.get_json()['image_link'] == '/img/logo.png'
    assert client.get('/admin/brands/tax-brand-co', headers=headers).get_json()['is_visible'] is False

    ensure_category('tax-brand-cat')
    item = ensure_item('TAX-BRAND-1', 'tax-brand-cat', brand_slug='tax-brand-co')
    resp = client.delete('/admin/brands/tax-brand-co', headers=headers)
    assert resp.get_json() == {'deleted': True, 'alias': 'tax-brand-co'}
    assert item.brand_slug is None
    assert client.get('/admin/brands/tax-brand-co', headers=headers).status_code == 404


def test_taxonomy_permissions(client, app_instance):
    employee = jwt_headers(app_instance, ensure_user('tax_employee@example.com', role='employee'))
    assert client.get('/admin/categories', headers=employee).status_code == 200
    assert client.post('/admin/categories', json={'name': 'Nope'}, headers=employee).status_code == 403
    ensure_brand('tax-perm-brand')
    assert client.delete('/admin/brands/tax-perm-brand', headers=employee).status_code == 403
