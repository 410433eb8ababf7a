from tests.test_utils_seed import admin_headers, ensure_category, ensure_item, ensure_user


def test_item_filters(client, app_instance):
    headers = admin_headers(app_instance)
    ensure_category('flt-cat')
    ensure_category('flt-other')
    ensure_item('FLT-1', 'flt-cat')
    ensure_item('FLT-2', 'flt-cat', is_displayed=False)
    ensure_item('FLT-3', 'flt-other')
    by_cat = client.get('/admin/items?category=flt-cat', headers=headers).get_json()
    assert sorted(i['article_id'] for i in by_cat['data']) == ['FLT-1', 'FLT-2']
    hidden = client.get('/admin/items?category=flt-cat&is_displayed=false', headers=headers).get_json()
    assert [i['article_id'] for i in hidden['data']] == ['FLT-2']
    assert client.get('/admin/items?is_displayed=maybe', headers=headers).get_json() == {'error': 'is_displayed invalid'}
    empty = client.get('/admin/items?category=', headers=headers).get_json()
    assert empty['pagination']['total'] >= 3


def test_pagination_meta_and_bounds(client, app_instance):
    headers = admin_headers(app_instance)
    for n in range(3):
        ensure_user(f'flt_page_{n}@example.com')
    page = client.get('/admin/users?q=flt_page_&limit=2&offset=1&sort=email', headers=headers).get_json()
    assert page['pagination'] == {'total': 3, 'limit': 2, 'offset': 1, 'returned': 2}
    assert [u['email'] for u in page['data']] == ['flt_page_1@example.com', 'flt_page_2@example.com']
    assert client.get('/admin/users?limit=abc', headers=headers).status_code == 400
    capped = client.get('/admin/users?limit=1000', headers=headers).get_json()
    assert capped['pagination']['limit'] == 200
