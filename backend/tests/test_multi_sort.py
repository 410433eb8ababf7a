from tests.test_utils_seed import admin_headers, ensure_category, ensure_item


def test_items_multi_sort(client, app_instance):
    headers = admin_headers(app_instance)
    ensure_category('srt-cat')
    for aid in ('SRT-B', 'SRT-A', 'SRT-C'):
        ensure_item(aid, 'srt-cat')
    resp = client.get('/admin/items?category=srt-cat&sort=-article_id', headers=headers)
    assert resp.status_code == 200
    assert [i['article_id'] for i in resp.get_json()['data']] == ['SRT-C', 'SRT-B', 'SRT-A']
    resp = client.get('/admin/items?category=srt-cat&sort=sell_counter,article_id', headers=headers)
    assert [i['article_id'] for i in resp.get_json()['data']] == ['SRT-A', 'SRT-B', 'SRT-C']


def test_unknown_sort_field_rejected(client, app_instance):
    headers = admin_headers(app_instance)
    resp = client.get('/admin/items?sort=price', headers=headers)
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid sort field price'}


def test_parse_sort():
    from storefront.utils.sorting import parse_sort
    assert parse_sort('-price, created_at,,') == [('price', True), ('created_at', False)]
    assert parse_sort(None) == []
