import io
from tests.test_utils_seed import (
    ensure_brand, ensure_category, ensure_country, ensure_item, ensure_subcategory, ensure_warehouse,
)


def _seed_catalog():
    ensure_country('pub-poland', 'PL')
    ensure_country('pub-spain', 'ES')
    pl = ensure_warehouse('pub-wh-pl', 'Warsaw', country_slug='pub-poland')
    es = ensure_warehouse('pub-wh-es', 'Madrid', country_slug='pub-spain')
    cat = ensure_category('pub-phones', 'Pub Phones', translations={'en': 'Pub Phones EN', 'pl': 'Pub Telefony'})
    ensure_subcategory('pub-phones-android', cat, name='Pub Android')
    ensure_brand('pub-brand', name='Pub Brand')
    ensure_item('PUB-1', 'pub-phones', name='Alpha phone', brand_slug='pub-brand', locale='en', prices=[
        {'warehouse_id': pl.id, 'price': 100.0, 'quantity': 0},
        {'warehouse_id': es.id, 'price': 90.0, 'quantity': 3},
    ])
    ensure_item('PUB-2', 'pub-phones-android', name='Beta phone', locale='en', prices=[
        {'warehouse_id': pl.id, 'price': 300.0, 'quantity': 2},
    ])
    ensure_item('PUB-3', 'pub-phones', name='Hidden phone', locale='en', is_displayed=False, prices=[
        {'warehouse_id': pl.id, 'price': 5.0, 'quantity': 2},
    ])
    return pl, es


def test_list_items_pagination_and_visibility(client):
    _seed_catalog()
    resp = client.get('/public/items/en?category=pub-phones&currency=EUR&sort=price')
    assert resp.status_code == 200
    body = resp.get_json()
    assert [i['article_id'] for i in body['data']] == ['PUB-1', 'PUB-2']
    assert body['pagination']['total'] == 2
    assert body['pagination']['limit'] == 24
    assert resp.headers.get('ETag')

    page = client.get('/public/items/en?category=pub-phones&pageSize=1&page=2&sort=price').get_json()
    assert [i['article_id'] for i in page['data']] == ['PUB-2']
    assert page['pagination']['offset'] == 1


def test_recommended_price_follows_preferred_country(client):
    _seed_catalog()
    body = client.get('/public/items/en?category=pub-phones&currency=EUR&sort=price').get_json()
    first = body['data'][0]['price']
    assert first['warehouse_country'] == 'PL'
    assert first['price'] == 100.0
    assert first['in_stock'] is False
    body = client.get('/public/items/en?category=pub-phones&currency=EUR&sort=price&country=es').get_json()
    first = body['data'][0]['price']
    assert first['warehouse_country'] == 'ES'
    assert first['price'] == 90.0
    assert first['in_stock'] is True


def test_filters(client):
    _seed_catalog()
    in_brand = client.get('/public/items/en?category=pub-phones&brand=pub-brand').get_json()
    assert [i['article_id'] for i in in_brand['data']] == ['PUB-1']
    pricey = client.get('/public/items/en?category=pub-phones&currency=EUR&min_price=200').get_json()
    assert [i['article_id'] for i in pricey['data']] == ['PUB-2']
    assert client.get('/public/items/en?min_price=abc').status_code == 400
    assert client.get('/public/items/en?sort=bogus').status_code == 400
    assert client.get('/public/items/en?currency=USD').status_code == 400


def test_invalid_locale(client):
    resp = client.get('/public/items/xx')
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Invalid locale'}
    assert client.get('/public/categories/xx').status_code == 400


def test_item_detail_currency_and_warehouses(client):
    _seed_catalog()
    resp = client.get('/public/items/pl/unknown_pub-2')
    assert resp.status_code == 200
    body = resp.get_json()
    # pl locale defaults to PLN
    assert body['price']['currency'] == 'PLN'
    assert body['name'] == 'Beta phone'
    assert body['warehouses'][0]['warehouse_name'] == 'Warsaw'
    by_article = client.get('/public/items/en/PUB-1').get_json()
    assert by_article['brand']['alias'] == 'pub-brand'
    assert client.get('/public/items/en/unknown_pub-3').status_code == 404
    assert client.get('/public/items/en/does-not-exist').status_code == 404


def test_categories_translated(client):
    _seed_catalog()
    body = client.get('/public/categories/pl').get_json()
    cat = next(c for c in body['data'] if c['slug'] == 'pub-phones')
    assert cat['name'] == 'Pub Telefony'
    assert [s['slug'] for s in cat['subcategories']] == ['pub-phones-android']


def test_category_page_includes_subcategory_items(client):
    _seed_catalog()
    body = client.get('/public/category/en/pub-phones').get_json()
    assert body['category']['name'] == 'Pub Phones EN'
    assert {i['article_id'] for i in body['data']} == {'PUB-1', 'PUB-2'}
    sub = client.get('/public/category/en/pub-phones-android').get_json()
    assert [i['article_id'] for i in sub['data']] == ['PUB-2']
    assert sub['category']['parent']['slug'] == 'pub-phones'
    assert client.get('/public/category/en/nope').status_code == 404


def test_search(client):
    _seed_catalog()
    assert client.get('/public/search').get_json() == {'items': [], 'categories': [], 'subcategories': []}
    body = client.get('/public/search?q=beta&locale=en').get_json()
    assert [i['article_id'] for i in body['items']] == ['PUB-2']
    body = client.get('/public/search?q=pub andr&locale=en').get_json()
    assert body['items'] == []
    body = client.get('/public/search?q=pub android').get_json()
    assert [s['slug'] for s in body['subcategories']] == ['pub-phones-android']
    hidden = client.get('/public/search?q=hidden phone&locale=en').get_json()
    assert hidden['items'] == []


def test_brands_listed(client):
    _seed_catalog()
    body = client.get('/public/brands').get_json()
    assert 'pub-brand' in [b['alias'] for b in body['data']]


def test_etag_conditional_public_items(client):
    _seed_catalog()
    first = client.get('/public/items/en?category=pub-phones')
    etag = first.headers['ETag']
    second = client.get('/public/items/en?category=pub-phones', headers={'If-None-Match': etag})
    assert second.status_code == 304
    assert second.headers.get('ETag') == etag
