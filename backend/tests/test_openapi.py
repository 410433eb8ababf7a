def test_openapi_spec_available(client):
    resp = client.get('/openapi.json')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['openapi'].startswith('3.')
    assert body['info']['title'] == 'Storefront API'
    for path in ('/auth/login', '/public/items/{locale}', '/orders/checkout', '/currency-exchange'):
        assert path in body['paths'], path


def test_docs_page(client):
    resp = client.get('/docs')
    assert resp.status_code == 200
    assert b'redoc' in resp.data


def test_admin_paths_carry_permissions(client):
    spec = client.get('/openapi.json').get_json()
    items = spec['paths']['/admin/items']
    assert items['get']['x-required-permissions'] == ['ITEM.READ']
    assert items['post']['x-required-permissions'] == ['ITEM.CREATE']
    assert spec['paths']['/admin/payments/{payment_id}/refund']['post']['x-required-permissions'] == ['PAY.REFUND']
    upload = spec['paths']['/admin/items/bulk-upload']['post']
    assert 'multipart/form-data' in upload['requestBody']['content']
    # write-only single paths have no GET
    assert 'get' not in spec['paths']['/admin/users/{user_id}/role']
    assert spec['paths']['/admin/users/{user_id}/discount-level']['put']['x-required-permissions'] == ['ADMIN.USER.MANAGE']
    assert spec['paths']['/admin/pages/{page_id}']['put']['x-required-permissions'] == ['CONTENT.MANAGE']
    assert spec['paths']['/admin/dashboard/stats']['get']['x-required-permissions'] == ['ADMIN.DASHBOARD.READ']
    assert '/public/pages/{locale}/{slug}' in spec['paths']


def test_sort_and_page_components(client):
    spec = client.get('/openapi.json').get_json()
    comps = spec['components']['parameters']
    for name in ('SortItemsParam', 'SortOrdersParam', 'SortPublicItemsParam', 'PageParam', 'PageSizeParam'):
        assert name in comps, name
    assert comps['PageSizeParam']['schema']['default'] == 24
    params = spec['paths']['/admin/orders']['get']['parameters']
    assert any(p.get('$ref', '').endswith('SortOrdersParam') for p in params)


def test_list_caching_headers_documented(client):
    spec = client.get('/openapi.json').get_json()
    for p in ['/admin/items', '/admin/orders', '/admin/warehouses', '/admin/brands']:
        hdrs = spec['paths'][p]['get']['responses']['200'].get('headers', {})
        for h in ['ETag', 'Last-Modified', 'X-Last-Modified-ISO']:
            assert h in hdrs, f"{p} missing header doc {h}"


def test_status_transitions_documented(client):
    schemas = client.get('/openapi.json').get_json()['components']['schemas']
    assert 'ASK_FOR_PRICE' in schemas['Order']['x-transitions']
    assert 'REFUNDED' in schemas['Payment']['x-transitions']


def test_operation_ids_unique(client):
    spec = client.get('/openapi.json').get_json()
    ids = [op['operationId'] for ops in spec['paths'].values() for op in ops.values()]
    assert len(ids) == len(set(ids))
