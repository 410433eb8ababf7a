from tests.test_utils_seed import admin_headers, ensure_user, jwt_headers


def test_admin_lists_and_filters_users(client, app_instance):
    headers = admin_headers(app_instance)
    ensure_user('roles_list_emp@example.com', role='employee')
    resp = client.get('/admin/users?role=employee&q=roles_list', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert [u['email'] for u in body['data']] == ['roles_list_emp@example.com']
    assert body['pagination']['total'] == 1
    assert client.get('/admin/users?role=wizard', headers=headers).status_code == 400


def test_set_role_changes_permissions(client, app_instance):
    headers = admin_headers(app_instance)
    target = ensure_user('roles_promote@example.com')
    resp = client.put(f'/admin/users/{target.id}/role', json={'role': 'employee'}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['role'] == 'employee'
    # claims are minted from the stored role
    emp_headers = jwt_headers(app_instance, target)
    assert client.get('/admin/items', headers=emp_headers).status_code == 200
    assert client.get('/admin/users', headers=emp_headers).status_code == 403


def test_set_role_validation(client, app_instance):
    headers = admin_headers(app_instance)
    target = ensure_user('roles_invalid@example.com')
    assert client.put(f'/admin/users/{target.id}/role', json={'role': 'root'}, headers=headers).status_code == 400
    assert client.put('/admin/users/999999/role', json={'role': 'user'}, headers=headers).status_code == 404


def test_cannot_demote_last_admin(client, app_instance):
    from storefront import get_db
    from storefront.models.authz import User
    session = get_db()
    only = ensure_user('admin@example.com', role='admin')
    others = session.query(User).filter(User.role == 'admin', User.id != only.id).all()
    for u in others:
        u.role = 'employee'
    session.commit()
    try:
        resp = client.put(f'/admin/users/{only.id}/role', json={'role': 'user'}, headers=jwt_headers(app_instance, only))
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'Cannot remove last admin'
    finally:
        for u in others:
            u.role = 'admin'
        session.commit()
