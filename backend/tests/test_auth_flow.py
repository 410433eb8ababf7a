from storefront import get_db
from storefront.models.authz import User


def test_register_login_and_me(client):
    resp = client.post('/auth/register', json={'name': 'Reg', 'email': 'Reg.Flow@example.com', 'password': 'longenough'})
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['user']['email'] == 'reg.flow@example.com'
    assert body['user']['role'] == 'user'
    assert body['access_token']

    resp = client.post('/auth/login', json={'email': 'reg.flow@example.com', 'password': 'longenough'})
    assert resp.status_code == 200
    token = resp.get_json()['access_token']

    me = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    body = me.get_json()
    assert body['email'] == 'reg.flow@example.com'
    assert sorted(body['perms']) == ['ORDER.CREATE', 'ORDER.READ_OWN']
    stored = get_db().query(User).filter_by(email='reg.flow@example.com').one()
    assert stored.password_hash != 'longenough'


def test_register_validation(client):
    assert client.post('/auth/register', json={'email': 'x@example.com'}).status_code == 400
    resp = client.post('/auth/register', json={'name': 'S', 'email': 'short@example.com', 'password': 'short'})
    assert resp.status_code == 400
    assert 'at least 8' in resp.get_json()['error']
    resp = client.post('/auth/register', json={'name': 'S', 'email': 'noatsign', 'password': 'password123'})
    assert resp.status_code == 400
    resp = client.post('/auth/register', json={'name': 'S', 'email': 'loc@example.com', 'password': 'password123', 'locale': 'xx'})
    assert resp.get_json() == {'error': 'Invalid locale'}


def test_register_duplicate_email(client):
    payload = {'name': 'Dup', 'email': 'dup_reg@example.com', 'password': 'password123'}
    assert client.post('/auth/register', json=payload).status_code == 201
    resp = client.post('/auth/register', json=payload)
    assert resp.status_code == 409


def test_login_failures(client):
    client.post('/auth/register', json={'name': 'L', 'email': 'login_fail@example.com', 'password': 'password123'})
    resp = client.post('/auth/login', json={'email': 'login_fail@example.com', 'password': 'wrong-password'})
    assert resp.status_code == 401
    assert resp.get_json() == {'error': 'invalid credentials'}
    assert client.post('/auth/login', json={'email': 'login_fail@example.com'}).status_code == 400
    assert client.post('/auth/login', json={'email': 'nobody@example.com', 'password': 'x'}).status_code == 401


def test_banned_user_cannot_login(client):
    client.post('/auth/register', json={'name': 'B', 'email': 'banned@example.com', 'password': 'password123'})
    session = get_db()
    u = session.query(User).filter_by(email='banned@example.com').one()
    u.banned = True
    session.commit()
    resp = client.post('/auth/login', json={'email': 'banned@example.com', 'password': 'password123'})
    assert resp.status_code == 403


def test_me_requires_token(client):
    resp = client.get('/auth/me')
    assert resp.status_code == 401
    assert resp.get_json() == {'error': 'Unauthorized'}
    resp = client.get('/auth/me', headers={'Authorization': 'Bearer not-a-jwt'})
    assert resp.status_code == 401
