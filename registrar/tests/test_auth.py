# registrar/tests/test_auth.py
from registrar import db
from registrar.models.user import User


def _user(username='staff', role='Staff', active=True):
    user = User(username=username, role=role, is_active=active)
    user.set_password('secret-password')
    db.session.add(user)
    db.session.commit()
    return user


def test_login_returns_token(client):
    _user()
    resp = client.post('/api/auth/login', json={
        'username': 'staff', 'password': 'secret-password'})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['access_token']
    assert data['user']['role'] == 'Staff'
    assert data['user']['last_login_at'] is not None
    assert 'password_hash' not in data['user']


def test_login_rejects_bad_password_and_inactive_user(client):
    _user()
    _user(username='gone', active=False)

    resp = client.post('/api/auth/login', json={
        'username': 'staff', 'password': 'nope'})
    assert resp.status_code == 401

    resp = client.post('/api/auth/login', json={
        'username': 'gone', 'password': 'secret-password'})
    assert resp.status_code == 401


def test_login_requires_fields(client):
    resp = client.post('/api/auth/login', json={'username': 'staff'})
    assert resp.status_code == 400


def test_staff_cannot_cancel(client, make_registration):
    _user()
    token = client.post('/api/auth/login', json={
        'username': 'staff', 'password': 'secret-password'}).get_json()['access_token']
    reg_id = make_registration('gala')

    resp = client.post('/api/cancel-registration', json={'registrationId': reg_id},
                       headers={'Authorization': f'Bearer {token}'})
    assert resp.status_code == 403


def test_me(client, auth_headers):
    resp = client.get('/api/auth/me', headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()['username'] == 'testadmin'
