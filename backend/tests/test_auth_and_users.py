import uuid

import jwt

from thexempt.config import settings



def test_signup_login_and_me(client):
    email = f"alice-{uuid.uuid4().hex[:8]}@example.com"
    r = client.post('/api/auth/signup', json={'email': email, 'password': 'secret1', 'name': 'Alice'})
    assert r.status_code == 200
    body = r.json()
    assert body['user'] == {
        'id': body['user']['id'], 'email': email, 'name': 'Alice', 'role': 'member',
        'reputation_points': 0, 'badges': [],
    }
    payload = jwt.decode(body['token'], settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    assert payload['user_id'] == body['user']['id']
    assert payload['email'] == email

    r2 = client.post('/api/auth/login', json={'email': email, 'password': 'secret1'})
    assert r2.status_code == 200
    token = r2.json()['token']
    me = client.get('/api/users/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    assert me.json()['email'] == email


def test_signup_requires_all_fields(client):
    r = client.post('/api/auth/signup', json={'email': 'x@example.com', 'password': 'pw'})
    assert r.status_code == 400
    assert r.json()['detail'] == 'All fields are required'


def test_duplicate_email_rejected(client):
    email = f"dup-{uuid.uuid4().hex[:8]}@example.com"
    first = client.post('/api/auth/signup', json={'email': email, 'password': 'pw', 'name': 'A'})
    assert first.status_code == 200
    second = client.post('/api/auth/signup', json={'email': email, 'password': 'pw', 'name': 'B'})
    assert second.status_code == 400
    assert second.json()['detail'] == 'Email already exists'


def test_login_bad_credentials(client):
    email = f"bob-{uuid.uuid4().hex[:8]}@example.com"
    client.post('/api/auth/signup', json={'email': email, 'password': 'right', 'name': 'Bob'})
    wrong = client.post('/api/auth/login', json={'email': email, 'password': 'wrong'})
    assert wrong.status_code == 400
    assert wrong.json()['detail'] == 'Invalid credentials'
    unknown = client.post('/api/auth/login', json={'email': 'nobody@example.com', 'password': 'x'})
    assert unknown.status_code == 400
    missing = client.post('/api/auth/login', json={'email': email})
    assert missing.status_code == 400


def test_missing_token_is_401(client):
    r = client.get('/api/users/me')
    assert r.status_code == 401


def test_invalid_token_is_403(client):
    r = client.get('/api/users/me', headers={'Authorization': 'Bearer invalid.token.here'})
    assert r.status_code == 403
    assert r.json()['detail'] == 'Invalid or expired token'


def test_expired_token_is_403(client, make_user):
    _, user = make_user()
    token = jwt.encode({'user_id': user['id'], 'exp': 1}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    r = client.get('/api/users/me', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 403


def test_token_for_unknown_user_is_403(client):
    token = jwt.encode({'user_id': 10_000_000}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    r = client.get('/api/users/me', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 403


def test_rename_and_public_profile(client, make_user):
    headers, user = make_user('carol')
    r = client.patch('/api/users/me', json={'name': '  Carol C  '}, headers=headers)
    assert r.status_code == 200
    assert r.json()['name'] == 'Carol C'
    blank = client.patch('/api/users/me', json={'name': ' '}, headers=headers)
    assert blank.status_code == 400
    public = client.get(f"/api/users/{user['id']}")
    assert public.status_code == 200
    assert 'email' not in public.json()
    assert public.json()['name'] == 'Carol C'
    assert client.get('/api/users/10000000').status_code == 404


def test_add_and_list_skills(client, make_user):
    headers, user = make_user('dev')
    r = client.post('/api/users/skills', json={'skill': 'Python', 'proficiency': 4}, headers=headers)
    assert r.status_code == 200
    assert r.json()['skill'] == 'Python'
    r2 = client.post('/api/users/skills', json={'skill': 'Go'}, headers=headers)
    assert r2.json()['proficiency'] == 1
    skills = client.get(f"/api/users/{user['id']}/skills").json()
    assert skills == [{'skill': 'Python', 'proficiency': 4}, {'skill': 'Go', 'proficiency': 1}]


def test_skill_validation(client, make_user):
    headers, _ = make_user()
    assert client.post('/api/users/skills', json={'skill': ''}, headers=headers).status_code == 422
    assert client.post('/api/users/skills', json={'skill': 'x', 'proficiency': 9}, headers=headers).status_code == 422
    assert client.post('/api/users/skills', json={'skill': '   '}, headers=headers).status_code == 400
    assert client.post('/api/users/skills', json={'skill': 'x'}).status_code == 401
