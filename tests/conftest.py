import pytest

import config
import database
import simulator
import server


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Fresh seeded database per test, with the simulator loaded from it."""
    path = str(tmp_path / 'wifi_monitoring_test.db')
    monkeypatch.setattr(config, 'DATABASE', path)
    database.init_db()
    simulator.load_districts_from_db()
    server.password_resets.clear()
    return path


@pytest.fixture
def app(db_path):
    server.app.config['TESTING'] = True
    return server.app


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, username, password, login_type='user'):
    return client.post('/auth/login', json={
        'username': username,
        'password': password,
        'loginType': login_type
    })


@pytest.fixture
def make_user(db_path):
    """Create an active account and return its (username, password)."""
    def _make_user(username, role='user', password='password123'):
        database.create_user({
            'fullname': username.title(),
            'email': f'{username}@example.com',
            'username': username,
            'role': role,
            'password': password
        })
        return username, password
    return _make_user


@pytest.fixture
def admin_client(client):
    response = login(client, config.DEFAULT_ADMIN_USERNAME, config.DEFAULT_ADMIN_PASSWORD, 'admin')
    assert response.status_code == 200
    return client


@pytest.fixture
def user_client(client, make_user):
    username, password = make_user('operator', role='user')
    assert login(client, username, password).status_code == 200
    return client


@pytest.fixture
def viewer_client(client, make_user):
    username, password = make_user('watcher', role='viewer')
    assert login(client, username, password).status_code == 200
    return client
