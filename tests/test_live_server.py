"""
End-to-end checks against a real HTTP server on a free local port.
"""

import threading

import pytest
import requests
from werkzeug.serving import make_server

import server


@pytest.fixture
def base_url(app):
    http_server = make_server('127.0.0.1', 0, server.app, threaded=True)
    thread = threading.Thread(target=http_server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{http_server.server_port}"
    http_server.shutdown()
    thread.join(timeout=5)


def test_public_endpoints(base_url):
    for endpoint in ['/api/health', '/api/wifi-data', '/api/districts', '/api/metrics']:
        response = requests.get(f"{base_url}{endpoint}", timeout=5)
        assert response.status_code == 200, endpoint


def test_session_login_flow(base_url):
    session = requests.Session()
    assert session.get(f"{base_url}/api/devices", timeout=5).status_code == 401

    response = session.post(f"{base_url}/auth/login", json={
        'username': 'admin', 'password': 'admin123', 'loginType': 'admin'
    }, timeout=5)
    assert response.status_code == 200
    assert response.json()['redirect'] == '/admin'

    assert session.post(f"{base_url}/api/simulate-device", timeout=5).status_code == 200
    devices = session.get(f"{base_url}/api/devices", timeout=5).json()
    assert len(devices) == 1

    page = session.get(f"{base_url}/admin", timeout=5)
    assert page.status_code == 200
    assert 'update_interval' in page.text
