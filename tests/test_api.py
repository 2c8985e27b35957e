import database
import simulator


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'healthy'
    assert data['database'] == 'connected'


def test_wifi_data_snapshot(client):
    data = client.get('/api/wifi-data').get_json()
    assert len(data['districts']) == 10
    assert data['totalHotspots'] == sum(d['totalHotspots'] for d in data['districts'])
    assert data['activeHotspots'] == sum(d['activeHotspots'] for d in data['districts'])
    assert 0 <= data['utilization'] <= 100
    assert data['criticalDistricts'] == sum(1 for d in data['districts'] if d['status'] == 'critical')


def test_districts(client):
    districts = client.get('/api/districts').get_json()
    assert len(districts) == 10
    first = districts[0]
    assert set(first) == {'id', 'name', 'totalHotspots', 'activeHotspots', 'utilization', 'status', 'lastPing'}

    assert client.get(f"/api/districts/{first['id']}").get_json()['name'] == first['name']
    assert client.get('/api/districts/9999').status_code == 404


def test_metrics_and_history(client):
    metrics = client.get('/api/metrics').get_json()
    assert set(metrics) == {'totalHotspots', 'activeHotspots', 'utilization', 'criticalDistricts', 'lastUpdated'}

    assert client.get('/api/metrics/history').get_json() == []
    simulator.simulate_tick()
    history = client.get('/api/metrics/history?limit=5').get_json()
    assert len(history) == 1


def test_pages_require_login(client):
    for path in ['/dashboard', '/admin', '/viewer', '/devices', '/monitor']:
        response = client.get(path)
        assert response.status_code == 302, path
        assert response.headers['Location'].endswith('/login')


def test_public_pages_render(client):
    for path in ['/', '/login', '/signup', '/admin-register']:
        assert client.get(path).status_code == 200, path


def test_role_gated_pages(viewer_client):
    assert viewer_client.get('/viewer').status_code == 200
    assert viewer_client.get('/dashboard').status_code == 403
    assert viewer_client.get('/admin').status_code == 403
    assert viewer_client.get('/monitor').status_code == 200


def test_admin_sees_every_page(admin_client):
    for path in ['/dashboard', '/admin', '/viewer', '/devices', '/monitor']:
        response = admin_client.get(path)
        assert response.status_code == 200, path
    assert b'update_interval' in admin_client.get('/admin').data


def test_dashboard_renders_districts(user_client):
    page = user_client.get('/dashboard').data.decode()
    for district in simulator.get_snapshot()['districts']:
        assert district['name'] in page


def test_logged_in_user_skips_login_page(user_client):
    response = user_client.get('/login')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/dashboard')


def test_api_auth_errors(client, user_client):
    assert user_client.get('/api/users').status_code == 403
    anonymous = client.application.test_client()
    assert anonymous.get('/api/users').status_code == 401
    assert anonymous.get('/api/devices').status_code == 401


def test_user_management(admin_client, make_user):
    make_user('editable')
    users = admin_client.get('/api/users').get_json()
    assert all('password' not in u for u in users)
    target = next(u for u in users if u['username'] == 'editable')

    response = admin_client.put(f"/api/users/{target['id']}", json={'role': 'viewer', 'password': 'ignored'})
    assert response.status_code == 200
    assert database.get_user_by_id(target['id'])['role'] == 'viewer'

    viewers = admin_client.get('/api/users?role=viewer').get_json()
    assert [u['username'] for u in viewers] == ['editable']

    assert admin_client.put(f"/api/users/{target['id']}", json={'role': 'root'}).status_code == 400
    assert admin_client.put(f"/api/users/{target['id']}", json={'id': 5}).status_code == 400
    assert admin_client.put('/api/users/9999', json={'fullname': 'Nobody'}).status_code == 404

    assert admin_client.delete(f"/api/users/{target['id']}").status_code == 200
    assert database.get_user_by_id(target['id']) is None
    assert admin_client.delete(f"/api/users/{target['id']}").status_code == 404


def test_update_user_duplicate_username(admin_client, make_user):
    make_user('first')
    make_user('second')
    second = database.get_user_by_username('second')
    response = admin_client.put(f"/api/users/{second['id']}", json={'username': 'first'})
    assert response.status_code == 409


def test_admin_cannot_delete_self(admin_client):
    admin = database.get_user_by_username('admin')
    assert admin_client.delete(f"/api/users/{admin['id']}").status_code == 400


def test_settings(admin_client):
    settings = {s['key']: s['value'] for s in admin_client.get('/api/settings').get_json()}
    assert settings == {'critical_threshold': '80', 'max_logs': '100', 'update_interval': '2'}

    assert admin_client.put('/api/settings/update_interval', json={'value': 0}).status_code == 400
    assert admin_client.put('/api/settings/update_interval', json={'value': 'fast'}).status_code == 400
    assert admin_client.put('/api/settings/critical_threshold', json={'value': 101}).status_code == 400
    assert admin_client.put('/api/settings/update_interval', json={}).status_code == 400

    assert admin_client.put('/api/settings/update_interval', json={'value': 5}).status_code == 200
    assert admin_client.get('/api/settings/update_interval').get_json()['value'] == '5'
    assert simulator.get_update_interval() == 5
    assert admin_client.get('/api/settings/missing').status_code == 404


def test_settings_update_requires_admin(user_client):
    assert user_client.get('/api/settings').status_code == 200
    assert user_client.put('/api/settings/update_interval', json={'value': 5}).status_code == 403


def test_activity_logs(admin_client):
    logs = admin_client.get('/api/logs').get_json()
    assert logs[0]['action'] == 'User logged in'

    response = admin_client.delete('/api/logs')
    assert response.status_code == 200
    # the clear itself is logged afterwards
    logs = admin_client.get('/api/logs').get_json()
    assert len(logs) == 1
    assert logs[0]['action'].startswith('Cleared')


def test_setting_change_is_logged_without_markup(admin_client):
    response = admin_client.put('/api/settings/%3Cb%3Ebanner', json={
        'value': '<img src=x onerror="alert(1)">'
    })
    assert response.status_code == 200

    action = admin_client.get('/api/logs').get_json()[0]['action']
    assert action.startswith('Updated setting: bbanner')
    for ch in '<>"\'&':
        assert ch not in action


def test_activity_log_trimmed_to_max_logs(admin_client):
    admin_client.put('/api/settings/max_logs', json={'value': 3})
    for _ in range(5):
        admin_client.put('/api/settings/critical_threshold', json={'value': 75})
    assert len(database.get_activity_logs(limit=50)) == 3


def test_simulate_device_and_logs(user_client):
    response = user_client.post('/api/simulate-device')
    assert response.status_code == 200
    device_id = response.get_json()['device']['id']

    device = user_client.get(f'/api/devices/{device_id}').get_json()
    assert device['status'] == 'active'
    assert device['districtName'] is not None

    logs = user_client.get(f'/api/device-logs?device_id={device_id}').get_json()
    assert logs[0]['action'] == 'connect'
    assert user_client.get('/api/devices/9999').status_code == 404


def test_device_soft_delete(admin_client):
    result = database.register_device({'mac_address': 'AA:BB:CC:DD:EE:01', 'ip_address': '192.168.1.5'})
    assert admin_client.delete(f"/api/devices/{result['id']}").status_code == 200

    assert database.get_device(result['id'])['status'] == 'inactive'
    inactive = admin_client.get('/api/devices?status=inactive').get_json()
    assert [d['id'] for d in inactive] == [result['id']]
    assert admin_client.delete('/api/devices/9999').status_code == 404


def test_security_events_resolve(user_client):
    event_id = database.create_security_event({'event_type': 'rogue_access_point', 'severity': 'high'})
    assert len(user_client.get('/api/security-events?unresolved=true').get_json()) == 1

    assert user_client.post(f'/api/security-events/{event_id}/resolve').status_code == 200
    assert user_client.get('/api/security-events?unresolved=true').get_json() == []
    event = user_client.get('/api/security-events').get_json()[0]
    assert event['resolved'] is True
    assert event['resolvedBy'] == 'operator'

    assert user_client.post('/api/security-events/9999/resolve').status_code == 404


def test_unknown_route_returns_json(client):
    response = client.get('/api/nope')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Not found'
