import sqlite3

import pytest
from werkzeug.security import check_password_hash

import config
import database


def count_rows(table):
    with database.DatabaseConnection() as conn:
        return conn.execute(f'SELECT COUNT(*) FROM {table}').fetchone()[0]


def test_seed_is_idempotent(db_path):
    database.init_db()
    database.init_db()

    assert count_rows('districts') == len(database.DISTRICT_NAMES) == 10
    assert len(database.get_all_users(role='admin')) == 1
    assert count_rows('system_settings') == 3


def test_seeded_districts_are_consistent(db_path):
    for district in database.get_all_districts():
        assert 0 <= district['activeHotspots'] <= district['totalHotspots']
        assert 0 <= district['utilization'] <= 100
        assert district['status'] in database.DISTRICT_STATUSES


def test_default_admin_password_is_hashed(db_path):
    admin = database.get_user_by_username(config.DEFAULT_ADMIN_USERNAME)
    assert admin['password'] != config.DEFAULT_ADMIN_PASSWORD
    assert check_password_hash(admin['password'], config.DEFAULT_ADMIN_PASSWORD)


def test_unique_username_and_email(db_path):
    user = {'fullname': 'A', 'email': 'a@example.com', 'username': 'alpha', 'role': 'user', 'password': 'password123'}
    database.create_user(user)

    with pytest.raises(sqlite3.IntegrityError):
        database.create_user(dict(user, email='other@example.com'))
    with pytest.raises(sqlite3.IntegrityError):
        database.create_user(dict(user, username='beta', email='A@Example.com'))


def test_authenticate_user(db_path):
    database.create_user({'fullname': 'B', 'email': 'b@example.com', 'username': 'bravo',
                          'role': 'viewer', 'password': 'password123'})

    assert database.authenticate_user('bravo', 'wrong') is None
    assert database.authenticate_user('nobody', 'password123') is None
    assert database.authenticate_user('bravo', 'password123', 'admin') is None

    user = database.authenticate_user('bravo', 'password123')
    assert user['last_login'] is not None


def test_inactive_user_cannot_authenticate(db_path):
    user_id = database.create_user({'fullname': 'C', 'email': 'c@example.com', 'username': 'charlie',
                                    'role': 'user', 'password': 'password123'})
    database.update_user(user_id, {'is_active': 0})
    assert database.authenticate_user('charlie', 'password123') is None


def test_update_user_ignores_unknown_columns(db_path):
    user_id = database.create_user({'fullname': 'D', 'email': 'd@example.com', 'username': 'delta',
                                    'role': 'user', 'password': 'password123'})
    assert database.update_user(user_id, {'password': 'x', 'created_at': 'then'}) == 0
    assert database.update_user(user_id, {'fullname': 'Delta Force'}) == 1
    assert database.get_user_by_id(user_id)['fullname'] == 'Delta Force'


def test_device_timestamps_use_configured_timezone(db_path, monkeypatch):
    monkeypatch.setattr(config, 'TIMEZONE_NAME', 'Asia/Tehran')
    before = database.now_str()
    device_id = database.register_device({'mac_address': 'AA:BB:CC:DD:EE:12'})['id']
    after = database.now_str()

    device = database.get_device(device_id)
    assert device['firstSeen'] == device['lastSeen']
    assert before <= device['lastSeen'] <= after


def test_device_upsert_by_mac(db_path):
    first = database.register_device({'mac_address': 'aa:bb:cc:dd:ee:10', 'ip_address': '10.0.0.1'})
    second = database.register_device({'mac_address': 'AA:BB:CC:DD:EE:10', 'ip_address': '10.0.0.2'})

    assert first['updated'] is False
    assert second == {'id': first['id'], 'updated': True}
    device = database.get_device(first['id'])
    assert device['connectionCount'] == 2
    assert device['ipAddress'] == '10.0.0.2'


def test_device_logs_accumulate_data_usage(db_path):
    device_id = database.register_device({'mac_address': 'AA:BB:CC:DD:EE:11'})['id']
    database.log_device_connection(device_id, 'connect', {'data_transferred': 1000})
    database.log_device_connection(device_id, 'disconnect', {'data_transferred': 500})

    assert database.get_device(device_id)['dataUsage'] == 1500
    assert len(database.get_device_logs(device_id=device_id)) == 2


def test_security_event_severity_defaults_to_medium(db_path):
    event_id = database.create_security_event({'event_type': 'odd', 'severity': 'apocalyptic'})
    event = database.get_security_events()[0]
    assert event['id'] == event_id
    assert event['severity'] == 'medium'
    assert event['resolved'] is False


def test_update_setting_keeps_description(db_path):
    database.update_setting('update_interval', 10)
    setting = next(s for s in database.get_all_settings() if s['key'] == 'update_interval')
    assert setting['value'] == '10'
    assert setting['description'] == database.SETTING_DESCRIPTIONS['update_interval']
    assert database.get_int_setting('update_interval', 2) == 10
    assert database.get_int_setting('missing', 7) == 7


def test_deleting_user_keeps_activity_rows(db_path):
    user_id = database.create_user({'fullname': 'E', 'email': 'e@example.com', 'username': 'echo',
                                    'role': 'user', 'password': 'password123'})
    database.log_activity(user_id, 'echo', 'User logged in')
    database.delete_user(user_id)

    logs = database.get_activity_logs()
    assert logs[0]['username'] == 'echo'
    assert logs[0]['userId'] is None
