import json

import pytz

import config


def test_json_file_then_env_override(tmp_path, monkeypatch):
    config_file = tmp_path / 'settings.json'
    config_file.write_text(json.dumps({'PORT': 8080, 'DATABASE': 'from_file.db', 'not_a_setting': 1}))
    monkeypatch.setenv('WIFI_MONITOR_DB', 'from_env.db')
    for name in ('PORT', 'DATABASE', 'HOST', 'TIMEZONE_NAME', 'UPDATE_INTERVAL', 'LOG_LEVEL', 'SECRET_KEY',
                 'DEFAULT_ADMIN_PASSWORD'):
        monkeypatch.setattr(config, name, getattr(config, name))

    values = config.load_config(str(config_file))

    assert values['PORT'] == 8080
    assert values['DATABASE'] == 'from_env.db'
    assert not hasattr(config, 'not_a_setting')


def test_invalid_env_value_is_ignored(monkeypatch):
    monkeypatch.setattr(config, 'PORT', 3000)
    monkeypatch.setenv('PORT', 'not-a-number')
    config.load_config('/nonexistent/config.json')
    assert config.PORT == 3000


def test_unknown_timezone_falls_back_to_utc(monkeypatch):
    monkeypatch.setattr(config, 'TIMEZONE_NAME', 'Mars/Olympus_Mons')
    assert config.get_timezone() is pytz.utc

    monkeypatch.setattr(config, 'TIMEZONE_NAME', 'Asia/Tehran')
    assert config.get_timezone().zone == 'Asia/Tehran'


def test_as_dict_hides_secrets():
    assert 'SECRET_KEY' not in config.as_dict()
