"""Tests for settings loading."""

import pytest

from gigs.config import DEFAULTS, SettingsError, load_settings_conf

def write_settings(path, body: str):
    (path / 'settings.conf').write_text("[DEFAULT]\n" + body)

def test_defaults_without_file(tmp_path):
    settings = load_settings_conf(tmp_path, environ={})

    assert settings['db_url'] == DEFAULTS['db_url']
    assert settings['db_ssl'] is False
    assert settings['db_max_pool_size'] == 20
    assert settings['profile_timeout'] == 5.0
    assert settings['order_statuses'] == ['pending', 'in_progress', 'completed', 'cancelled']
    assert settings['enforce_status_transitions'] is True
    assert settings['cors_origins'] == ['*']

def test_file_values(tmp_path):
    write_settings(tmp_path, (
        "db_url = postgresql://gigs:secret@db:5432/gigs\n"
        "db_ssl = yes\n"
        "order_statuses = pending,in_progress,completed,cancelled,disputed\n"
        "enforce_status_transitions = off\n"
        "log_level = debug\n"
    ))

    settings = load_settings_conf(tmp_path, environ={})

    assert settings['db_url'] == 'postgresql://gigs:secret@db:5432/gigs'
    assert settings['db_ssl'] is True
    assert 'disputed' in settings['order_statuses']
    assert settings['enforce_status_transitions'] is False
    assert settings['log_level'] == 'DEBUG'

def test_environment_overrides_file(tmp_path):
    write_settings(tmp_path, "api_port = 9000\n")

    settings = load_settings_conf(tmp_path, environ={'GIGS_API_PORT': '8080', 'GIGS_JWT_SECRET': 's3cret'})

    assert settings['api_port'] == 8080
    assert settings['jwt_secret'] == 's3cret'

@pytest.mark.parametrize("body", [
    "db_max_pool_size = many\n",
    "db_min_pool_size = 30\ndb_max_pool_size = 10\n",
    "db_ssl = maybe\n",
    "profile_timeout = 0\n",
    "order_statuses = completed,cancelled\n",
    "db_url =\n",
])
def test_invalid_settings(tmp_path, body):
    write_settings(tmp_path, body)
    with pytest.raises(SettingsError):
        load_settings_conf(tmp_path, environ={})
