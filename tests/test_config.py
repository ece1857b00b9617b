import json

import pytest

from cognito_auth_client.config import load_config, missing_fields, save_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ('COGNITO_USER_POOL_ID', 'COGNITO_CLIENT_ID', 'AWS_REGION', 'COGNITO_TOKEN_FILE'):
        monkeypatch.delenv(var, raising=False)


def test_env_overrides_file(tmp_path, monkeypatch):
    config_file = tmp_path / 'config.json'
    config_file.write_text(json.dumps({'user_pool_id': 'from-file', 'client_id': 'file-client'}))
    monkeypatch.setenv('COGNITO_USER_POOL_ID', 'us-east-1_FromEnv')

    config = load_config(config_file)

    assert config['user_pool_id'] == 'us-east-1_FromEnv'
    assert config['client_id'] == 'file-client'
    assert config['region'] is None


def test_missing_file(tmp_path):
    config = load_config(tmp_path / 'nope.json')

    assert missing_fields(config) == ['user_pool_id', 'client_id']


def test_unreadable_file_is_ignored(tmp_path, caplog):
    config_file = tmp_path / 'config.json'
    config_file.write_text('{broken')

    config = load_config(config_file)

    assert config['client_id'] is None
    assert "Could not load config file" in caplog.text


def test_save_config_round_trip(tmp_path):
    config_file = tmp_path / 'dir' / 'config.json'

    saved = save_config({'user_pool_id': 'us-east-1_Abc', 'client_id': 'abc', 'region': None}, config_file)

    assert saved == config_file
    assert json.loads(config_file.read_text()) == {'user_pool_id': 'us-east-1_Abc', 'client_id': 'abc'}
    assert missing_fields(load_config(config_file)) == []
