"""Tests for client configuration module."""

import json

from client.config import Config


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.livedrop' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()

    assert config.data['collection'] == 'uploads'
    assert config.data['tick_interval'] == 0.1
    assert config.data['progress_step'] == 10
    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3
    assert config.data['retry_backoff_multiplier'] == 2
    assert 'identity_token' not in config.data


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file."""
    config_path = tmp_path / '.livedrop' / 'config.json'
    config_path.parent.mkdir(parents=True)

    existing_data = {
        'identity_token': 'tok-alice',
        'store_url': 'http://example.com:9000/',
        'collection': 'team-uploads',
    }
    with open(config_path, 'w') as f:
        json.dump(existing_data, f)

    config = Config(config_path)

    assert config.data['identity_token'] == 'tok-alice'
    assert config.get_store_url() == 'http://example.com:9000'
    assert config.get_collection() == 'team-uploads'

    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3


def test_config_save_and_get_identity_token(temp_config):
    """Test saving and retrieving the identity token."""
    assert temp_config.get_identity_token() is None

    temp_config.set_identity_token('tok-alice')

    assert temp_config.get_identity_token() == 'tok-alice'

    with open(temp_config.config_path, 'r') as f:
        data = json.load(f)
    assert data['identity_token'] == 'tok-alice'


def test_environment_token_takes_precedence(temp_config, monkeypatch):
    """Test LIVEDROP_IDENTITY_TOKEN overrides the config file."""
    temp_config.set_identity_token('tok-file')
    monkeypatch.setenv('LIVEDROP_IDENTITY_TOKEN', 'tok-env')

    assert temp_config.get_identity_token() == 'tok-env'


def test_config_handles_corrupted_file(tmp_path):
    """Test recovery from corrupted config file."""
    config_path = tmp_path / '.livedrop' / 'config.json'
    config_path.parent.mkdir(parents=True)

    with open(config_path, 'w') as f:
        f.write('{ invalid json content')

    config = Config(config_path)
    assert config.data['collection'] == 'uploads'
    assert config.data['progress_step'] == 10

    backup_path = config_path.with_suffix('.json.bak')
    assert backup_path.exists()


def test_config_get_simulation_config(temp_config):
    """Test simulation cadence retrieval."""
    temp_config.data['tick_interval'] = '0.25'
    temp_config.data['progress_step'] = 20

    simulation = temp_config.get_simulation_config()

    assert simulation == {'tick_interval': 0.25, 'progress_step': 20}


def test_config_get_retry_config(temp_config):
    """Test retry configuration retrieval."""
    temp_config.data['max_retries'] = 5
    temp_config.data['retry_backoff_multiplier'] = 3
    temp_config.data['retry_base_delay'] = 1.5

    retry_config = temp_config.get_retry_config()

    assert retry_config['max_retries'] == 5
    assert retry_config['retry_backoff_multiplier'] == 3
    assert retry_config['retry_base_delay'] == 1.5


def test_config_get_poll_interval_and_link_base(temp_config):
    """Test polling and share-link settings."""
    assert temp_config.get_poll_interval() == 1.0
    assert temp_config.get_link_base_url() == 'https://livedrop.local/share'


def test_config_directory_created_if_missing(tmp_path):
    """Test that config directory is created if it doesn't exist."""
    config_path = tmp_path / 'nested' / 'deep' / '.livedrop' / 'config.json'

    assert not config_path.parent.exists()

    config = Config(config_path)
    assert config_path.parent.exists()
    assert config_path.exists()
