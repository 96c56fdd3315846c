"""Shared pytest fixtures for all tests."""

import pytest

from client.config import Config
from client.live_feed import LiveFeedSynchronizer
from client.session import SessionContext
from client.upload_simulator import UploadSimulator
from common.types import FileDescriptor
from store.memory import InMemoryIdentityService, InMemoryMetadataStore

FAST_TICK = 0.001


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .livedrop directory
    """
    config_dir = tmp_path / '.livedrop'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir, monkeypatch):
    """
    Create temporary config instance with a fast simulation cadence.

    Returns:
        Config instance with temp config file
    """
    monkeypatch.delenv("LIVEDROP_IDENTITY_TOKEN", raising=False)
    config = Config(temp_config_dir / 'config.json')
    config.data['tick_interval'] = FAST_TICK
    config.data['retry_base_delay'] = 0.001
    return config


@pytest.fixture
def store():
    return InMemoryMetadataStore()


@pytest.fixture
def identity_service():
    return InMemoryIdentityService(tokens={"token-u1": "u1"})


@pytest.fixture
def session(store, identity_service):
    """Session without an identity yet."""
    return SessionContext(store, identity_service)


@pytest.fixture
def ready_session(session):
    """Session whose identity is already established as 'u1'."""
    session.set_identity("u1")
    return session


@pytest.fixture
def simulator(ready_session):
    return UploadSimulator(ready_session, tick_interval=FAST_TICK)


@pytest.fixture
def feed(ready_session):
    return LiveFeedSynchronizer(ready_session, retry_base_delay=0.001)


@pytest.fixture
def text_file():
    return FileDescriptor(name="a.txt", size_bytes=1024, mime_type="text/plain")


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file on disk.

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'notes.txt'
    file_path.write_text('Sample content for testing')
    return file_path
