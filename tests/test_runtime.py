"""Tests for the client runtime wiring."""

import asyncio

import pytest

from client.runtime import LiveDropClient
from common.exceptions import IdentityUnavailable
from common.types import FileDescriptor, UploadStatus
from store.http_store import HttpIdentityService, HttpMetadataStore
from store.memory import InMemoryIdentityService, InMemoryMetadataStore


@pytest.mark.asyncio
async def test_start_redeems_configured_token(temp_config, store):
    temp_config.set_identity_token('token-u1')
    client = LiveDropClient(store, InMemoryIdentityService(tokens={'token-u1': 'u1'}), temp_config)

    identity = await client.start()

    assert identity == 'u1'
    assert client.identity == 'u1'
    assert client.feed.is_subscribed
    await client.close()


@pytest.mark.asyncio
async def test_context_manager_closes_everything(temp_config, store, identity_service):
    async with LiveDropClient(store, identity_service, temp_config) as client:
        assert client.identity.startswith('anon_')
        assert store.active_subscriptions == 1

    assert store.active_subscriptions == 0
    assert not client.feed.is_subscribed


@pytest.mark.asyncio
async def test_close_aborts_running_uploads(temp_config, store, identity_service):
    temp_config.data['tick_interval'] = 0.05
    client = LiveDropClient(store, identity_service, temp_config)
    await client.start()
    batch = client.simulator.submit([FileDescriptor(name='a.txt', size_bytes=1, mime_type='text/plain')])

    await client.close()
    await client.close()

    assert batch.done
    assert batch.tasks[0].status is UploadStatus.FAILED
    assert store.create_calls == []


@pytest.mark.asyncio
async def test_identity_unavailable_propagates(temp_config, store):
    client = LiveDropClient(store, InMemoryIdentityService(available=False), temp_config)

    with pytest.raises(IdentityUnavailable):
        async with client:
            pass

    assert store.active_subscriptions == 0
    assert client.identity is None


@pytest.mark.asyncio
async def test_identity_change_stops_feed(temp_config, store, identity_service):
    client = LiveDropClient(store, identity_service, temp_config)
    await client.start()

    identity_service.sign_out()
    await asyncio.sleep(0)

    assert not client.feed.is_subscribed
    assert store.active_subscriptions == 0
    await client.close()


@pytest.mark.asyncio
async def test_uploads_appear_in_feed(temp_config, store, identity_service):
    client = LiveDropClient(store, identity_service, temp_config)
    await client.start()

    batch = client.simulator.submit([
        FileDescriptor(name='a.txt', size_bytes=1, mime_type='text/plain'),
        FileDescriptor(name='b.txt', size_bytes=2, mime_type='text/plain'),
    ])
    await batch.wait()

    deadline = asyncio.get_running_loop().time() + 1.0
    while len(client.feed.snapshot) < 2 or any(r.uploaded_at is None for r in client.feed.snapshot):
        assert asyncio.get_running_loop().time() < deadline
        await asyncio.sleep(0.001)

    snapshot = client.feed.snapshot
    assert {record.file_name for record in snapshot} == {'a.txt', 'b.txt'}
    assert snapshot[0].uploaded_at > snapshot[1].uploaded_at
    await client.close()


def test_from_config_uses_http_adapters(temp_config):
    temp_config.data['store_url'] = 'http://store.example:8000/'
    client = LiveDropClient.from_config(temp_config)

    assert isinstance(client.session.store, HttpMetadataStore)
    assert isinstance(client.session.identity_service, HttpIdentityService)
    assert client.session.store.base_url == 'http://store.example:8000'


def test_offline_uses_memory_adapters(temp_config):
    client = LiveDropClient.offline(temp_config)

    assert isinstance(client.session.store, InMemoryMetadataStore)
    assert isinstance(client.session.identity_service, InMemoryIdentityService)
