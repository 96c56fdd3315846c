"""Tests for the in-process metadata store and identity service."""

import asyncio

import pytest

from common.exceptions import InvalidToken, ServiceUnavailable, WriteError
from common.protocol import SERVER_TIMESTAMP
from store.memory import InMemoryIdentityService, InMemoryMetadataStore


def document(name="a.txt", uploaded_at=SERVER_TIMESTAMP):
    return {
        "fileName": name,
        "fileSize": 1,
        "fileType": "text/plain",
        "uploadedBy": "u1",
        "uploadedAt": uploaded_at,
        "shareableLink": "https://livedrop.local/share/x",
    }


class TestInMemoryMetadataStore:

    @pytest.mark.asyncio
    async def test_timestamp_resolves_after_write_returns(self):
        store = InMemoryMetadataStore(timestamp_delay=0.01)

        await store.create("uploads", "d1", document())
        assert store.documents("uploads")[0].data["uploadedAt"] is None

        await asyncio.sleep(0.03)
        assert store.documents("uploads")[0].data["uploadedAt"] is not None

    @pytest.mark.asyncio
    async def test_timestamps_are_strictly_increasing(self):
        store = InMemoryMetadataStore()
        for i in range(5):
            await store.create("uploads", f"d{i}", document(f"{i}.txt"))
        await asyncio.sleep(0.01)

        stamps = [doc.data["uploadedAt"] for doc in store.documents("uploads")]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == 5

    @pytest.mark.asyncio
    async def test_snapshots_are_full_and_asynchronous(self):
        store = InMemoryMetadataStore()
        snapshots = []
        subscription = store.subscribe("uploads", snapshots.append)

        assert snapshots == []
        await asyncio.sleep(0)
        assert snapshots == [[]]

        await store.create("uploads", "d1", document("a.txt", None))
        await store.create("uploads", "d2", document("b.txt", None))
        await asyncio.sleep(0.01)

        assert sorted(doc.id for doc in snapshots[-1]) == ["d1", "d2"]
        subscription.cancel()

    @pytest.mark.asyncio
    async def test_cancelled_subscription_receives_nothing(self):
        store = InMemoryMetadataStore()
        snapshots = []
        subscription = store.subscribe("uploads", snapshots.append)
        subscription.cancel()
        subscription.cancel()

        await store.create("uploads", "d1", document())
        await asyncio.sleep(0.01)

        assert snapshots == []
        assert store.active_subscriptions == 0

    @pytest.mark.asyncio
    async def test_rejected_and_duplicate_writes(self):
        store = InMemoryMetadataStore()
        store.reject_writes_for("bad.txt")

        with pytest.raises(WriteError):
            await store.create("uploads", "d1", document("bad.txt"))
        await store.create("uploads", "d2", document("good.txt"))
        with pytest.raises(WriteError):
            await store.create("uploads", "d2", document("good.txt"))

        assert [doc.id for doc in store.documents("uploads")] == ["d2"]
        assert len(store.create_calls) == 3

    @pytest.mark.asyncio
    async def test_close_stops_pending_timestamps(self):
        store = InMemoryMetadataStore(timestamp_delay=0.05)
        await store.create("uploads", "d1", document())

        await store.close()
        await asyncio.sleep(0.08)

        assert store.documents("uploads")[0].data["uploadedAt"] is None


class TestInMemoryIdentityService:

    @pytest.mark.asyncio
    async def test_change_notification(self):
        service = InMemoryIdentityService(tokens={"t": "u1"})
        changes = []
        subscription = service.on_identity_changed(changes.append)

        await service.redeem_token("t")
        await service.redeem_token("t")
        service.sign_out()
        subscription.cancel()
        await service.sign_in_anonymously()

        assert changes == ["u1", None]

    @pytest.mark.asyncio
    async def test_errors(self):
        service = InMemoryIdentityService()

        with pytest.raises(InvalidToken):
            await service.redeem_token("unknown")

        service.available = False
        with pytest.raises(ServiceUnavailable):
            await service.sign_in_anonymously()
