"""In-process metadata store and identity service.

Both honour the same contracts as the HTTP adapters: writes and snapshot
deliveries are asynchronous, server timestamps resolve after the write call
has returned, and every listener API hands back a Subscription.
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from common.constants import ANONYMOUS_IDENTITY_PREFIX
from common.exceptions import InvalidToken, ServiceUnavailable, SyncError, WriteError
from common.logging_config import get_logger
from common.protocol import SERVER_TIMESTAMP
from common.subscription import Subscription
from common.types import Identity, StoredDocument
from store.base import DocumentPredicate, ErrorCallback, IdentityListener, SnapshotCallback

logger = get_logger(__name__)


@dataclass
class _SnapshotListener:
    collection_path: str
    on_snapshot: SnapshotCallback
    on_error: Optional[ErrorCallback]
    predicate: Optional[DocumentPredicate]
    active: bool = True


class InMemoryMetadataStore:
    """
    Metadata store kept in a dict of collections.

    Attributes:
        timestamp_delay: Seconds between a write and the resolution of its server timestamp
        create_calls: Every create() call as (collection_path, document_id, document)
    """

    def __init__(self, timestamp_delay: float = 0.0):
        self.timestamp_delay = timestamp_delay
        self.create_calls: List[tuple] = []
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._listeners: List[_SnapshotListener] = []
        self._rejections: Dict[str, str] = {}
        self._pending_subscription_failures: List[str] = []
        self._last_timestamp: Optional[datetime] = None
        self._pending_timers: List[asyncio.TimerHandle] = []

    def reject_writes_for(self, file_name: str, message: str = "permission denied") -> None:
        """Make every write of a document with this fileName fail with WriteError."""
        self._rejections[file_name] = message

    def fail_next_subscription(self, message: str = "subscription refused") -> None:
        """Make the next subscribe() call report a SyncError instead of snapshots."""
        self._pending_subscription_failures.append(message)

    def break_subscriptions(self, message: str = "connection lost") -> None:
        """Terminate every active subscription with a SyncError."""
        for listener in list(self._listeners):
            self._fail_listener(listener, message)

    def documents(self, collection_path: str) -> List[StoredDocument]:
        collection = self._collections.get(collection_path, {})
        return [StoredDocument(id=doc_id, data=dict(data)) for doc_id, data in collection.items()]

    @property
    def active_subscriptions(self) -> int:
        return sum(1 for listener in self._listeners if listener.active)

    async def create(self, collection_path: str, document_id: str, document: Dict[str, Any]) -> None:
        self.create_calls.append((collection_path, document_id, dict(document)))
        await asyncio.sleep(0)

        file_name = document.get("fileName")
        if file_name in self._rejections:
            raise WriteError(self._rejections[file_name])

        collection = self._collections.setdefault(collection_path, {})
        if document_id in collection:
            raise WriteError(f"Document {document_id} already exists")

        data = dict(document)
        pending_timestamp = data.get("uploadedAt") is SERVER_TIMESTAMP
        if pending_timestamp:
            data["uploadedAt"] = None
        collection[document_id] = data
        logger.debug(f"Stored document {document_id} in {collection_path}")

        self._notify(collection_path)

        if pending_timestamp:
            loop = asyncio.get_running_loop()
            handle = loop.call_later(
                self.timestamp_delay, self._resolve_timestamp, collection_path, document_id
            )
            self._pending_timers.append(handle)

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
        predicate: Optional[DocumentPredicate] = None,
    ) -> Subscription:
        loop = asyncio.get_running_loop()
        listener = _SnapshotListener(collection_path, on_snapshot, on_error, predicate)
        self._listeners.append(listener)

        if self._pending_subscription_failures:
            message = self._pending_subscription_failures.pop(0)
            loop.call_soon(self._fail_listener, listener, message)
        else:
            loop.call_soon(self._deliver, listener)

        def teardown():
            listener.active = False
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(teardown, name=f"memory-store:{collection_path}")

    async def close(self) -> None:
        for handle in self._pending_timers:
            handle.cancel()
        self._pending_timers.clear()
        for listener in self._listeners:
            listener.active = False
        self._listeners.clear()

    def _next_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _resolve_timestamp(self, collection_path: str, document_id: str) -> None:
        document = self._collections.get(collection_path, {}).get(document_id)
        if document is None or document.get("uploadedAt") is not None:
            return
        document["uploadedAt"] = self._next_timestamp()
        logger.debug(f"Resolved server timestamp for {document_id}")
        self._notify(collection_path)

    def _notify(self, collection_path: str) -> None:
        loop = asyncio.get_running_loop()
        for listener in self._listeners:
            if listener.collection_path == collection_path:
                loop.call_soon(self._deliver, listener)

    def _deliver(self, listener: _SnapshotListener) -> None:
        if not listener.active:
            return
        snapshot = [
            doc for doc in self.documents(listener.collection_path)
            if listener.predicate is None or listener.predicate(doc.data)
        ]
        listener.on_snapshot(snapshot)

    def _fail_listener(self, listener: _SnapshotListener, message: str) -> None:
        if not listener.active:
            return
        listener.active = False
        if listener in self._listeners:
            self._listeners.remove(listener)
        logger.debug(f"Subscription to {listener.collection_path} failed: {message}")
        if listener.on_error is not None:
            listener.on_error(SyncError(message))


class InMemoryIdentityService:
    """
    Identity service backed by a token table.

    Attributes:
        tokens: Mapping of redeemable token to identity
        available: When False every call raises ServiceUnavailable
    """

    def __init__(self, tokens: Optional[Dict[str, Identity]] = None, available: bool = True):
        self.tokens = dict(tokens or {})
        self.available = available
        self.redeem_calls: List[str] = []
        self.anonymous_calls = 0
        self.current_identity: Optional[Identity] = None
        self._listeners: List[IdentityListener] = []

    async def redeem_token(self, token: str) -> Identity:
        self.redeem_calls.append(token)
        await asyncio.sleep(0)
        if not self.available:
            raise ServiceUnavailable("Identity service unavailable")
        identity = self.tokens.get(token)
        if identity is None:
            raise InvalidToken("Token was not recognised")
        self._set_current(identity)
        return identity

    async def sign_in_anonymously(self) -> Identity:
        self.anonymous_calls += 1
        await asyncio.sleep(0)
        if not self.available:
            raise ServiceUnavailable("Identity service unavailable")
        identity = f"{ANONYMOUS_IDENTITY_PREFIX}{uuid.uuid4().hex}"
        self._set_current(identity)
        return identity

    def sign_out(self) -> None:
        self._set_current(None)

    def on_identity_changed(self, listener: IdentityListener) -> Subscription:
        self._listeners.append(listener)

        def teardown():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(teardown, name="memory-identity-listener")

    async def close(self) -> None:
        self._listeners.clear()

    def _set_current(self, identity: Optional[Identity]) -> None:
        if identity == self.current_identity:
            return
        self.current_identity = identity
        for listener in list(self._listeners):
            listener(identity)
