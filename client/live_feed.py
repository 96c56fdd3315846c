"""Live feed synchronizer keeping a local ordered view of the uploads collection."""

import asyncio
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional

from client.session import SessionContext
from common.constants import (
    SYNC_MAX_RETRIES,
    SYNC_RETRY_BACKOFF_MULTIPLIER,
    SYNC_RETRY_BASE_DELAY_SECONDS,
    UPLOADS_COLLECTION,
)
from common.exceptions import SyncError
from common.logging_config import get_logger
from common.protocol import document_to_record
from common.subscription import Subscription
from common.types import MetadataRecord, OrderedSnapshot, StoredDocument
from store.base import DocumentPredicate

logger = get_logger(__name__)

SnapshotListener = Callable[[OrderedSnapshot], None]
SyncErrorListener = Callable[[SyncError], None]

_UNRESOLVED = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(record: MetadataRecord):
    resolved = record.uploaded_at is not None
    return (resolved, record.uploaded_at if resolved else _UNRESOLVED, record.id)


def order_records(records: Iterable[MetadataRecord]) -> OrderedSnapshot:
    """
    Sort records newest first.

    Records whose server timestamp is unresolved sort as the oldest. Equal
    timestamps are ordered by id so the result does not depend on the order
    documents were delivered in.
    """
    return tuple(sorted(records, key=_sort_key, reverse=True))


class LiveFeedSynchronizer:
    """
    Maintains the local ordered snapshot of metadata records.

    The subscription only starts once the session identity is ready. Every
    store notification is merged into the view by record id and the whole
    view is re-sorted. Subscription failures are reported as SyncError
    without discarding the last good snapshot, and the subscription is
    reopened with exponential backoff up to max_retries times.
    """

    def __init__(
        self,
        session: SessionContext,
        collection_path: str = UPLOADS_COLLECTION,
        predicate: Optional[DocumentPredicate] = None,
        max_retries: int = SYNC_MAX_RETRIES,
        retry_base_delay: float = SYNC_RETRY_BASE_DELAY_SECONDS,
        retry_backoff_multiplier: float = SYNC_RETRY_BACKOFF_MULTIPLIER,
    ):
        self.session = session
        self.collection_path = collection_path
        self.predicate = predicate
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_backoff_multiplier = retry_backoff_multiplier
        self.last_error: Optional[SyncError] = None

        self._records: Dict[str, MetadataRecord] = {}
        self._snapshot: OrderedSnapshot = ()
        self._subscribed = False
        self._store_subscription: Optional[Subscription] = None
        self._retry_task: Optional[asyncio.Task] = None
        self._retry_attempt = 0
        self._listeners: List[SnapshotListener] = []
        self._error_listeners: List[SyncErrorListener] = []

    @property
    def snapshot(self) -> OrderedSnapshot:
        return self._snapshot

    @property
    def is_subscribed(self) -> bool:
        return self._subscribed

    async def subscribe(self, collection_path: Optional[str] = None) -> Subscription:
        """
        Wait for identity readiness, then subscribe to the collection.

        Returns:
            Handle whose cancel() unsubscribes

        Raises:
            IdentityUnavailable: If the session never obtains an identity
        """
        if collection_path is not None:
            self.collection_path = collection_path

        await self.session.wait_ready()

        if not self._subscribed:
            self._subscribed = True
            self._retry_attempt = 0
            self._open()
            logger.info(f"Live feed subscribed [collection={self.collection_path}]")

        return Subscription(self.unsubscribe, name=f"live-feed:{self.collection_path}")

    def unsubscribe(self) -> None:
        """Release the store subscription and any pending resubscription."""
        if not self._subscribed:
            return
        self._subscribed = False
        self._close_store_subscription()
        if self._retry_task is not None:
            self._retry_task.cancel()
            self._retry_task = None
        logger.info(f"Live feed unsubscribed [collection={self.collection_path}]")

    def add_listener(self, listener: SnapshotListener) -> Subscription:
        """Call listener with every new ordered snapshot."""
        self._listeners.append(listener)
        return Subscription(lambda: self._discard(self._listeners, listener), name="snapshot-listener")

    def add_error_listener(self, listener: SyncErrorListener) -> Subscription:
        """Call listener with every SyncError the feed reports."""
        self._error_listeners.append(listener)
        return Subscription(lambda: self._discard(self._error_listeners, listener), name="sync-error-listener")

    async def stream(self) -> AsyncIterator[OrderedSnapshot]:
        """Yield the current snapshot, then every later one."""
        queue: asyncio.Queue = asyncio.Queue()
        subscription = self.add_listener(queue.put_nowait)
        try:
            yield self._snapshot
            while True:
                yield await queue.get()
        finally:
            subscription.cancel()

    def apply_snapshot(self, documents: List[StoredDocument]) -> bool:
        """
        Merge a full collection snapshot into the local view.

        Returns:
            True if the ordered view changed
        """
        merged = dict(self._records)
        for document in documents:
            try:
                record = document_to_record(document)
            except ValueError as e:
                logger.warning(f"Skipping malformed document: {e}")
                continue

            existing = merged.get(record.id)
            if existing is not None and existing.uploaded_at is not None and record.uploaded_at is None:
                continue
            merged[record.id] = record

        ordered = order_records(merged.values())
        if ordered == self._snapshot:
            return False

        self._records = merged
        self._snapshot = ordered
        logger.debug(f"Live feed updated [records={len(ordered)}]")
        for listener in list(self._listeners):
            try:
                listener(ordered)
            except Exception as e:
                logger.error(f"Live feed listener failed: {e}", exc_info=True)
        return True

    def _open(self) -> None:
        try:
            self._store_subscription = self.session.store.subscribe(
                self.collection_path,
                self._on_snapshot,
                on_error=self._on_error,
                predicate=self.predicate,
            )
        except Exception as e:
            logger.warning(f"Store subscription could not be opened: {e}", exc_info=True)
            self._on_error(SyncError(f"Could not subscribe to '{self.collection_path}': {e}"))

    def _close_store_subscription(self) -> None:
        if self._store_subscription is not None:
            self._store_subscription.cancel()
            self._store_subscription = None

    def _on_snapshot(self, documents: List[StoredDocument]) -> None:
        if not self._subscribed:
            return
        self._retry_attempt = 0
        self.last_error = None
        self.apply_snapshot(documents)

    def _on_error(self, error: SyncError) -> None:
        if not self._subscribed:
            return
        self._close_store_subscription()
        self.last_error = error

        if self._retry_attempt >= self.max_retries:
            self._subscribed = False
            final = SyncError(
                f"Live feed for '{self.collection_path}' failed after "
                f"{self._retry_attempt} retries: {error}",
                retries_exhausted=True,
            )
            self.last_error = final
            logger.error(str(final))
            self._report(final)
            return

        delay = self.retry_base_delay * (self.retry_backoff_multiplier ** self._retry_attempt)
        self._retry_attempt += 1
        logger.warning(
            f"Live feed error: {error}, resubscribing in {delay}s "
            f"[attempt={self._retry_attempt}/{self.max_retries}]"
        )
        self._report(error)
        self._retry_task = asyncio.get_running_loop().create_task(self._resubscribe_after(delay))

    async def _resubscribe_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._retry_task = None
        if self._subscribed:
            self._open()

    def _report(self, error: SyncError) -> None:
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception as e:
                logger.error(f"Sync error listener failed: {e}", exc_info=True)

    @staticmethod
    def _discard(listeners: list, listener) -> None:
        if listener in listeners:
            listeners.remove(listener)
