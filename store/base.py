"""
Collaborator contracts consumed by the client core.

The metadata store and the identity service are external services; the core
only relies on the methods below. Snapshots are always the complete set of
matching documents, never diffs.
"""

from typing import Any, Callable, Dict, List, Optional, Protocol

from common.exceptions import SyncError
from common.subscription import Subscription
from common.types import Identity, StoredDocument

SnapshotCallback = Callable[[List[StoredDocument]], None]
ErrorCallback = Callable[[SyncError], None]
DocumentPredicate = Callable[[Dict[str, Any]], bool]
IdentityListener = Callable[[Optional[Identity]], None]


class MetadataStore(Protocol):

    async def create(self, collection_path: str, document_id: str, document: Dict[str, Any]) -> None:
        """
        Create a document.

        Raises:
            WriteError: If the store rejects or fails the write
        """
        ...

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
        predicate: Optional[DocumentPredicate] = None,
    ) -> Subscription:
        """
        Subscribe to full snapshots of a collection.

        on_error is called at most once; the subscription is dead afterwards.
        """
        ...

    async def close(self) -> None:
        ...


class IdentityService(Protocol):

    async def redeem_token(self, token: str) -> Identity:
        """
        Raises:
            InvalidToken: If the token is unknown or expired
            ServiceUnavailable: If the service cannot be reached
        """
        ...

    async def sign_in_anonymously(self) -> Identity:
        """
        Raises:
            ServiceUnavailable: If the service cannot be reached
        """
        ...

    def on_identity_changed(self, listener: IdentityListener) -> Subscription:
        ...

    async def close(self) -> None:
        ...
