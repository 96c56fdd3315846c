"""Session context shared by the client components."""

import asyncio
from typing import Callable, List, Optional

from common.exceptions import IdentityUnavailable
from common.logging_config import get_logger
from common.subscription import Subscription
from common.types import Identity
from store.base import IdentityService, MetadataStore

logger = get_logger(__name__)

ReadyListener = Callable[[Identity], None]


class SessionContext:
    """
    Holds the collaborators and the identity of one client session.

    The identity is assigned exactly once, by the identity bootstrapper, and
    is read-only afterwards. Assignment (or a bootstrap failure) opens the
    readiness gate that the live feed waits on.
    """

    def __init__(self, store: MetadataStore, identity_service: IdentityService):
        self.store = store
        self.identity_service = identity_service
        self._identity: Optional[Identity] = None
        self._failure: Optional[IdentityUnavailable] = None
        self._resolved = asyncio.Event()
        self._ready_listeners: List[ReadyListener] = []

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def is_ready(self) -> bool:
        return self._identity is not None

    @property
    def failure(self) -> Optional[IdentityUnavailable]:
        return self._failure

    def set_identity(self, identity: Identity) -> None:
        """
        Assign the session identity and fire the readiness signal.

        Raises:
            RuntimeError: If the session already has an identity
        """
        if self._identity is not None:
            raise RuntimeError("Session identity is already established")
        if not identity:
            raise ValueError("Identity must be a non-empty string")

        self._identity = identity
        self._failure = None
        self._resolved.set()
        logger.info(f"Session identity established [identity={identity}]")

        listeners, self._ready_listeners = self._ready_listeners, []
        for listener in listeners:
            listener(identity)

    def fail(self, error: IdentityUnavailable) -> None:
        """Record that identity bootstrap failed and release readiness waiters."""
        if self._identity is not None:
            return
        self._failure = error
        self._resolved.set()
        logger.error(f"Session identity unavailable: {error}")

    async def wait_ready(self) -> Identity:
        """
        Wait until the session identity is established.

        Raises:
            IdentityUnavailable: If bootstrap failed
        """
        await self._resolved.wait()
        if self._identity is None:
            raise self._failure or IdentityUnavailable("Identity bootstrap did not complete")
        return self._identity

    def add_ready_listener(self, listener: ReadyListener) -> Subscription:
        """
        Call listener once with the identity when it is established.

        If the identity is already known the listener is called immediately.
        """
        if self._identity is not None:
            listener(self._identity)
            return Subscription(name="ready-listener")

        self._ready_listeners.append(listener)

        def teardown():
            if listener in self._ready_listeners:
                self._ready_listeners.remove(listener)

        return Subscription(teardown, name="ready-listener")
