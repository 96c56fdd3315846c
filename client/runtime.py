"""Client runtime wiring identity bootstrap, live feed and upload simulation."""

from typing import Optional

from client.config import Config
from client.identity import IdentityBootstrapper
from client.live_feed import LiveFeedSynchronizer
from client.session import SessionContext
from client.upload_simulator import UploadSimulator
from common.logging_config import get_logger
from common.subscription import Subscription
from common.types import Identity
from store.base import IdentityService, MetadataStore
from store.http_store import HttpIdentityService, HttpMetadataStore
from store.memory import InMemoryIdentityService, InMemoryMetadataStore

logger = get_logger(__name__)


class LiveDropClient:
    """
    One client session.

    start() obtains the identity and then subscribes the live feed; uploads
    can be submitted once it returns. close() releases every subscription
    and aborts unfinished batches.
    """

    def __init__(
        self,
        store: MetadataStore,
        identity_service: IdentityService,
        config: Config,
    ):
        self.config = config
        self.session = SessionContext(store, identity_service)
        self.bootstrapper = IdentityBootstrapper(self.session, token=config.get_identity_token())

        retry_config = config.get_retry_config()
        self.feed = LiveFeedSynchronizer(
            self.session,
            collection_path=config.get_collection(),
            max_retries=retry_config['max_retries'],
            retry_base_delay=retry_config['retry_base_delay'],
            retry_backoff_multiplier=retry_config['retry_backoff_multiplier'],
        )

        simulation = config.get_simulation_config()
        self.simulator = UploadSimulator(
            self.session,
            collection_path=config.get_collection(),
            tick_interval=simulation['tick_interval'],
            progress_step=simulation['progress_step'],
            link_base_url=config.get_link_base_url(),
        )

        self._feed_subscription: Optional[Subscription] = None
        self._identity_watch: Optional[Subscription] = None
        self._closed = False

    @classmethod
    def from_config(cls, config: Config) -> 'LiveDropClient':
        """Build a client talking to the store server configured in config."""
        retry_config = config.get_retry_config()
        http_options = {
            'timeout': config.get_timeout(),
            'max_retries': retry_config['max_retries'],
            'retry_backoff_multiplier': retry_config['retry_backoff_multiplier'],
        }
        store = HttpMetadataStore(config.get_store_url(), poll_interval=config.get_poll_interval(), **http_options)
        identity_service = HttpIdentityService(config.get_store_url(), **http_options)
        return cls(store, identity_service, config)

    @classmethod
    def offline(cls, config: Config) -> 'LiveDropClient':
        """Build a client on in-process collaborators."""
        return cls(InMemoryMetadataStore(), InMemoryIdentityService(), config)

    @property
    def identity(self) -> Optional[Identity]:
        return self.session.identity

    async def start(self) -> Identity:
        """
        Establish the identity and start the live feed.

        Raises:
            IdentityUnavailable: If no identity can be obtained
        """
        identity = await self.bootstrapper.obtain_identity()
        self._feed_subscription = await self.feed.subscribe()
        self._identity_watch = self.session.identity_service.on_identity_changed(self._on_identity_changed)
        logger.info(f"Client started [identity={identity}]")
        return identity

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._identity_watch is not None:
            self._identity_watch.cancel()
        if self._feed_subscription is not None:
            self._feed_subscription.cancel()
        self.feed.unsubscribe()

        await self.simulator.abort_all()
        await self.session.store.close()
        await self.session.identity_service.close()
        logger.info("Client closed")

    async def __aenter__(self) -> 'LiveDropClient':
        try:
            await self.start()
        except Exception:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _on_identity_changed(self, identity: Optional[Identity]) -> None:
        if identity == self.session.identity:
            return
        logger.warning("Session identity was replaced or dropped, stopping live feed")
        if self._feed_subscription is not None:
            self._feed_subscription.cancel()
            self._feed_subscription = None
