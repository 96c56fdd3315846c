"""HTTP adapters for the LiveDrop store server's document and identity APIs."""

import asyncio
import uuid
from typing import Any, Dict, List, Optional

import httpx

from common.constants import (
    POLL_INTERVAL_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
    SYNC_MAX_RETRIES,
    SYNC_RETRY_BACKOFF_MULTIPLIER,
)
from common.exceptions import InvalidToken, ServiceUnavailable, SyncError, WriteError
from common.logging_config import get_logger
from common.protocol import document_to_wire
from common.subscription import Subscription
from common.types import Identity, StoredDocument
from store.base import DocumentPredicate, ErrorCallback, IdentityListener, SnapshotCallback

logger = get_logger(__name__)


class _HttpAdapter:
    """httpx.AsyncClient wrapper with retry logic and error formatting."""

    ERROR_MESSAGES = {
        'INVALID_TOKEN': 'Identity token was rejected.',
        'DOCUMENT_EXISTS': 'A document with this id already exists.',
        'VALIDATION_ERROR': 'The server rejected the document.',
    }

    STATUS_MESSAGES = {
        400: 'Bad request',
        401: 'Not authenticated',
        403: 'Access forbidden',
        404: 'Not found',
        409: 'Conflict',
        422: 'Invalid document',
        500: 'Server error',
        503: 'Service unavailable',
    }

    def __init__(
        self,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        max_retries: int = SYNC_MAX_RETRIES,
        retry_backoff_multiplier: float = SYNC_RETRY_BACKOFF_MULTIPLIER,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url
        self.max_retries = max_retries
        self.retry_backoff_multiplier = retry_backoff_multiplier
        self.session = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def close(self) -> None:
        await self.session.aclose()

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses adapter default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        max_retries = self.max_retries if max_retries is None else max_retries
        request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})['X-Request-ID'] = request_id

        last_exception: Optional[Exception] = None
        for attempt in range(max_retries + 1):
            try:
                response = await self.session.request(method, endpoint, **kwargs)
                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={request_id}]"
                )

                if response.status_code >= 500 and attempt < max_retries:
                    delay = self.retry_backoff_multiplier ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={request_id}]"
                    )
                    await asyncio.sleep(delay)
                    continue

                return response

            except httpx.TransportError as e:
                last_exception = e
                if attempt < max_retries:
                    delay = self.retry_backoff_multiplier ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={request_id}]"
                    )
                    await asyncio.sleep(delay)

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.") from last_exception
        if isinstance(last_exception, httpx.ConnectError):
            raise ConnectionError(f"Cannot connect to store server at {self.base_url}") from last_exception
        raise ConnectionError(
            f"Connection to store server at {self.base_url} failed: {last_exception}"
        ) from last_exception

    def _format_error(self, response: httpx.Response) -> str:
        try:
            error_data = response.json()
            detail = error_data.get('detail', 'Unknown error')
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text or 'Unknown error'
            code = 'UNKNOWN'

        if code in self.ERROR_MESSAGES:
            return self.ERROR_MESSAGES[code]

        message = self.STATUS_MESSAGES.get(response.status_code, str(detail))
        return f"{message} (Code: {code})" if code != 'UNKNOWN' else message


class HttpMetadataStore(_HttpAdapter):
    """
    Metadata store backed by the document API.

    Subscriptions poll the collection every poll_interval seconds and deliver
    a snapshot only when it differs from the previous one. A failed poll ends
    the subscription with a SyncError.
    """

    def __init__(self, base_url: str, poll_interval: float = POLL_INTERVAL_SECONDS, **kwargs):
        super().__init__(base_url, **kwargs)
        self.poll_interval = poll_interval

    async def create(self, collection_path: str, document_id: str, document: Dict[str, Any]) -> None:
        endpoint = f"/collections/{collection_path}/documents/{document_id}"
        try:
            response = await self._request_with_retry(
                "PUT", endpoint, max_retries=0, json=document_to_wire(document)
            )
        except ConnectionError as e:
            raise WriteError(str(e)) from e

        if response.status_code != 201:
            raise WriteError(self._format_error(response))

    async def fetch_documents(self, collection_path: str) -> List[StoredDocument]:
        """
        Fetch the complete current collection.

        Raises:
            SyncError: If the collection cannot be read
        """
        try:
            response = await self._request_with_retry(
                "GET", f"/collections/{collection_path}/documents", max_retries=0
            )
        except ConnectionError as e:
            raise SyncError(str(e)) from e

        if response.status_code != 200:
            raise SyncError(self._format_error(response))

        try:
            payload = response.json()
            return [StoredDocument(id=item['id'], data=item['data']) for item in payload['documents']]
        except (ValueError, KeyError, TypeError) as e:
            raise SyncError(f"Malformed snapshot from store: {e}") from e

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
        predicate: Optional[DocumentPredicate] = None,
    ) -> Subscription:
        task = asyncio.get_running_loop().create_task(
            self._poll(collection_path, on_snapshot, on_error, predicate)
        )
        return Subscription(task.cancel, name=f"http-store:{collection_path}")

    async def _poll(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback],
        predicate: Optional[DocumentPredicate],
    ) -> None:
        last_snapshot: Optional[List[StoredDocument]] = None
        while True:
            try:
                documents = await self.fetch_documents(collection_path)
                snapshot = [doc for doc in documents if predicate is None or predicate(doc.data)]
            except SyncError as e:
                logger.warning(f"Polling {collection_path} failed: {e}")
                self._report_error(on_error, e)
                return
            except Exception as e:
                logger.error(f"Unexpected error polling {collection_path}: {e}", exc_info=True)
                self._report_error(on_error, SyncError(f"Polling {collection_path} failed: {e}"))
                return

            if snapshot != last_snapshot:
                last_snapshot = snapshot
                try:
                    on_snapshot(snapshot)
                except Exception as e:
                    logger.error(f"Snapshot callback for {collection_path} failed: {e}", exc_info=True)

            await asyncio.sleep(self.poll_interval)

    @staticmethod
    def _report_error(on_error: Optional[ErrorCallback], error: SyncError) -> None:
        if on_error is None:
            return
        try:
            on_error(error)
        except Exception as e:
            logger.error(f"Sync error callback failed: {e}", exc_info=True)


class HttpIdentityService(_HttpAdapter):
    """Identity service backed by the server's /auth endpoints."""

    def __init__(self, base_url: str, **kwargs):
        super().__init__(base_url, **kwargs)
        self.current_identity: Optional[Identity] = None
        self._listeners: List[IdentityListener] = []

    async def redeem_token(self, token: str) -> Identity:
        try:
            response = await self._request_with_retry("POST", "/auth/redeem", json={'token': token})
        except ConnectionError as e:
            raise ServiceUnavailable(str(e)) from e

        if response.status_code == 401:
            raise InvalidToken(self._format_error(response))
        return self._accept(response, expected_status=200)

    async def sign_in_anonymously(self) -> Identity:
        try:
            response = await self._request_with_retry("POST", "/auth/anonymous")
        except ConnectionError as e:
            raise ServiceUnavailable(str(e)) from e
        return self._accept(response, expected_status=201)

    def on_identity_changed(self, listener: IdentityListener) -> Subscription:
        self._listeners.append(listener)

        def teardown():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(teardown, name="http-identity-listener")

    async def close(self) -> None:
        self._listeners.clear()
        await super().close()

    def _accept(self, response: httpx.Response, expected_status: int) -> Identity:
        if response.status_code != expected_status:
            raise ServiceUnavailable(self._format_error(response))
        try:
            identity = response.json()['identity']
        except (ValueError, KeyError) as e:
            raise ServiceUnavailable(f"Malformed identity response: {e}") from e

        if identity != self.current_identity:
            self.current_identity = identity
            for listener in list(self._listeners):
                listener(identity)
        return identity
