"""Cancellation handles returned by every listener/subscription API."""

from typing import Callable, Optional

from common.logging_config import get_logger

logger = get_logger(__name__)


class Subscription:
    """
    Handle for an active listener or subscription.

    cancel() runs the teardown callback exactly once; later calls are no-ops.
    """

    def __init__(self, teardown: Optional[Callable[[], None]] = None, name: str = "subscription"):
        self._teardown = teardown
        self.name = name
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        teardown, self._teardown = self._teardown, None
        if teardown is not None:
            teardown()
        logger.debug(f"Cancelled {self.name}")

    def __enter__(self) -> 'Subscription':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cancel()

    def __repr__(self) -> str:
        return f"Subscription(name={self.name!r}, active={self.active})"
