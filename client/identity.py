"""Identity bootstrap: one stable identity per client session."""

import asyncio
from typing import Optional

from client.session import SessionContext
from common.exceptions import IdentityUnavailable, InvalidToken, ServiceUnavailable
from common.logging_config import get_logger
from common.types import Identity

logger = get_logger(__name__)


class IdentityBootstrapper:
    """
    Establishes the session identity.

    A pre-provisioned token is redeemed first when one is configured; if
    redemption fails, or there is no token, an anonymous identity is
    requested instead. The identity service is contacted for at most one
    resolution per session: concurrent callers await the same attempt and
    later callers get the cached result.
    """

    def __init__(self, session: SessionContext, token: Optional[str] = None):
        self.session = session
        self.token = token
        self._attempt: Optional[asyncio.Task] = None

    async def obtain_identity(self) -> Identity:
        """
        Resolve the session identity.

        Returns:
            The established identity

        Raises:
            IdentityUnavailable: If the identity service cannot issue any identity
        """
        if self.session.identity is not None:
            return self.session.identity

        if self._attempt is None:
            self._attempt = asyncio.create_task(self._resolve())

        return await asyncio.shield(self._attempt)

    async def _resolve(self) -> Identity:
        service = self.session.identity_service
        identity: Optional[Identity] = None

        if self.token:
            try:
                identity = await service.redeem_token(self.token)
                logger.info("Redeemed pre-provisioned token")
            except (InvalidToken, ServiceUnavailable) as e:
                logger.warning(f"Token redemption failed, falling back to anonymous sign-in: {e}")
            except Exception as e:
                logger.error(f"Unexpected error redeeming token, falling back to anonymous sign-in: {e}", exc_info=True)

        if identity is None:
            try:
                identity = await service.sign_in_anonymously()
                logger.info("Signed in anonymously")
            except ServiceUnavailable as e:
                raise self._give_up(e) from e
            except Exception as e:
                logger.error(f"Unexpected error during anonymous sign-in: {e}", exc_info=True)
                raise self._give_up(e) from e

        self.session.set_identity(identity)
        return identity

    def _give_up(self, cause: Exception) -> IdentityUnavailable:
        error = IdentityUnavailable(f"Identity service unavailable: {cause}")
        self.session.fail(error)
        return error
