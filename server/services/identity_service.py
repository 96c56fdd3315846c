"""Identity issuing: token redemption and anonymous sign-in."""

import uuid
from datetime import datetime, timezone

from common.exceptions import InvalidToken
from common.logging_config import get_logger
from server.config import ANONYMOUS_PREFIX
from server.repositories.identity_repository import IdentityRepository

logger = get_logger(__name__)


class IdentityIssuer:
    def __init__(self):
        self.identity_repo = IdentityRepository()

    def redeem_token(self, token: str) -> str:
        identity = self.identity_repo.get_identity_for_token(token)
        if identity is None:
            logger.warning("Token redemption failed: unknown token")
            raise InvalidToken("Token is not valid")

        self.identity_repo.record_identity(identity, "token", datetime.now(timezone.utc))
        logger.info(f"Token redeemed [identity={identity}]")
        return identity

    def sign_in_anonymously(self) -> str:
        identity = f"{ANONYMOUS_PREFIX}{uuid.uuid4().hex}"
        self.identity_repo.record_identity(identity, "anonymous", datetime.now(timezone.utc))
        logger.info(f"Issued anonymous identity [identity={identity}]")
        return identity
