"""Identity and token repository for database operations."""

from datetime import datetime
from typing import Optional

from common.logging_config import get_logger
from server.database import get_db_connection

logger = get_logger(__name__)


class IdentityRepository:
    @staticmethod
    def get_identity_for_token(token: str) -> Optional[str]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT identity FROM identity_tokens WHERE token = ?", (token,))
            row = cursor.fetchone()
            return row["identity"] if row else None

    @staticmethod
    def record_identity(identity: str, kind: str, created_at: datetime) -> None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR IGNORE INTO identities (identity, kind, created_at) VALUES (?, ?, ?)",
                (identity, kind, created_at.isoformat())
            )
            conn.commit()
        logger.debug(f"Recorded {kind} identity {identity}")
