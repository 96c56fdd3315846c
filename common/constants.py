"""Project-wide constants (collection names, simulation cadence, retry defaults)."""

UPLOADS_COLLECTION: str = "uploads"

PROGRESS_STEP_PERCENT: int = 10
TICK_INTERVAL_SECONDS: float = 0.1  # 100 ms per progress tick

DEFAULT_STORE_URL: str = "http://localhost:8000"
DEFAULT_LINK_BASE_URL: str = "https://livedrop.local/share"

POLL_INTERVAL_SECONDS: float = 1.0
REQUEST_TIMEOUT_SECONDS: int = 30

SYNC_MAX_RETRIES: int = 3
SYNC_RETRY_BASE_DELAY_SECONDS: float = 0.5
SYNC_RETRY_BACKOFF_MULTIPLIER: int = 2

ANONYMOUS_IDENTITY_PREFIX: str = "anon_"
