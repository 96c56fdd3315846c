"""Configuration management for the LiveDrop client."""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from common.constants import (
    DEFAULT_LINK_BASE_URL,
    DEFAULT_STORE_URL,
    POLL_INTERVAL_SECONDS,
    PROGRESS_STEP_PERCENT,
    REQUEST_TIMEOUT_SECONDS,
    SYNC_MAX_RETRIES,
    SYNC_RETRY_BACKOFF_MULTIPLIER,
    SYNC_RETRY_BASE_DELAY_SECONDS,
    TICK_INTERVAL_SECONDS,
    UPLOADS_COLLECTION,
)
from common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.livedrop' / 'config.json'


class Config:
    """Manages client configuration stored in a JSON file."""

    DEFAULT_CONFIG = {
        "store_url": os.environ.get("LIVEDROP_STORE_URL", DEFAULT_STORE_URL),
        "collection": UPLOADS_COLLECTION,
        "tick_interval": TICK_INTERVAL_SECONDS,
        "progress_step": PROGRESS_STEP_PERCENT,
        "poll_interval": POLL_INTERVAL_SECONDS,
        "timeout": REQUEST_TIMEOUT_SECONDS,
        "max_retries": SYNC_MAX_RETRIES,
        "retry_backoff_multiplier": SYNC_RETRY_BACKOFF_MULTIPLIER,
        "retry_base_delay": SYNC_RETRY_BASE_DELAY_SECONDS,
        "link_base_url": DEFAULT_LINK_BASE_URL,
    }

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.livedrop/config.json)
        """
        self.config_path = Path(config_path)
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        A corrupted file is copied to config.json.bak and defaults are used.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.livedrop' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Config file {self.config_path} unreadable, using defaults: {e}")
                backup_path = self.config_path.with_suffix('.json.bak')
                try:
                    shutil.copy(self.config_path, backup_path)
                except IOError as copy_error:
                    logger.warning(f"Could not back up config file: {copy_error}")
                return self.DEFAULT_CONFIG.copy()

        config = self.DEFAULT_CONFIG.copy()
        try:
            with open(self.config_path, 'w') as f:
                json.dump(config, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not write default config: {e}")
        return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config: {e}")

    def get_identity_token(self) -> Optional[str]:
        """
        Get the pre-provisioned identity token.

        The LIVEDROP_IDENTITY_TOKEN environment variable takes precedence over
        the config file.

        Returns:
            Token string or None if not set
        """
        return os.environ.get("LIVEDROP_IDENTITY_TOKEN") or self.data.get('identity_token')

    def set_identity_token(self, token: str) -> None:
        self.data['identity_token'] = token
        self.save()

    def get_store_url(self) -> str:
        return self.data.get('store_url', DEFAULT_STORE_URL).rstrip('/')

    def get_collection(self) -> str:
        return self.data.get('collection', UPLOADS_COLLECTION)

    def get_timeout(self) -> float:
        return self.data.get('timeout', REQUEST_TIMEOUT_SECONDS)

    def get_simulation_config(self) -> dict:
        """
        Get upload simulation cadence.

        Returns:
            Dictionary with 'tick_interval' (seconds) and 'progress_step' (percent)
        """
        return {
            'tick_interval': float(self.data.get('tick_interval', TICK_INTERVAL_SECONDS)),
            'progress_step': int(self.data.get('progress_step', PROGRESS_STEP_PERCENT)),
        }

    def get_poll_interval(self) -> float:
        return float(self.data.get('poll_interval', POLL_INTERVAL_SECONDS))

    def get_link_base_url(self) -> str:
        return self.data.get('link_base_url', DEFAULT_LINK_BASE_URL)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries', 'retry_backoff_multiplier' and 'retry_base_delay'
        """
        return {
            'max_retries': self.data.get('max_retries', SYNC_MAX_RETRIES),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', SYNC_RETRY_BACKOFF_MULTIPLIER),
            'retry_base_delay': self.data.get('retry_base_delay', SYNC_RETRY_BASE_DELAY_SECONDS),
        }
