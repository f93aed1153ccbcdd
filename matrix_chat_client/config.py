"""
Matrix client configuration
"""

import logging
import os

from .constants import DEFAULT_TIMEOUT_MS_30000, ENV_ALLOW_INSECURE
from .storage_backends import normalize_storage_backend

logger = logging.getLogger("matrix_chat_client.config")


class MatrixConfig:
    def __init__(self, config: dict):
        """Initialize Matrix client configuration from a ``matrix_*`` dict."""
        self.config = config or {}
        self.homeserver = self.config.get("matrix_homeserver", "https://matrix.org")
        self.user_id = self.config.get("matrix_user_id")
        self.access_token = self.config.get("matrix_access_token")
        self.device_id = self.config.get("matrix_device_id")
        self.device_name = self.config.get("matrix_device_name")

        self.store_path = self.config.get("matrix_store_path", "./data/matrix_store")
        self.storage_backend = normalize_storage_backend(
            self.config.get("matrix_storage_backend", "json")
        )
        self.sync_timeout = self.config.get(
            "matrix_sync_timeout", DEFAULT_TIMEOUT_MS_30000
        )
        # Seconds to wait before re-arming the sync loop after a recoverable error
        self.sync_retry_delay = self.config.get("matrix_sync_retry_delay", 2.0)

        # The environment switch wins so TLS can be relaxed without touching config files
        self.allow_insecure = bool(self.config.get("matrix_allow_insecure", False))
        if os.environ.get(ENV_ALLOW_INSECURE, "0") == "1":
            self.allow_insecure = True
        if self.allow_insecure:
            logger.warning(
                "Insecure connections are allowed: SSL errors will be ignored"
            )

        self._validate()

    @property
    def has_credentials(self) -> bool:
        return bool(self.user_id and self.access_token)

    def _validate(self):
        if not self.homeserver:
            raise ValueError(
                "matrix_homeserver is required in configuration. Example: https://matrix.org"
            )
        if not self.homeserver.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid matrix_homeserver: {self.homeserver}. It must start with http:// or https://"
            )
        if self.user_id and not (
            self.user_id.startswith("@") and ":" in self.user_id
        ):
            raise ValueError(
                f"Invalid matrix_user_id: {self.user_id}. Format: @username:homeserver.com"
            )
        if not isinstance(self.sync_timeout, int) or self.sync_timeout < 0:
            raise ValueError(
                f"Invalid matrix_sync_timeout: {self.sync_timeout}. Must be a non-negative integer (milliseconds)"
            )
        if (
            not isinstance(self.sync_retry_delay, (int, float))
            or self.sync_retry_delay < 0
        ):
            raise ValueError(
                f"Invalid matrix_sync_retry_delay: {self.sync_retry_delay}. Must be a non-negative number"
            )
