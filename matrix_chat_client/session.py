"""
Session credentials for one logged-in account
"""

from dataclasses import dataclass
from urllib.parse import urlsplit


@dataclass(frozen=True)
class MatrixSession:
    """Credentials established at login. Replaced, never mutated."""

    homeserver: str
    access_token: str
    user_id: str
    device_id: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "homeserver", self.homeserver.rstrip("/"))

    @property
    def hostname(self) -> str:
        """Homeserver host, with the port when one is given explicitly"""
        parts = urlsplit(self.homeserver)
        if parts.port:
            return f"{parts.hostname}:{parts.port}"
        return parts.hostname or ""

    @property
    def server_name(self) -> str:
        """Server part of the user ID"""
        _, _, server = self.user_id.partition(":")
        return server
