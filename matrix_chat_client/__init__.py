# Matrix Client-Server API client for desktop chat applications

from .client import MatrixHTTPClient, SyncBatch
from .config import MatrixConfig
from .errors import (
    AuthError,
    DecodeError,
    MatrixAPIError,
    MatrixClientError,
    PreconditionError,
    ServerError,
    TransportError,
)
from .session import MatrixSession
from .settings import ClientSettings
from .signals import ClientSignals
from .sync import MatrixSyncManager

__version__ = "0.1.0"

__all__ = [
    "MatrixHTTPClient",
    "MatrixSyncManager",
    "MatrixConfig",
    "MatrixSession",
    "ClientSettings",
    "ClientSignals",
    "SyncBatch",
    "MatrixClientError",
    "PreconditionError",
    "MatrixAPIError",
    "AuthError",
    "ServerError",
    "TransportError",
    "DecodeError",
]
