"""
Matrix Client - aiohttp implementation of the Client-Server API
"""

from .base import RawResponse
from .decoding import DecodeResult, decode_error, decode_json_object, decode_sync
from .filter_mixin import is_filter_definition
from .http_client import MatrixHTTPClient
from .responses import (
    LoginResponse,
    MessagesPage,
    Profile,
    RegisterResponse,
    RegistrationFlow,
    SyncBatch,
    UploadResponse,
)

__all__ = [
    "MatrixHTTPClient",
    "RawResponse",
    "DecodeResult",
    "decode_error",
    "decode_json_object",
    "decode_sync",
    "is_filter_definition",
    "LoginResponse",
    "MessagesPage",
    "Profile",
    "RegisterResponse",
    "RegistrationFlow",
    "SyncBatch",
    "UploadResponse",
]
