"""
Matrix client error types
"""

from .constants import HTTP_STATUS_NO_RESPONSE


class MatrixClientError(Exception):
    """Base class for all client errors"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PreconditionError(MatrixClientError):
    """The caller invoked an operation before its prerequisites were met"""


class MatrixAPIError(MatrixClientError):
    """Matrix API Error"""

    def __init__(self, status: int, data: dict | str, message: str):
        self.status = status
        self.data = data
        super().__init__(message)

    @property
    def errcode(self) -> str | None:
        if isinstance(self.data, dict):
            return self.data.get("errcode")
        return None


class ServerError(MatrixAPIError):
    """Structured error returned by the homeserver. Recoverable."""

    @property
    def error(self) -> str:
        if isinstance(self.data, dict):
            return self.data.get("error", "")
        return ""


class AuthError(ServerError):
    """The access token was rejected. The session must re-authenticate."""


class TransportError(MatrixAPIError):
    """The request failed without a structured error body"""

    def __init__(
        self,
        message: str,
        status: int = HTTP_STATUS_NO_RESPONSE,
        data: dict | str = "",
    ):
        super().__init__(status, data, message)


class DecodeError(MatrixClientError):
    """A successful response carried a body we could not parse"""

    def __init__(self, message: str, body: bytes | str = b""):
        self.body = body
        super().__init__(message)


class LoginError(MatrixClientError):
    """Login failed; the message is meant to be shown to the user"""

    def __init__(self, message: str, status: int = HTTP_STATUS_NO_RESPONSE):
        self.status = status
        super().__init__(message)


class RegistrationError(MatrixClientError):
    """Registration failed"""


class MediaUploadError(MatrixClientError):
    """Media repository upload failed"""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(message)


class HomeserverError(MatrixClientError):
    """The URL does not point at a usable Matrix homeserver"""

    def __init__(self, message: str, status: int = HTTP_STATUS_NO_RESPONSE):
        self.status = status
        super().__init__(message)


class MessageSendError(MatrixClientError):
    """Sending a room event failed; carries the transaction to retry with"""

    def __init__(self, room_id: str, txn_id: int, message: str):
        self.room_id = room_id
        self.txn_id = txn_id
        super().__init__(message)
