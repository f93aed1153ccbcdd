"""
Response decoding

Decoding never raises: each step returns a DecodeResult carrying either the
parsed value or the error it would have raised, so callers choose between
raising and emitting.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..constants import ERROR_TRUNCATE_LENGTH_200, M_UNKNOWN_TOKEN
from ..errors import (
    AuthError,
    DecodeError,
    MatrixAPIError,
    ServerError,
    TransportError,
)
from .responses import SyncBatch

T = TypeVar("T")


@dataclass
class DecodeResult(Generic[T]):
    value: T | None = None
    error: DecodeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the decode error"""
        if self.error is not None:
            raise self.error
        return self.value


def _body_preview(body: bytes | str) -> str:
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return body[:ERROR_TRUNCATE_LENGTH_200]


def decode_json_object(body: bytes | str) -> DecodeResult[dict[str, Any]]:
    """Parse a body that must hold a JSON object"""
    if not body:
        return DecodeResult(error=DecodeError("Empty response body", body))
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        return DecodeResult(
            error=DecodeError(f"Malformed JSON response: {e}", body)
        )
    if not isinstance(data, dict):
        return DecodeResult(
            error=DecodeError(
                f"Expected a JSON object, got {type(data).__name__}: {_body_preview(body)}",
                body,
            )
        )
    return DecodeResult(value=data)


def decode_model(
    body: bytes | str, factory: Callable[[dict[str, Any]], T], what: str
) -> DecodeResult[T]:
    """Parse a JSON object and build ``factory(data)`` from it"""
    result = decode_json_object(body)
    if not result.ok:
        return result
    try:
        return DecodeResult(value=factory(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return DecodeResult(error=DecodeError(f"Invalid {what} response: {e}", body))


def _sync_batch(data: dict[str, Any]) -> SyncBatch:
    next_batch = data.get("next_batch")
    if not isinstance(next_batch, str) or not next_batch:
        raise ValueError("missing next_batch")
    return SyncBatch.from_dict(data)


def decode_sync(body: bytes | str) -> DecodeResult[SyncBatch]:
    """Parse a /sync response body"""
    return decode_model(body, _sync_batch, "sync")


def decode_error(
    status: int, body: bytes | str, reason: str = ""
) -> MatrixAPIError:
    """
    Classify a failed response

    Args:
        status: HTTP status, 0 when no response arrived
        body: Raw response body (may be empty)
        reason: Transport-level description used when the body is unusable

    Returns:
        AuthError for M_UNKNOWN_TOKEN whatever the status, ServerError for any
        other structured error, TransportError when the body is not one
    """
    result = decode_json_object(body)
    data = result.value if result.ok else None
    if data is None or not isinstance(data.get("errcode"), str):
        detail = reason or f"HTTP {status}"
        if body:
            detail = f"{detail}: {_body_preview(body)}"
        return TransportError(
            f"Matrix API error: {detail} (status: {status})",
            status=status,
            data=_body_preview(body) if body else "",
        )

    errcode = data["errcode"]
    error_msg = data.get("error", "")
    message = f"Matrix API error: {errcode} - {error_msg} (status: {status})"
    if errcode == M_UNKNOWN_TOKEN:
        return AuthError(status, data, message)
    return ServerError(status, data, message)
