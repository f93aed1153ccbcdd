"""
Matrix HTTP Client - Base module
Provides core HTTP request functionality
"""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import aiohttp

from ..constants import (
    DEFAULT_RETRY_AFTER_MS,
    HTTP_ERROR_STATUS_400,
    HTTP_STATUS_NO_RESPONSE,
    HTTP_TOO_MANY_REQUESTS_429,
    MAX_RATE_LIMIT_RETRIES,
    USER_AGENT,
)
from ..errors import PreconditionError
from ..session import MatrixSession
from .decoding import decode_error, decode_json_object

logger = logging.getLogger("matrix_chat_client.http")


@dataclass
class RawResponse:
    """Status, headers and body of one finished request"""

    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)
    reason: str = ""

    @property
    def failed(self) -> bool:
        return (
            self.status == HTTP_STATUS_NO_RESPONSE
            or self.status >= HTTP_ERROR_STATUS_400
        )


class MatrixClientBase:
    """
    Base class for Matrix HTTP client
    Provides core HTTP request functionality
    """

    def __init__(
        self,
        homeserver: str,
        credentials: MatrixSession | None = None,
        allow_insecure: bool = False,
        request_timeout: float | None = None,
    ):
        """
        Initialize Matrix HTTP client base

        Args:
            homeserver: Matrix homeserver URL (e.g., https://matrix.org)
            credentials: Session established by an earlier login
            allow_insecure: Skip TLS certificate verification
            request_timeout: Total timeout per request in seconds
        """
        self.homeserver = homeserver.rstrip("/")
        self.credentials = credentials
        self.allow_insecure = allow_insecure
        self.request_timeout = request_timeout
        self.session: aiohttp.ClientSession | None = None

    @property
    def access_token(self) -> str | None:
        return self.credentials.access_token if self.credentials else None

    @property
    def user_id(self) -> str | None:
        return self.credentials.user_id if self.credentials else None

    @property
    def device_id(self) -> str | None:
        return self.credentials.device_id if self.credentials else None

    def require_credentials(self) -> MatrixSession:
        if self.credentials is None:
            raise PreconditionError("Not logged in: no session credentials")
        return self.credentials

    async def _ensure_session(self):
        """Ensure aiohttp session exists"""
        if self.session is None or self.session.closed:
            connector = aiohttp.TCPConnector(ssl=False) if self.allow_insecure else None
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            self.session = aiohttp.ClientSession(connector=connector, timeout=timeout)

    async def close(self):
        """Close the HTTP session"""
        if self.session and not self.session.closed:
            await self.session.close()

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _get_headers(
        self, authenticated: bool = True, content_type: str | None = "application/json"
    ) -> dict[str, str]:
        """Get HTTP headers, with the bearer token for authenticated requests"""
        headers = {"User-Agent": USER_AGENT}
        if content_type:
            headers["Content-Type"] = content_type
        if authenticated:
            headers["Authorization"] = f"Bearer {self.require_credentials().access_token}"
        return headers

    @staticmethod
    def _stringify_params(params: dict | None) -> dict[str, str] | None:
        if not params:
            return None
        result = {}
        for key, value in params.items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            result[key] = str(value)
        return result

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        data: dict | None = None,
        body: bytes | None = None,
        params: dict | None = None,
        authenticated: bool = True,
        content_type: str | None = "application/json",
    ) -> RawResponse:
        """
        Fire one request and collect the whole reply

        Network failures do not raise; they come back with status 0 and the
        exception text as reason.
        """
        await self._ensure_session()

        url = f"{self.homeserver}{endpoint}"
        headers = self._get_headers(authenticated, content_type)
        kwargs: dict[str, Any] = {
            "headers": headers,
            "params": self._stringify_params(params),
        }
        if data is not None:
            kwargs["json"] = data
        elif body is not None:
            kwargs["data"] = body

        logger.debug(f"{method} {endpoint}")
        try:
            async with self.session.request(method, url, **kwargs) as response:
                payload = await response.read()
                return RawResponse(
                    status=response.status,
                    body=payload,
                    headers=dict(response.headers),
                    reason=response.reason or "",
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Matrix HTTP request failed: {method} {endpoint}: {e!r}")
            return RawResponse(
                status=HTTP_STATUS_NO_RESPONSE, reason=str(e) or type(e).__name__
            )

    @staticmethod
    def _retry_after_seconds(raw: RawResponse) -> float:
        result = decode_json_object(raw.body)
        retry_after_ms = DEFAULT_RETRY_AFTER_MS
        if result.ok:
            retry_after_ms = result.value.get("retry_after_ms", retry_after_ms)
        try:
            return max(0.0, float(retry_after_ms) / 1000)
        except (TypeError, ValueError):
            return DEFAULT_RETRY_AFTER_MS / 1000

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: dict | None = None,
        params: dict | None = None,
        authenticated: bool = True,
        _retry_count: int = 0,
    ) -> dict[str, Any]:
        """
        Make HTTP request to Matrix server

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint (e.g., /_matrix/client/v3/login)
            data: JSON data for request body
            params: URL query parameters
            authenticated: Whether to include access token
            _retry_count: Internal retry counter for rate limiting

        Returns:
            Response JSON data

        Raises:
            AuthError, ServerError, TransportError: On failed requests
            DecodeError: When a successful response is not a JSON object
        """
        raw = await self._send(
            method, endpoint, data=data, params=params, authenticated=authenticated
        )

        # https://spec.matrix.org/latest/client-server-api/#rate-limiting
        if (
            raw.status == HTTP_TOO_MANY_REQUESTS_429
            and _retry_count < MAX_RATE_LIMIT_RETRIES
        ):
            retry_after_s = self._retry_after_seconds(raw)
            logger.warning(
                f"Rate limited, retrying in {retry_after_s:.1f}s "
                f"(retry {_retry_count + 1}/{MAX_RATE_LIMIT_RETRIES})"
            )
            await asyncio.sleep(retry_after_s)
            return await self._request(
                method,
                endpoint,
                data=data,
                params=params,
                authenticated=authenticated,
                _retry_count=_retry_count + 1,
            )

        if raw.failed:
            raise decode_error(raw.status, raw.body, raw.reason)

        return decode_json_object(raw.body).unwrap()


def path_segment(value: str) -> str:
    """Quote an ID for use as one URL path segment, keeping Matrix sigils readable"""
    return quote(value, safe="@:!$&'()*+,;=")
