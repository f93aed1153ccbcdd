"""
Matrix HTTP Client - Sync Mixin
Provides the raw /sync call used by the sync manager
"""

from ..constants import CLIENT_API_PREFIX, DEFAULT_TIMEOUT_MS_30000
from .base import RawResponse
from .decoding import decode_error, decode_sync
from .responses import SyncBatch


class SyncMixin:
    """Sync-related methods for Matrix client"""

    async def sync_raw(
        self,
        since: str | None = None,
        timeout: int = DEFAULT_TIMEOUT_MS_30000,
        filter: str | None = None,
        set_presence: str | None = None,
        full_state: bool = False,
    ) -> RawResponse:
        """
        Issue one /sync request and return the undecoded reply

        Args:
            since: Sync batch token from previous sync
            timeout: Long-poll wait budget in milliseconds
            filter: Filter ID or literal filter JSON
            set_presence: Presence to set while syncing
            full_state: Whether to return full state
        """
        params = {"timeout": timeout}
        if set_presence:
            params["set_presence"] = set_presence
        if filter:
            params["filter"] = filter
        if since:
            params["since"] = since
        if full_state:
            params["full_state"] = True
        return await self._send("GET", f"{CLIENT_API_PREFIX}/sync", params=params)

    async def sync(
        self,
        since: str | None = None,
        timeout: int = DEFAULT_TIMEOUT_MS_30000,
        filter: str | None = None,
        full_state: bool = False,
    ) -> SyncBatch:
        """
        Sync with the Matrix server

        Returns:
            Parsed sync batch

        Raises:
            AuthError, ServerError, TransportError, DecodeError
        """
        raw = await self.sync_raw(
            since=since, timeout=timeout, filter=filter, full_state=full_state
        )
        if raw.failed:
            raise decode_error(raw.status, raw.body, raw.reason)
        return decode_sync(raw.body).unwrap()
