"""
Matrix Sync Manager
Owns the sync cursor and filter, runs the long-poll and publishes results
"""

import asyncio
import logging

from ..client.decoding import decode_error, decode_sync
from ..client.filter_mixin import is_filter_definition
from ..client.responses import SyncBatch
from ..constants import (
    DEFAULT_TIMEOUT_MS_30000,
    DISPLAY_TRUNCATE_LENGTH_20,
    INITIAL_SYNC_TIMEOUT_MS_0,
    PRESENCE_ONLINE,
    SYNC_RETRY_DELAY_SECONDS,
    SYNC_RETRY_MAX_DELAY_SECONDS,
)
from ..errors import (
    AuthError,
    DecodeError,
    MatrixAPIError,
    MatrixClientError,
    PreconditionError,
    ServerError,
)
from ..settings import ClientSettings, default_sync_filter
from ..signals import (
    FILTER_UPLOADED,
    INITIAL_SYNC_COMPLETED,
    INITIAL_SYNC_FAILED,
    INVALID_TOKEN,
    SYNC_COMPLETED,
    SYNC_ERROR,
    ClientSignals,
)

logger = logging.getLogger("matrix_chat_client.sync")


def _short(token: str) -> str:
    return f"{token[:DISPLAY_TRUNCATE_LENGTH_20]}..."


def error_message(error: MatrixClientError) -> str:
    """Text shown to the user for a failed sync"""
    if isinstance(error, ServerError) and error.error:
        return error.error
    return error.message


class MatrixSyncManager:
    """
    Manages the Matrix sync cursor, the sync filter and the long-poll

    ``sync()`` and ``initial_sync()`` fire a request and report through
    ``signals``; ``sync_once()`` and ``initial_sync_once()`` are the awaitable
    forms that raise instead. Neither chains the next request; call again
    after a batch has been handled, or use ``sync_forever()``.
    """

    def __init__(
        self,
        client,
        settings: ClientSettings | None = None,
        signals: ClientSignals | None = None,
        sync_timeout: int = DEFAULT_TIMEOUT_MS_30000,
        retry_delay: float = SYNC_RETRY_DELAY_SECONDS,
    ):
        """
        Initialize sync manager

        Args:
            client: Matrix HTTP client
            settings: Persisted settings; defaults to the client's
            signals: Where results are published
            sync_timeout: Server-side long-poll wait in milliseconds
            retry_delay: First back-off delay of sync_forever, in seconds
        """
        self.client = client
        self.settings = settings if settings is not None else client.settings
        self.signals = signals if signals is not None else ClientSignals()
        self.sync_timeout = sync_timeout
        self.retry_delay = retry_delay

        self._next_batch = ""
        self._filter = default_sync_filter()
        if self.settings is not None:
            self._next_batch = self.settings.get_next_batch()
            self._filter = self.settings.get_sync_filter()
        if self._next_batch:
            logger.info(f"Resuming sync from {_short(self._next_batch)}")

        # Bumped by reset(); completions from an older epoch are dropped
        self._epoch = 0
        self._uploaded_filters: dict[str, str] = {}
        self._filter_upload_task: asyncio.Task | None = None
        self._filter_upload_definition: str | None = None
        self._sync_task: asyncio.Task | None = None
        self._running = False

    @classmethod
    def from_config(cls, client, config, signals: ClientSignals | None = None):
        """Build a manager using the sync timing from a MatrixConfig"""
        return cls(
            client,
            signals=signals,
            sync_timeout=config.sync_timeout,
            retry_delay=config.sync_retry_delay,
        )

    # ========== State ==========

    @property
    def next_batch(self) -> str:
        return self._next_batch

    def set_next_batch(self, token: str) -> None:
        """Set the sync cursor (e.g. after an initial sync done elsewhere)"""
        self._next_batch = token or ""
        if self.settings is not None:
            self.settings.set_next_batch(self._next_batch)

    @property
    def filter(self) -> str:
        return self._filter

    def set_filter(self, value: str) -> None:
        """
        Replace the sync filter with a filter ID or a literal JSON definition

        A literal that was already uploaded is swapped for its ID right away.
        """
        value = self._uploaded_filters.get(value, value)
        self._filter = value
        if self.settings is not None:
            self.settings.set_sync_filter(value)

    @property
    def epoch(self) -> int:
        return self._epoch

    def reset(self) -> None:
        """
        Forget the cursor and invalidate every request still in flight
        """
        self._epoch += 1
        for task in (self._sync_task, self._filter_upload_task):
            if task is not None and not task.done():
                task.cancel()
        self._sync_task = None
        self._filter_upload_task = None
        self._filter_upload_definition = None
        self._running = False
        self.set_next_batch("")
        logger.info("Sync state reset")

    async def logout(self) -> None:
        """Log out on the server, then drop cursor and transaction state"""
        try:
            await self.client.logout()
        finally:
            self.reset()
            self.client.reset_transaction_id()

    # ========== Filter bootstrap ==========

    def _ensure_filter_upload(self) -> asyncio.Task | None:
        if not is_filter_definition(self._filter):
            return None
        task = self._filter_upload_task
        if (
            task is not None
            and not task.done()
            and self._filter_upload_definition == self._filter
        ):
            return task
        self._filter_upload_definition = self._filter
        self._filter_upload_task = asyncio.create_task(
            self._upload_filter(self._filter, self._epoch)
        )
        return self._filter_upload_task

    async def _upload_filter(self, definition: str, epoch: int) -> str | None:
        try:
            filter_id = await self.client.upload_filter(definition)
        except (MatrixClientError, ValueError) as e:
            logger.warning(f"Filter upload failed, syncing with the literal filter: {e}")
            return None

        if epoch != self._epoch:
            logger.debug("Dropping filter upload result from a reset session")
            return None

        self._uploaded_filters[definition] = filter_id
        if self._filter == definition:
            self.set_filter(filter_id)
            logger.info(f"Sync filter registered as {filter_id}")
            await self.signals.emit(FILTER_UPLOADED, filter_id)
        return filter_id

    # ========== Incremental sync ==========

    async def _fetch(self, since: str, filter_value: str) -> SyncBatch:
        raw = await self.client.sync_raw(
            since=since,
            timeout=self.sync_timeout,
            filter=filter_value,
            set_presence=PRESENCE_ONLINE,
        )
        if raw.failed:
            raise decode_error(raw.status, raw.body, raw.reason)
        return decode_sync(raw.body).unwrap()

    def _apply(self, batch: SyncBatch, epoch: int) -> bool:
        if epoch != self._epoch:
            logger.debug(f"Dropping stale sync response {_short(batch.next_batch)}")
            return False
        self.set_next_batch(batch.next_batch)
        return True

    async def sync_once(self) -> SyncBatch | None:
        """
        Run one long-poll and advance the cursor

        Returns:
            The batch, or None when the session was reset meanwhile

        Raises:
            PreconditionError: No cursor yet; run an initial sync first
            AuthError: The access token is no longer valid
            ServerError, TransportError, DecodeError: Recoverable failures
        """
        if not self._next_batch:
            raise PreconditionError(
                "Sync requires a valid next_batch token. Initial sync should be performed."
            )
        self._ensure_filter_upload()
        epoch = self._epoch
        batch = await self._fetch(self._next_batch, self._filter)
        return batch if self._apply(batch, epoch) else None

    async def _sync_and_publish(
        self, epoch: int, since: str, filter_value: str
    ) -> SyncBatch | None:
        try:
            batch = await self._fetch(since, filter_value)
        except AuthError as e:
            if epoch == self._epoch:
                logger.warning(f"Access token rejected during sync: {e}")
                await self.signals.emit(INVALID_TOKEN)
            return None
        except (MatrixAPIError, DecodeError) as e:
            if epoch == self._epoch:
                logger.warning(f"Sync error: {e}")
                await self.signals.emit(SYNC_ERROR, error_message(e))
            return None

        if not self._apply(batch, epoch):
            return None
        await self.signals.emit(SYNC_COMPLETED, batch)
        return batch

    def sync(self) -> asyncio.Task | None:
        """
        Fire one long-poll; the outcome arrives as a signal

        With no cursor this does nothing: no request, no signal.

        Returns:
            The task running the request (cancel it to abandon the poll),
            or None when nothing was sent

        Raises:
            PreconditionError: The client has no session credentials
        """
        if not self._next_batch:
            logger.debug(
                "Sync requires a valid next_batch token. Initial sync should be performed."
            )
            return None

        self.client.require_credentials()
        self._ensure_filter_upload()
        self._sync_task = asyncio.create_task(
            self._sync_and_publish(self._epoch, self._next_batch, self._filter)
        )
        return self._sync_task

    # ========== Initial sync ==========

    async def initial_sync_once(self) -> SyncBatch | None:
        """
        Fetch a full snapshot without a cursor and start the cursor chain

        The body of an initial sync can be large, so it is decoded in a
        worker thread.
        """
        epoch = self._epoch
        raw = await self.client.sync_raw(
            timeout=INITIAL_SYNC_TIMEOUT_MS_0, filter=self._filter
        )
        if raw.failed:
            raise decode_error(raw.status, raw.body, raw.reason)
        result = await asyncio.to_thread(decode_sync, raw.body)
        batch = result.unwrap()
        return batch if self._apply(batch, epoch) else None

    async def _initial_sync_and_publish(self, epoch: int) -> SyncBatch | None:
        try:
            batch = await self.initial_sync_once()
        except (MatrixAPIError, DecodeError) as e:
            if epoch != self._epoch:
                return None
            status = getattr(e, "status", 0)
            logger.warning(f"Initial sync failed (status {status}): {e}")
            await self.signals.emit(INITIAL_SYNC_FAILED, status)
            if isinstance(e, AuthError):
                await self.signals.emit(INVALID_TOKEN)
            return None

        if batch is not None:
            await self.signals.emit(INITIAL_SYNC_COMPLETED, batch)
        return batch

    def initial_sync(self) -> asyncio.Task:
        """Fire an initial sync; the outcome arrives as a signal"""
        self.client.require_credentials()
        self._sync_task = asyncio.create_task(
            self._initial_sync_and_publish(self._epoch)
        )
        return self._sync_task

    # ========== Loop ==========

    async def sync_forever(self) -> None:
        """
        Run the sync loop until stop(), reset() or an invalid token

        Recoverable errors are published and retried with a doubling delay.
        """
        self._running = True
        delay = self.retry_delay
        logger.info("Starting Matrix sync loop")

        while self._running:
            initial = not self._next_batch
            try:
                if initial:
                    batch = await self.initial_sync_once()
                else:
                    batch = await self.sync_once()
            except AuthError as e:
                logger.warning(f"Access token rejected, stopping sync loop: {e}")
                self._running = False
                await self.signals.emit(INVALID_TOKEN)
                break
            except (MatrixAPIError, DecodeError) as e:
                logger.warning(f"Sync error, retrying in {delay:.1f}s: {e}")
                if initial:
                    await self.signals.emit(INITIAL_SYNC_FAILED, getattr(e, "status", 0))
                else:
                    await self.signals.emit(SYNC_ERROR, error_message(e))
                await asyncio.sleep(delay)
                delay = min(delay * 2, SYNC_RETRY_MAX_DELAY_SECONDS)
                continue

            delay = self.retry_delay
            if batch is None:
                continue
            await self.signals.emit(
                INITIAL_SYNC_COMPLETED if initial else SYNC_COMPLETED, batch
            )

        logger.info("Matrix sync loop stopped")

    def stop(self) -> None:
        """Stop the sync loop after the current request"""
        self._running = False
        logger.info("Stopping Matrix sync loop")

    def is_running(self) -> bool:
        return self._running
