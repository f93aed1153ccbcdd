"""Tests for the sync cursor, filter bootstrap and long-poll classification."""

import asyncio
import json
from unittest.mock import AsyncMock

import aiohttp
import pytest
from aioresponses import aioresponses

from matrix_chat_client.client import SyncBatch
from matrix_chat_client.config import MatrixConfig
from matrix_chat_client.errors import AuthError, PreconditionError, ServerError
from matrix_chat_client.settings import default_sync_filter
from matrix_chat_client.signals import (
    FILTER_UPLOADED,
    INITIAL_SYNC_COMPLETED,
    INITIAL_SYNC_FAILED,
    INVALID_TOKEN,
    SYNC_COMPLETED,
    SYNC_ERROR,
)
from matrix_chat_client.sync import MatrixSyncManager
from tests.conftest import FILTER_URL, SYNC_URL, requests_to


def _recorder(manager):
    """Subscribe to every sync signal and collect (name, args) tuples."""
    received = []
    for name in (
        SYNC_COMPLETED,
        SYNC_ERROR,
        INVALID_TOKEN,
        INITIAL_SYNC_COMPLETED,
        INITIAL_SYNC_FAILED,
        FILTER_UPLOADED,
    ):
        manager.signals.connect(
            name, lambda *args, _name=name: received.append((_name, args))
        )
    return received


@pytest.fixture
def manager(client, signals):
    manager = MatrixSyncManager(client, signals=signals)
    manager.set_filter("filterId123")
    return manager


class TestSyncPrecondition:
    @pytest.mark.asyncio
    async def test_empty_cursor_sends_nothing(self, manager):
        received = _recorder(manager)
        manager.set_filter('{"room":{}}')

        with aioresponses() as m:
            task = manager.sync()
            await asyncio.sleep(0)

            assert task is None
            assert m.requests == {}
        assert received == []

    @pytest.mark.asyncio
    async def test_sync_once_raises_without_cursor(self, manager):
        with pytest.raises(PreconditionError):
            await manager.sync_once()

    @pytest.mark.asyncio
    async def test_sync_without_credentials_raises(self, anonymous_client, signals):
        manager = MatrixSyncManager(anonymous_client, signals=signals)
        manager.set_next_batch("s1")
        received = _recorder(manager)

        with aioresponses() as m:
            with pytest.raises(PreconditionError):
                manager.sync()
            with pytest.raises(PreconditionError):
                manager.initial_sync()

            assert m.requests == {}
        assert manager._filter_upload_task is None
        assert received == []


class TestSyncSuccess:
    @pytest.mark.asyncio
    async def test_batch_advances_cursor(self, manager, settings):
        received = _recorder(manager)
        manager.set_next_batch("s1")

        with aioresponses() as m:
            m.get(SYNC_URL, status=200, payload={"next_batch": "s2", "rooms": {}})
            batch = await manager.sync()

            params = requests_to(m, "GET", "/sync")[0].kwargs["params"]

        assert params == {
            "timeout": "30000",
            "set_presence": "online",
            "filter": "filterId123",
            "since": "s1",
        }
        assert batch.next_batch == "s2"
        assert manager.next_batch == "s2"
        assert settings.get_next_batch() == "s2"
        assert received == [(SYNC_COMPLETED, (batch,))]

    @pytest.mark.asyncio
    async def test_cursor_chains_between_calls(self, manager):
        manager.set_next_batch("s1")

        with aioresponses() as m:
            for token in ("s2", "s3", "s4"):
                m.get(SYNC_URL, status=200, payload={"next_batch": token})
            for _ in range(3):
                await manager.sync()

            sent = [
                call.kwargs["params"]["since"]
                for call in requests_to(m, "GET", "/sync")
            ]

        assert sent == ["s1", "s2", "s3"]
        assert manager.next_batch == "s4"

    @pytest.mark.asyncio
    async def test_cursor_is_applied_before_subscribers_run(self, manager):
        manager.set_next_batch("s1")
        seen = []
        manager.signals.connect(
            SYNC_COMPLETED, lambda batch: seen.append(manager.next_batch)
        )

        with aioresponses() as m:
            m.get(SYNC_URL, status=200, payload={"next_batch": "s2"})
            await manager.sync()

        assert seen == ["s2"]


class TestSyncErrors:
    @pytest.mark.asyncio
    async def test_unknown_token_emits_invalid_token(self, manager):
        received = _recorder(manager)
        manager.set_next_batch("s1")

        with aioresponses() as m:
            m.get(
                SYNC_URL,
                status=401,
                payload={"errcode": "M_UNKNOWN_TOKEN", "error": "bad token"},
            )
            result = await manager.sync()

        assert result is None
        assert received == [(INVALID_TOKEN, ())]
        assert manager.next_batch == "s1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 403, 500])
    async def test_unknown_token_wins_over_status(self, manager, status):
        received = _recorder(manager)
        manager.set_next_batch("s1")

        with aioresponses() as m:
            m.get(
                SYNC_URL,
                status=status,
                payload={"errcode": "M_UNKNOWN_TOKEN", "error": "expired"},
            )
            await manager.sync()

        assert received == [(INVALID_TOKEN, ())]

    @pytest.mark.asyncio
    async def test_server_error_is_recoverable(self, manager):
        received = _recorder(manager)
        manager.set_next_batch("s1")

        with aioresponses() as m:
            m.get(
                SYNC_URL,
                status=502,
                payload={"errcode": "M_UNKNOWN", "error": "upstream down"},
            )
            await manager.sync()

        assert received == [(SYNC_ERROR, ("upstream down",))]
        assert manager.next_batch == "s1"

    @pytest.mark.asyncio
    async def test_undecodable_error_body(self, manager):
        received = _recorder(manager)
        manager.set_next_batch("s1")

        with aioresponses() as m:
            m.get(SYNC_URL, status=504, body="<html>Gateway Timeout</html>")
            await manager.sync()

        assert len(received) == 1
        name, (message,) = received[0]
        assert name == SYNC_ERROR
        assert "504" in message

    @pytest.mark.asyncio
    async def test_connection_failure(self, manager):
        received = _recorder(manager)
        manager.set_next_batch("s1")

        with aioresponses() as m:
            m.get(SYNC_URL, exception=aiohttp.ClientConnectionError("refused"))
            await manager.sync()

        assert [name for name, _ in received] == [SYNC_ERROR]
        assert manager.next_batch == "s1"

    @pytest.mark.asyncio
    async def test_malformed_success_body(self, manager):
        received = _recorder(manager)
        manager.set_next_batch("s1")

        with aioresponses() as m:
            m.get(SYNC_URL, status=200, body="not json at all")
            await manager.sync()

        assert [name for name, _ in received] == [SYNC_ERROR]
        assert manager.next_batch == "s1"

    @pytest.mark.asyncio
    async def test_success_without_next_batch(self, manager):
        received = _recorder(manager)
        manager.set_next_batch("s1")

        with aioresponses() as m:
            m.get(SYNC_URL, status=200, payload={"rooms": {}})
            await manager.sync()

        assert [name for name, _ in received] == [SYNC_ERROR]
        assert manager.next_batch == "s1"

    @pytest.mark.asyncio
    async def test_sync_once_raises_typed_errors(self, manager):
        manager.set_next_batch("s1")

        with aioresponses() as m:
            m.get(SYNC_URL, status=401, payload={"errcode": "M_UNKNOWN_TOKEN"})
            m.get(SYNC_URL, status=429, payload={"errcode": "M_LIMIT_EXCEEDED"})
            with pytest.raises(AuthError):
                await manager.sync_once()
            with pytest.raises(ServerError) as exc_info:
                await manager.sync_once()

        assert not isinstance(exc_info.value, AuthError)
        assert exc_info.value.errcode == "M_LIMIT_EXCEEDED"


class TestFilterBootstrap:
    @pytest.mark.asyncio
    async def test_literal_filter_is_uploaded_and_replaced(self, manager, settings):
        received = _recorder(manager)
        manager.set_next_batch("s1")
        manager.set_filter('{"room":{}}')

        with aioresponses() as m:
            m.post(FILTER_URL, status=200, payload={"filter_id": "f1"})
            m.get(SYNC_URL, status=200, payload={"next_batch": "s2"})
            await manager.sync()
            await manager._filter_upload_task

            uploads = requests_to(m, "POST", "/filter")
            sync_params = requests_to(m, "GET", "/sync")[0].kwargs["params"]

        assert len(uploads) == 1
        assert uploads[0].kwargs["json"] == {"room": {}}
        # The same round still syncs with the literal definition
        assert sync_params["filter"] == '{"room":{}}'
        assert manager.filter == "f1"
        assert settings.get_sync_filter() == "f1"
        assert (FILTER_UPLOADED, ("f1",)) in received

    @pytest.mark.asyncio
    async def test_one_upload_per_call_until_success(self, manager):
        manager.set_next_batch("s1")
        manager.set_filter('{"room":{}}')

        with aioresponses() as m:
            m.post(FILTER_URL, status=500, payload={"errcode": "M_UNKNOWN"})
            m.post(FILTER_URL, status=200, payload={"filter_id": "f1"})
            for token in ("s2", "s3", "s4"):
                m.get(SYNC_URL, status=200, payload={"next_batch": token})

            await manager.sync()
            await manager._filter_upload_task
            assert manager.filter == '{"room":{}}'

            await manager.sync()
            await manager._filter_upload_task
            assert manager.filter == "f1"

            await manager.sync()

            uploads = requests_to(m, "POST", "/filter")
            filters = [
                call.kwargs["params"]["filter"]
                for call in requests_to(m, "GET", "/sync")
            ]

        assert len(uploads) == 2
        assert filters == ['{"room":{}}', '{"room":{}}', "f1"]

    @pytest.mark.asyncio
    async def test_upload_failure_does_not_block_sync(self, manager):
        received = _recorder(manager)
        manager.set_next_batch("s1")
        manager.set_filter('{"room":{}}')

        with aioresponses() as m:
            m.post(FILTER_URL, exception=aiohttp.ClientConnectionError("down"))
            m.get(SYNC_URL, status=200, payload={"next_batch": "s2"})
            await manager.sync()
            await manager._filter_upload_task

        assert [name for name, _ in received] == [SYNC_COMPLETED]
        assert manager.next_batch == "s2"

    @pytest.mark.asyncio
    async def test_in_flight_upload_is_reused(self, manager):
        manager.set_next_batch("s1")
        manager.set_filter('{"room":{}}')
        release = asyncio.Event()

        async def slow_upload(definition):
            await release.wait()
            return "f1"

        manager.client.upload_filter = AsyncMock(side_effect=slow_upload)

        first = manager._ensure_filter_upload()
        second = manager._ensure_filter_upload()
        assert first is second

        release.set()
        assert await first == "f1"
        manager.client.upload_filter.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_changed_literal_gets_its_own_upload(self, manager):
        manager.set_filter('{"room":{}}')
        release = asyncio.Event()
        filter_ids = {'{"room":{}}': "f1", '{"presence":{}}': "f2"}
        uploaded = []

        async def slow_upload(definition):
            uploaded.append(definition)
            await release.wait()
            return filter_ids[definition]

        manager.client.upload_filter = AsyncMock(side_effect=slow_upload)

        first = manager._ensure_filter_upload()
        await asyncio.sleep(0)
        manager.set_filter('{"presence":{}}')
        second = manager._ensure_filter_upload()
        assert second is not first

        release.set()
        await asyncio.gather(first, second)

        assert uploaded == ['{"room":{}}', '{"presence":{}}']
        assert manager.filter == "f2"

        manager.set_filter('{"room":{}}')
        assert manager.filter == "f1"

    @pytest.mark.asyncio
    async def test_reuploading_known_literal_uses_cached_id(self, manager):
        manager.set_next_batch("s1")
        manager.set_filter('{"room":{}}')

        with aioresponses() as m:
            m.post(FILTER_URL, status=200, payload={"filter_id": "f1"})
            m.get(SYNC_URL, status=200, payload={"next_batch": "s2"})
            m.get(SYNC_URL, status=200, payload={"next_batch": "s3"})
            await manager.sync()
            await manager._filter_upload_task

            manager.set_filter('{"room":{}}')
            assert manager.filter == "f1"
            await manager.sync()

            assert len(requests_to(m, "POST", "/filter")) == 1


class TestInitialSync:
    @pytest.mark.asyncio
    async def test_initial_sync_sets_cursor(self, manager):
        received = _recorder(manager)

        with aioresponses() as m:
            m.get(
                SYNC_URL,
                status=200,
                payload={"next_batch": "s1", "rooms": {"join": {"!a:b": {}}}},
            )
            batch = await manager.initial_sync()
            params = requests_to(m, "GET", "/sync")[0].kwargs["params"]

        assert params == {"timeout": "0", "filter": "filterId123"}
        assert manager.next_batch == "s1"
        assert batch.joined_rooms == {"!a:b": {}}
        assert received == [(INITIAL_SYNC_COMPLETED, (batch,))]

    @pytest.mark.asyncio
    async def test_initial_sync_failure_reports_status(self, manager):
        received = _recorder(manager)

        with aioresponses() as m:
            m.get(SYNC_URL, status=500, body="oops")
            await manager.initial_sync()

        assert received == [(INITIAL_SYNC_FAILED, (500,))]
        assert manager.next_batch == ""


class TestResetAndStaleResponses:
    @pytest.mark.asyncio
    async def test_response_after_reset_is_dropped(self, manager, settings):
        received = _recorder(manager)
        manager.set_next_batch("s1")
        release = asyncio.Event()

        async def fetch(since, filter_value):
            await release.wait()
            return SyncBatch(next_batch="s2")

        manager._fetch = fetch
        task = manager.sync()
        await asyncio.sleep(0)

        epoch = manager.epoch
        manager._sync_task = None  # keep reset() from cancelling the task
        manager.reset()
        release.set()
        result = await task

        assert manager.epoch == epoch + 1
        assert result is None
        assert manager.next_batch == ""
        assert settings.get_next_batch() == ""
        assert received == []

    @pytest.mark.asyncio
    async def test_reset_cancels_in_flight_sync(self, manager):
        manager.set_next_batch("s1")

        async def hang(since, filter_value):
            await asyncio.sleep(3600)

        manager._fetch = hang

        task = manager.sync()
        await asyncio.sleep(0)
        manager.reset()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_logout_resets_cursor_and_transactions(self, manager):
        manager.set_next_batch("s1")
        manager.client.next_transaction_id()

        with aioresponses() as m:
            m.post(
                "https://matrix.example.org/_matrix/client/v3/logout",
                status=200,
                payload={},
            )
            await manager.logout()

        assert manager.next_batch == ""
        assert manager.client.transaction_id == 0
        assert manager.client.credentials is None


class TestPersistence:
    @pytest.mark.asyncio
    async def test_state_is_restored_from_settings(self, client, settings):
        settings.set_next_batch("s9")
        settings.set_sync_filter("f7")

        manager = MatrixSyncManager(client)

        assert manager.next_batch == "s9"
        assert manager.filter == "f7"

    @pytest.mark.asyncio
    async def test_default_filter_when_nothing_stored(self, client):
        manager = MatrixSyncManager(client)

        assert manager.filter == default_sync_filter()
        assert json.loads(manager.filter)["presence"] == {"not_types": ["*"]}
        assert manager.next_batch == ""


class TestSyncForever:
    @pytest.mark.asyncio
    async def test_loop_stops_on_invalid_token(self, manager, monkeypatch):
        received = _recorder(manager)
        sleep = AsyncMock()
        monkeypatch.setattr(asyncio, "sleep", sleep)

        with aioresponses() as m:
            m.get(SYNC_URL, status=200, payload={"next_batch": "s1"})
            m.get(SYNC_URL, status=502, payload={"errcode": "M_UNKNOWN", "error": "x"})
            m.get(SYNC_URL, status=200, payload={"next_batch": "s2"})
            m.get(SYNC_URL, status=401, payload={"errcode": "M_UNKNOWN_TOKEN"})
            await manager.sync_forever()

        assert [name for name, _ in received] == [
            INITIAL_SYNC_COMPLETED,
            SYNC_ERROR,
            SYNC_COMPLETED,
            INVALID_TOKEN,
        ]
        sleep.assert_awaited_once_with(manager.retry_delay)
        assert manager.next_batch == "s2"
        assert not manager.is_running()

    @pytest.mark.asyncio
    async def test_backoff_doubles_to_cap_and_resets(self, manager, monkeypatch):
        sleep = AsyncMock()
        monkeypatch.setattr(asyncio, "sleep", sleep)
        manager.retry_delay = 20.0
        manager.set_next_batch("s1")
        down = {"errcode": "M_UNKNOWN", "error": "down"}

        with aioresponses() as m:
            for _ in range(3):
                m.get(SYNC_URL, status=502, payload=down)
            m.get(SYNC_URL, status=200, payload={"next_batch": "s2"})
            m.get(SYNC_URL, status=503, payload=down)
            m.get(SYNC_URL, status=401, payload={"errcode": "M_UNKNOWN_TOKEN"})
            await manager.sync_forever()

        delays = [call.args[0] for call in sleep.await_args_list]
        assert delays == [20.0, 40.0, 60.0, 20.0]
        assert manager.next_batch == "s2"


class TestFromConfig:
    @pytest.mark.asyncio
    async def test_configured_timing_reaches_the_manager(self, client, monkeypatch):
        monkeypatch.delenv("MATRIX_ALLOW_INSECURE_CONNECTIONS", raising=False)
        config = MatrixConfig(
            {"matrix_sync_timeout": 10000, "matrix_sync_retry_delay": 0.5}
        )

        manager = MatrixSyncManager.from_config(client, config)
        manager.set_next_batch("s1")
        manager.set_filter("filterId123")

        with aioresponses() as m:
            m.get(SYNC_URL, status=200, payload={"next_batch": "s2"})
            await manager.sync()

            params = requests_to(m, "GET", "/sync")[0].kwargs["params"]

        assert manager.sync_timeout == 10000
        assert manager.retry_delay == 0.5
        assert params["timeout"] == "10000"
