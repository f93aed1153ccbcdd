"""Shared fixtures for the client tests."""

import re

import pytest
import pytest_asyncio

from matrix_chat_client.client import MatrixHTTPClient
from matrix_chat_client.session import MatrixSession
from matrix_chat_client.settings import ClientSettings
from matrix_chat_client.signals import ClientSignals
from matrix_chat_client.storage_backend import MatrixFolderDataStore

HOMESERVER = "https://matrix.example.org"
USER_ID = "@alice:example.org"
ACCESS_TOKEN = "syt_test_token"
CLIENT_API = f"{HOMESERVER}/_matrix/client/v3"
SYNC_URL = re.compile(r"^https://matrix\.example\.org/_matrix/client/v3/sync(\?.*)?$")
FILTER_URL = f"{CLIENT_API}/user/{USER_ID}/filter"


def requests_to(mocked, method: str, path_suffix: str) -> list:
    """Calls recorded by aioresponses for one method and path, in send order."""
    calls = []
    for (req_method, url), req_calls in mocked.requests.items():
        if req_method == method and url.path.endswith(path_suffix):
            calls.extend(req_calls)
    return calls


@pytest.fixture
def credentials():
    return MatrixSession(
        homeserver=HOMESERVER,
        access_token=ACCESS_TOKEN,
        user_id=USER_ID,
        device_id="DEVICEID",
    )


@pytest.fixture
def settings(tmp_path):
    return ClientSettings(MatrixFolderDataStore(tmp_path / "store"))


@pytest.fixture
def signals():
    return ClientSignals()


@pytest_asyncio.fixture
async def client(credentials, settings):
    client = MatrixHTTPClient(HOMESERVER, credentials=credentials, settings=settings)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def anonymous_client(settings):
    client = MatrixHTTPClient(HOMESERVER, settings=settings)
    yield client
    await client.close()
