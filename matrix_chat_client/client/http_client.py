"""
Matrix HTTP Client
Implements the Matrix Client-Server API using aiohttp
"""

from ..session import MatrixSession
from ..settings import ClientSettings
from .auth_mixin import AuthMixin
from .base import MatrixClientBase
from .filter_mixin import FilterMixin
from .media_mixin import MediaMixin
from .message_mixin import MessageMixin
from .profile_mixin import ProfileMixin
from .room_mixin import RoomMixin
from .sync_mixin import SyncMixin


class MatrixHTTPClient(
    AuthMixin,
    SyncMixin,
    FilterMixin,
    RoomMixin,
    MessageMixin,
    MediaMixin,
    ProfileMixin,
    MatrixClientBase,
):
    """
    Matrix C-S API client for one account

    Usage:
        client = MatrixHTTPClient("https://matrix.org", settings=settings)
        await client.login("@alice:matrix.org", "secret")
        room_id = await client.join_room("#matrix:matrix.org")
        await client.send_room_message(room_id, "Hello!")
    """

    def __init__(
        self,
        homeserver: str,
        credentials: MatrixSession | None = None,
        settings: ClientSettings | None = None,
        allow_insecure: bool = False,
        request_timeout: float | None = None,
        device_name: str | None = None,
    ):
        super().__init__(
            homeserver,
            credentials=credentials,
            allow_insecure=allow_insecure,
            request_timeout=request_timeout,
        )
        self.settings = settings
        # Display name for devices created by login()
        self.device_name = device_name
        self._load_transaction_id()

    @classmethod
    def from_config(cls, config, settings: ClientSettings | None = None):
        """
        Build a client from a MatrixConfig, restoring the session when the
        config carries an access token
        """
        credentials = None
        if config.has_credentials:
            credentials = MatrixSession(
                homeserver=config.homeserver,
                access_token=config.access_token,
                user_id=config.user_id,
                device_id=config.device_id,
            )
        if settings is None and config.user_id:
            settings = ClientSettings.for_account(
                config.store_path,
                config.homeserver,
                config.user_id,
                backend=config.storage_backend,
            )
        return cls(
            config.homeserver,
            credentials=credentials,
            settings=settings,
            allow_insecure=config.allow_insecure,
            device_name=config.device_name,
        )
