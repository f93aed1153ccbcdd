"""
Matrix HTTP Client - Authentication Mixin
Provides homeserver discovery, login, logout and registration
"""

import logging
import platform
from typing import Any

from ..constants import (
    CLIENT_API_PREFIX,
    HTTP_ERROR_STATUS_400,
    HTTP_FORBIDDEN_403,
    HTTP_NOT_FOUND_404,
    M_ID_USER,
    M_LOGIN_PASSWORD,
    M_LOGIN_RECAPTCHA,
    VERSIONS_ENDPOINT,
)
from ..errors import HomeserverError, LoginError, RegistrationError
from ..session import MatrixSession
from .decoding import decode_error, decode_json_object, decode_model
from .responses import LoginResponse, RegisterResponse, RegistrationFlow

logger = logging.getLogger("matrix_chat_client.auth")

_DEVICE_NAMES = {
    "Darwin": "matrix-chat-client on Mac OS",
    "Linux": "matrix-chat-client on Linux",
    "Windows": "matrix-chat-client on Windows",
}


def default_device_name() -> str:
    return _DEVICE_NAMES.get(platform.system(), "matrix-chat-client")


class AuthMixin:
    """Authentication methods for Matrix client"""

    async def versions(self) -> list[str]:
        """
        Check that the homeserver speaks the Client-Server API

        Returns:
            Supported spec versions

        Raises:
            HomeserverError: With a message suitable for the login screen
        """
        raw = await self._send("GET", VERSIONS_ENDPOINT, authenticated=False)

        if raw.status == 0:
            raise HomeserverError(raw.reason, raw.status)
        if raw.status == HTTP_NOT_FOUND_404:
            raise HomeserverError(
                "Versions endpoint was not found on the server. Possibly not a Matrix server",
                raw.status,
            )
        if raw.status >= HTTP_ERROR_STATUS_400:
            raise HomeserverError(
                "An unknown error occurred. Please try again.", raw.status
            )

        result = decode_json_object(raw.body)
        versions = result.value.get("versions") if result.ok else None
        if not isinstance(versions, list):
            raise HomeserverError(
                "Malformed response. Possibly not a Matrix server", raw.status
            )
        return versions

    async def login(
        self,
        username: str,
        password: str,
        device_name: str | None = None,
        device_id: str | None = None,
    ) -> LoginResponse:
        """
        Login with password and adopt the returned session

        Args:
            username: Matrix user ID or localpart
            password: User password
            device_name: Device display name; falls back to the client's
                device_name, then to one naming the OS
            device_id: Optional device ID to reuse

        Returns:
            Login response with access_token, user_id and device_id

        Raises:
            LoginError: With a message suitable for the login screen
        """
        data: dict[str, Any] = {
            "type": M_LOGIN_PASSWORD,
            "identifier": {"type": M_ID_USER, "user": username},
            "password": password,
            "initial_device_display_name": device_name
            or self.device_name
            or default_device_name(),
        }
        if device_id:
            data["device_id"] = device_id

        raw = await self._send(
            "POST", f"{CLIENT_API_PREFIX}/login", data=data, authenticated=False
        )

        if raw.status == HTTP_FORBIDDEN_403:
            raise LoginError("Wrong username or password", raw.status)
        if raw.status == HTTP_NOT_FOUND_404:
            raise LoginError("Login endpoint was not found on the server", raw.status)
        if raw.status >= HTTP_ERROR_STATUS_400:
            logger.warning(f"Login error: {decode_error(raw.status, raw.body)}")
            raise LoginError("An unknown error occurred. Please try again.", raw.status)
        if raw.status == 0:
            raise LoginError(raw.reason, raw.status)

        result = decode_model(raw.body, LoginResponse.from_dict, "login")
        if not result.ok:
            logger.warning(f"Malformed login response: {result.error}")
            raise LoginError(
                "Malformed response. Possibly not a Matrix server", raw.status
            )

        login = result.value
        self.restore_login(login.user_id, login.access_token, login.device_id)
        logger.info(f"Logged in as {login.user_id} on {self.credentials.hostname}")
        return login

    def restore_login(
        self, user_id: str, access_token: str, device_id: str | None = None
    ) -> MatrixSession:
        """
        Restore login session with access token

        Args:
            user_id: Matrix user ID
            access_token: Access token from previous login
            device_id: Device ID (optional)
        """
        self.credentials = MatrixSession(
            homeserver=self.homeserver,
            access_token=access_token,
            user_id=user_id,
            device_id=device_id,
        )
        return self.credentials

    async def logout(self) -> None:
        """
        Invalidate the access token on the server and drop local credentials
        """
        await self._request("POST", f"{CLIENT_API_PREFIX}/logout", data={})
        logger.info(f"Logged out {self.user_id}")
        self.credentials = None

    async def register(
        self,
        username: str,
        password: str,
        session: str | None = None,
    ) -> RegisterResponse | RegistrationFlow:
        """
        Register a new account

        When the server answers with an auth flow instead of an account, the
        caller completes the recaptcha stage and calls again with ``session``.

        Args:
            username: Desired localpart
            password: Account password
            session: Auth session from a previous RegistrationFlow

        Returns:
            RegisterResponse on success, RegistrationFlow when another stage is needed

        Raises:
            RegistrationError: When the server rejects the registration
        """
        data: dict[str, Any] = {"username": username, "password": password}
        if session:
            data["auth"] = {"type": M_LOGIN_RECAPTCHA, "session": session}

        raw = await self._send(
            "POST", f"{CLIENT_API_PREFIX}/register", data=data, authenticated=False
        )

        registered = decode_model(raw.body, RegisterResponse.from_dict, "register")
        if registered.ok:
            self.restore_login(
                registered.value.user_id,
                registered.value.access_token,
                registered.value.device_id,
            )
            return registered.value

        flow = decode_model(raw.body, RegistrationFlow.from_dict, "registration flow")
        if flow.ok:
            return flow.value

        if raw.failed:
            error = decode_error(raw.status, raw.body, raw.reason)
            message = getattr(error, "error", "") or error.message
            raise RegistrationError(message)

        raise RegistrationError(f"Unexpected registration response: {registered.error}")
