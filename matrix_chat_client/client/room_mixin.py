"""
Matrix HTTP Client - Room Mixin
Provides membership, room creation, pagination and read/typing markers
"""

import logging
from typing import Any

from ..constants import (
    CLIENT_API_PREFIX,
    DEFAULT_MESSAGES_LIMIT,
    DEFAULT_TYPING_TIMEOUT_MS,
)
from ..errors import DecodeError
from .base import path_segment
from .responses import MessagesPage

logger = logging.getLogger("matrix_chat_client.rooms")


class RoomMixin:
    """Room-related methods for Matrix client"""

    @staticmethod
    def _room_id_from(response: dict[str, Any], action: str) -> str:
        room_id = response.get("room_id")
        if not isinstance(room_id, str) or not room_id:
            raise DecodeError(f"{action} response is missing room_id", str(response))
        return room_id

    async def join_room(self, room_id_or_alias: str) -> str:
        """
        Join a room

        Args:
            room_id_or_alias: Room ID or alias

        Returns:
            ID of the joined room
        """
        endpoint = f"{CLIENT_API_PREFIX}/join/{path_segment(room_id_or_alias)}"
        response = await self._request("POST", endpoint, data={})
        return self._room_id_from(response, "Join")

    async def leave_room(self, room_id: str) -> None:
        """
        Leave a room

        Args:
            room_id: Room ID
        """
        endpoint = f"{CLIENT_API_PREFIX}/rooms/{path_segment(room_id)}/leave"
        await self._request("POST", endpoint, data={})

    async def invite_user(self, room_id: str, user_id: str) -> None:
        """
        Invite a user to a room

        Args:
            room_id: Room ID
            user_id: User ID to invite
        """
        endpoint = f"{CLIENT_API_PREFIX}/rooms/{path_segment(room_id)}/invite"
        await self._request("POST", endpoint, data={"user_id": user_id})

    async def create_room(
        self,
        name: str | None = None,
        topic: str | None = None,
        invite: list[str] | None = None,
        is_public: bool = False,
        preset: str | None = None,
        room_alias_name: str | None = None,
        is_direct: bool = False,
    ) -> str:
        """
        Create a new room

        Args:
            name: Room name
            topic: Room topic
            invite: List of user IDs to invite
            is_public: Whether room is public
            preset: Room preset (private_chat, public_chat, trusted_private_chat)
            room_alias_name: Local part of the alias to publish
            is_direct: Mark the room as a direct chat

        Returns:
            ID of the new room
        """
        data: dict[str, Any] = {}

        if name:
            data["name"] = name
        if topic:
            data["topic"] = topic
        if invite:
            data["invite"] = invite
        if room_alias_name:
            data["room_alias_name"] = room_alias_name
        if is_direct:
            data["is_direct"] = True
        if preset:
            data["preset"] = preset
        else:
            data["preset"] = "public_chat" if is_public else "private_chat"
        data["visibility"] = "public" if is_public else "private"

        response = await self._request(
            "POST", f"{CLIENT_API_PREFIX}/createRoom", data=data
        )
        room_id = self._room_id_from(response, "Create room")
        logger.info(f"Created room {room_id}")
        return room_id

    async def room_messages(
        self,
        room_id: str,
        from_token: str,
        limit: int = DEFAULT_MESSAGES_LIMIT,
        direction: str = "b",
    ) -> MessagesPage:
        """
        Get a page of room history

        Args:
            room_id: Room ID
            from_token: Pagination token to start from
            limit: Maximum number of events to return
            direction: 'b' for backwards, 'f' for forwards

        Returns:
            One page of events with its pagination tokens
        """
        endpoint = f"{CLIENT_API_PREFIX}/rooms/{path_segment(room_id)}/messages"
        params = {"from": from_token, "dir": direction, "limit": limit}
        response = await self._request("GET", endpoint, params=params)
        return MessagesPage.from_dict(response, room_id)

    async def read_event(self, room_id: str, event_id: str) -> None:
        """
        Move both the fully-read marker and the read receipt to an event

        Args:
            room_id: Room ID
            event_id: Last event the user has seen
        """
        endpoint = f"{CLIENT_API_PREFIX}/rooms/{path_segment(room_id)}/read_markers"
        data = {"m.fully_read": event_id, "m.read": event_id}
        await self._request("POST", endpoint, data=data)

    def _typing_endpoint(self, room_id: str) -> str:
        user_id = self.require_credentials().user_id
        return (
            f"{CLIENT_API_PREFIX}/rooms/{path_segment(room_id)}"
            f"/typing/{path_segment(user_id)}"
        )

    async def send_typing(
        self, room_id: str, timeout_ms: int = DEFAULT_TYPING_TIMEOUT_MS
    ) -> None:
        """
        Tell the room the user is typing

        Args:
            room_id: Room ID
            timeout_ms: How long the server keeps the notice alive
        """
        data = {"typing": True, "timeout": timeout_ms}
        await self._request("PUT", self._typing_endpoint(room_id), data=data)

    async def remove_typing(self, room_id: str) -> None:
        """Clear the typing notice for the user"""
        await self._request(
            "PUT", self._typing_endpoint(room_id), data={"typing": False}
        )
