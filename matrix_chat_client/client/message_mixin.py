"""
Matrix HTTP Client - Message Mixin
Provides message sending, redaction and transaction ID bookkeeping
"""

import logging
from typing import Any

from ..constants import (
    CLIENT_API_PREFIX,
    INITIAL_TRANSACTION_ID,
    M_ROOM_MESSAGE,
    MEDIA_MSGTYPES,
    MSGTYPE_EMOTE,
    MSGTYPE_TEXT,
)
from ..errors import DecodeError, MatrixAPIError, MessageSendError
from .base import path_segment

logger = logging.getLogger("matrix_chat_client.messages")


def build_message_content(
    msg_type: str,
    body: str,
    url: str | None = None,
    mime: str | None = None,
    size: int | None = None,
) -> dict[str, Any]:
    """
    Build m.room.message content

    Text and emote carry only a body; media types also carry url and info.
    """
    if msg_type in (MSGTYPE_TEXT, MSGTYPE_EMOTE):
        return {"msgtype": msg_type, "body": body}
    if msg_type in MEDIA_MSGTYPES:
        if not url:
            raise ValueError(f"{msg_type} message requires a content url")
        info: dict[str, Any] = {"size": int(size or 0), "mimetype": mime or ""}
        return {"msgtype": msg_type, "body": body, "url": url, "info": info}
    raise ValueError(f"Unknown message type: {msg_type}")


class MessageMixin:
    """Message-related methods for Matrix client"""

    def _load_transaction_id(self) -> None:
        self._txn_id = (
            self.settings.get_transaction_id()
            if self.settings is not None
            else INITIAL_TRANSACTION_ID
        )

    @property
    def transaction_id(self) -> int:
        """The ID the next write will use"""
        return self._txn_id

    def next_transaction_id(self) -> int:
        """
        Take a transaction ID for one write

        The counter is persisted before the ID is handed out, so an ID is
        never reused after a restart.
        """
        txn_id = self._txn_id
        self._txn_id = txn_id + 1
        if self.settings is not None:
            self.settings.set_transaction_id(self._txn_id)
        return txn_id

    def reset_transaction_id(self) -> None:
        """Start a new transaction epoch (after logout)"""
        self._txn_id = 0
        if self.settings is not None:
            self.settings.set_transaction_id(self._txn_id)

    async def _send_event(
        self, room_id: str, event_type: str, content: dict[str, Any], txn_id: int
    ) -> str:
        endpoint = (
            f"{CLIENT_API_PREFIX}/rooms/{path_segment(room_id)}"
            f"/send/{path_segment(event_type)}/{txn_id}"
        )
        try:
            response = await self._request("PUT", endpoint, data=content)
        except (MatrixAPIError, DecodeError) as e:
            logger.warning(f"Sending {event_type} to {room_id} failed: {e}")
            raise MessageSendError(room_id, txn_id, e.message) from e

        event_id = response.get("event_id")
        if not isinstance(event_id, str) or not event_id:
            raise MessageSendError(room_id, txn_id, "Send response is missing event_id")
        return event_id

    async def send_room_message(
        self,
        room_id: str,
        body: str,
        msg_type: str = MSGTYPE_TEXT,
        *,
        txn_id: int | None = None,
        url: str | None = None,
        mime: str | None = None,
        size: int | None = None,
    ) -> str:
        """
        Send an m.room.message event

        Args:
            room_id: Room ID
            body: Message text, or the file name for media
            msg_type: One of m.text, m.emote, m.image, m.file, m.audio, m.video
            txn_id: Transaction ID; taken from the counter when omitted
            url: mxc:// URL of uploaded media
            mime: Media MIME type
            size: Media size in bytes

        Returns:
            Event ID of the sent message

        Raises:
            MessageSendError: Carries room_id and txn_id for a retry
        """
        content = build_message_content(msg_type, body, url, mime, size)
        if txn_id is None:
            txn_id = self.next_transaction_id()
        return await self._send_event(room_id, M_ROOM_MESSAGE, content, txn_id)

    async def send_room_event(
        self, room_id: str, event_type: str, content: dict[str, Any]
    ) -> str:
        """
        Send a custom event to a room

        Args:
            room_id: Room ID
            event_type: Event type
            content: Event content

        Returns:
            Event ID
        """
        return await self._send_event(
            room_id, event_type, content, self.next_transaction_id()
        )

    async def redact_event(
        self, room_id: str, event_id: str, reason: str | None = None
    ) -> str:
        """
        Redact an event

        Args:
            room_id: Room ID
            event_id: Event to redact
            reason: Optional reason shown to other members

        Returns:
            Event ID of the redaction
        """
        txn_id = self.next_transaction_id()
        endpoint = (
            f"{CLIENT_API_PREFIX}/rooms/{path_segment(room_id)}"
            f"/redact/{path_segment(event_id)}/{txn_id}"
        )
        data: dict[str, Any] = {}
        if reason:
            data["reason"] = reason

        response = await self._request("PUT", endpoint, data=data)
        redaction_id = response.get("event_id")
        if not isinstance(redaction_id, str) or not redaction_id:
            raise DecodeError("Redaction response is missing event_id", str(response))
        return redaction_id
