"""
Typed views over Matrix C-S API responses
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SyncBatch:
    """One /sync response. Only next_batch is interpreted here."""

    next_batch: str
    rooms: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        rooms = data.get("rooms")
        return cls(
            next_batch=data["next_batch"],
            rooms=rooms if isinstance(rooms, dict) else {},
            raw=data,
        )

    @property
    def joined_rooms(self) -> dict[str, Any]:
        return self.rooms.get("join", {})

    @property
    def invited_rooms(self) -> dict[str, Any]:
        return self.rooms.get("invite", {})

    @property
    def left_rooms(self) -> dict[str, Any]:
        return self.rooms.get("leave", {})


@dataclass
class LoginResponse:
    user_id: str
    access_token: str
    device_id: str | None = None
    home_server: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        return cls(
            user_id=data["user_id"],
            access_token=data["access_token"],
            device_id=data.get("device_id"),
            home_server=data.get("home_server"),
        )


@dataclass
class RegisterResponse(LoginResponse):
    """Successful registration. Same shape as a login response."""


@dataclass
class RegistrationFlow:
    """The server wants another auth stage before registering the user"""

    session: str
    flows: list[dict[str, Any]] = field(default_factory=list)
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        return cls(
            session=data["session"],
            flows=data.get("flows", []),
            params=data.get("params", {}),
        )


@dataclass
class UploadResponse:
    content_uri: str
    mimetype: str = ""
    size: int = 0
    filename: str = ""


@dataclass
class MessagesPage:
    """One page of /messages pagination"""

    room_id: str
    chunk: list[dict[str, Any]] = field(default_factory=list)
    start: str = ""
    end: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], room_id: str):
        return cls(
            room_id=room_id,
            chunk=data.get("chunk", []),
            start=data.get("start", ""),
            end=data.get("end", ""),
        )


@dataclass
class Profile:
    displayname: str = ""
    avatar_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        return cls(
            displayname=data.get("displayname") or "",
            avatar_url=data.get("avatar_url") or "",
        )
