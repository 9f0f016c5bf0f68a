from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


@dataclass(frozen=True)
class TextEvent:
    sender_id: int
    chat_id: int
    username: str | None
    text: str


@dataclass(frozen=True)
class ContactEvent:
    sender_id: int
    chat_id: int
    username: str | None
    phone: str


@dataclass(frozen=True)
class CallbackEvent:
    sender_id: int
    chat_id: int
    username: str | None
    data: str
    message_id: int | None = None


@dataclass(frozen=True)
class UnsupportedEvent:
    sender_id: int
    chat_id: int
    username: str | None = None


Event = Union[TextEvent, ContactEvent, CallbackEvent, UnsupportedEvent]


@dataclass(frozen=True)
class Button:
    text: str
    callback_data: str | None = None
    url: str | None = None

    @classmethod
    def callback(cls, text: str, callback_data: str) -> "Button":
        return cls(text=text, callback_data=callback_data)

    @classmethod
    def link(cls, text: str, url: str) -> "Button":
        return cls(text=text, url=url)


@dataclass
class OutboundMessage:
    chat_id: int
    text: str
    buttons: list[list[Button]] = field(default_factory=list)
    request_contact: bool = False
    remove_keyboard: bool = False

    @property
    def callback_tokens(self) -> list[str]:
        return [button.callback_data for row in self.buttons for button in row if button.callback_data]


@dataclass
class ClearMarkup:
    chat_id: int
    message_id: int


Outbound = Union[OutboundMessage, ClearMarkup]
