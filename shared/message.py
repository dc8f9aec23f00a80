from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union
import json


class MessageType(str, Enum):
    """RTM message types this client understands."""

    HELLO = "hello"        # Server greeting after the socket opens
    MESSAGE = "message"    # Chat text in a channel
    PING = "ping"          # Keepalive, outbound only


class MalformedMessageError(Exception):
    """Raised when an inbound frame cannot be decoded into a Message."""
    pass


@dataclass(frozen=True)
class Greeting:
    """{"type": "hello"}"""

    type: str = MessageType.HELLO.value

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type}


@dataclass(frozen=True)
class ChatMessage:
    """
    Chat text in a channel:
    {
    "type": "message",
    "user": "STRING",
    "text": "STRING",
    "channel": "STRING",
    "id": INT (outbound only)
    }
    """
    user: Optional[str] = None
    text: Optional[str] = None
    channel: Optional[str] = None
    id: Optional[int] = None
    type: str = MessageType.MESSAGE.value

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'type': self.type}
        if self.id is not None:
            result['id'] = self.id
        for key in ('channel', 'user', 'text'):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


@dataclass(frozen=True)
class Ping:
    """Keepalive, serialized literally as {"type": "ping"}"""

    type: str = MessageType.PING.value

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type}


@dataclass(frozen=True)
class Unknown:
    """Any inbound type this client does not interpret; keeps the raw fields."""

    type: str
    fields: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.fields, type=self.type)


Message = Union[Greeting, ChatMessage, Ping, Unknown]


def decode(raw: Union[str, bytes]) -> Message:
    """Parse one wire frame into a Message, validating structure"""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedMessageError(f"Invalid UTF-8: {e}") from e
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        # RecursionError: nesting deeper than the parser can follow
        raise MalformedMessageError(f"Invalid JSON: {e}") from e

    return from_dict(data)


def from_dict(data: Any) -> Message:
    """Create a Message from a decoded JSON value, dispatching on 'type'"""
    if not isinstance(data, dict):
        raise MalformedMessageError(f"Expected a JSON object, got {type(data).__name__}")

    msg_type = data.get('type')
    if msg_type is None:
        raise MalformedMessageError("Missing required field: 'type'")
    if not isinstance(msg_type, str):
        raise MalformedMessageError("'type' must be a string")

    if msg_type == MessageType.HELLO:
        return Greeting()

    if msg_type == MessageType.MESSAGE:
        # Subtypes such as message_changed omit user; absent fields stay None
        for key in ('user', 'text', 'channel'):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise MalformedMessageError(f"'{key}' must be a string")
        return ChatMessage(
            user=data.get('user'),
            text=data.get('text'),
            channel=data.get('channel'),
        )

    return Unknown(type=msg_type, fields=dict(data))


def encode(message: Message) -> str:
    """Convert a Message to its JSON wire form"""
    return json.dumps(message.to_dict(), separators=(',', ':'))
