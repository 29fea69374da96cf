"""Signaling messages, relay health states, errors and the channel interface.

A signaling message is one of an offer/answer SDP exchange, an ICE
candidate, or a presence announce. Each carries the sender's peer id
so receivers can route it. On the wire a message is a JSON object
tagged by a ``kind`` field.
"""

from __future__ import annotations

import abc
import dataclasses
import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

_U16_MAX = 0xFFFF


@dataclass(frozen=True)
class Announce:
    """Periodic presence announce."""

    peer_id: str


@dataclass(frozen=True)
class Offer:
    """SDP offer addressed to a peer."""

    peer_id: str
    offer_id: str
    sdp: str


@dataclass(frozen=True)
class Answer:
    """SDP answer to an earlier offer."""

    peer_id: str
    offer_id: str
    sdp: str


@dataclass(frozen=True)
class Candidate:
    """ICE candidate in the shape a WebRTC stack can apply verbatim."""

    peer_id: str
    candidate: str
    sdp_mid: str | None = None
    sdp_mline_index: int | None = None
    username_fragment: str | None = None


SignalingMessage = Union[Announce, Offer, Answer, Candidate]

_KINDS: dict[str, type] = {
    "announce": Announce,
    "offer": Offer,
    "answer": Answer,
    "candidate": Candidate,
}
_KIND_OF: dict[type, str] = {cls: kind for kind, cls in _KINDS.items()}


class RelayHealth(enum.Enum):
    """Diagnostic health of one relay connection."""

    LIVE = "live"
    OPENING = "opening"
    RECONNECTING = "reconnecting"
    BACKED_OFF = "backed_off"
    DENIED = "denied"


class SignalingError(Exception):
    """Base class for signaling failures."""

    prefix = "other"

    def __str__(self) -> str:
        return f"{self.prefix}: {super().__str__()}"


class SocketError(SignalingError):
    """WebSocket-level failure."""

    prefix = "websocket"


class DecodeError(SignalingError):
    """Inbound data could not be decoded."""

    prefix = "decode"


class EncodeError(SignalingError):
    """Outbound data could not be encoded."""

    prefix = "encode"


class NoRelaysError(SignalingError):
    """No relay is available to carry signaling."""

    def __init__(self, message: str = "no relays available") -> None:
        super().__init__(message)

    def __str__(self) -> str:
        return "no relays available"


def message_to_dict(msg: SignalingMessage) -> dict[str, Any]:
    """Encode a message as its ``kind``-tagged wire object."""
    kind = _KIND_OF.get(type(msg))
    if kind is None:
        raise EncodeError(f"not a signaling message: {type(msg).__name__}")
    return {"kind": kind, **dataclasses.asdict(msg)}


def _is_optional(field: dataclasses.Field) -> bool:
    return field.default is None


def _check_value(name: str, value: Any) -> Any:
    if name == "sdp_mline_index":
        if isinstance(value, bool) or not isinstance(value, int):
            raise DecodeError(f"field {name!r} must be an integer")
        if not 0 <= value <= _U16_MAX:
            raise DecodeError(f"field {name!r} out of range: {value}")
        return value
    if not isinstance(value, str):
        raise DecodeError(f"field {name!r} must be a string")
    return value


def message_from_dict(data: Mapping[str, Any]) -> SignalingMessage:
    """Decode a ``kind``-tagged wire object; raises ``DecodeError`` on bad input."""
    if not isinstance(data, Mapping):
        raise DecodeError("expected an object")
    kind = data.get("kind")
    if not isinstance(kind, str):
        raise DecodeError("missing field 'kind'")
    cls = _KINDS.get(kind)
    if cls is None:
        raise DecodeError(f"unknown variant {kind!r}")
    kwargs: dict[str, Any] = {}
    for field in dataclasses.fields(cls):
        value = data.get(field.name)
        if value is None:
            if _is_optional(field):
                kwargs[field.name] = None
                continue
            raise DecodeError(f"missing field {field.name!r}")
        kwargs[field.name] = _check_value(field.name, value)
    return cls(**kwargs)


class SignalingChannel(abc.ABC):
    """Strategy-agnostic signaling channel for one joined network."""

    @abc.abstractmethod
    async def send(self, msg: SignalingMessage) -> None:
        """Publish ``msg`` to the room once at least one relay accepts it."""

    @abc.abstractmethod
    def relay_health(self) -> list[tuple[str, RelayHealth]]:
        """Best-effort snapshot of per-relay health."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Disconnect from all relays and stop background work."""