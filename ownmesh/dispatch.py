"""Nostr signaling dispatch: envelopes, relay selection and inbound routing.

This is the socket-free core of the Nostr driver. It wraps signaling
messages in envelopes carried as event content, signs outbound events,
builds the room subscription, and turns inbound relay frames into
engine-facing events. Inbound events are deduplicated by id, because
every relay that carries an event delivers its own copy.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Union

from .event import (
    SIGNALING_EVENT_KIND,
    NostrEvent,
    NostrIdentity,
    make_event,
    now_secs,
)
from .local import DirectedToPeer, PeerAnnounced, PeerMessage
from .messages import (
    Announce,
    DecodeError,
    SignalingMessage,
    message_from_dict,
    message_to_dict,
)
from .relays import DEFAULT_RELAY_URLS, is_denied
from .shuffle import select_top_n
from .upstream import SEEN_EVENT_CAPACITY

log = logging.getLogger(__name__)

SUBSCRIPTION_ID = "mom-sig-1"
"""Subscription id used for the room REQ on every relay."""

SUBSCRIPTION_LOOKBACK_SECS = 300
"""How far back the room subscription asks relays to replay stored events."""


@dataclass(frozen=True)
class NostrDriverConfig:
    """Configuration for one driver instance."""

    app_id: str
    network_id: str
    device_id: str
    redundancy: int
    servers: Sequence[str] = ()
    denylist: Sequence[str] = ()


@dataclass(frozen=True)
class NostrAnnounce:
    """Outbound request to publish a presence announce."""


NostrOutbound = Union[NostrAnnounce, DirectedToPeer]
NostrInbound = Union[PeerAnnounced, PeerMessage]


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class SignalingEnvelope:
    """A signaling message with its sender and optional recipient.

    ``to`` is ``None`` for broadcasts such as announces.
    """

    sender: str
    msg: SignalingMessage
    to: str | None = None

    def to_json(self) -> str:
        """Encode as the compact JSON carried in an event's content."""
        return _compact({"from": self.sender, "to": self.to, **message_to_dict(self.msg)})

    @classmethod
    def from_json(cls, text: str) -> SignalingEnvelope:
        """Decode event content; raises ``DecodeError`` on malformed input."""
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise DecodeError(f"envelope is not JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise DecodeError("envelope must be an object")
        sender = data.get("from")
        if not isinstance(sender, str):
            raise DecodeError("missing field 'from'")
        to = data.get("to")
        if to is not None and not isinstance(to, str):
            raise DecodeError("field 'to' must be a string")
        return cls(sender=sender, msg=message_from_dict(data), to=to)


def resolve_relays(config: NostrDriverConfig) -> list[str]:
    """Choose the relays to use: configured or default pool, minus denied hosts."""
    pool = list(config.servers) if config.servers else list(DEFAULT_RELAY_URLS)
    allowed = [url for url in pool if not is_denied(url, config.denylist)]
    return select_top_n(config.app_id, allowed, config.redundancy)


class DriverState:
    """State shared by every relay session of one driver."""

    def __init__(
        self,
        device_id: str,
        room_handle: str,
        identity: NostrIdentity | None = None,
        capacity: int = SEEN_EVENT_CAPACITY,
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.device_id = device_id
        self.room_handle = room_handle
        self.identity = identity if identity is not None else NostrIdentity.generate()
        self._seen: deque[str] = deque(maxlen=capacity)
        self._seen_set: set[str] = set()

    @property
    def seen_event_ids(self) -> tuple[str, ...]:
        """Event ids already delivered, oldest first."""
        return tuple(self._seen)

    def _mark_seen(self, event_id: str) -> bool:
        """Record ``event_id``; False if it was already recorded."""
        if event_id in self._seen_set:
            return False
        if len(self._seen) == self._seen.maxlen:
            self._seen_set.discard(self._seen[0])
        self._seen.append(event_id)
        self._seen_set.add(event_id)
        return True

    def _sign(self, envelope: SignalingEnvelope) -> NostrEvent:
        return make_event(
            self.identity,
            SIGNALING_EVENT_KIND,
            [["r", self.room_handle]],
            envelope.to_json(),
            now_secs(),
        )

    def build_announce_event(self) -> NostrEvent:
        """A signed presence announce for this device."""
        return self._sign(
            SignalingEnvelope(sender=self.device_id, msg=Announce(peer_id=self.device_id))
        )

    def build_outbound_event(self, outbound: NostrOutbound) -> NostrEvent:
        """A signed event carrying an outbound engine message."""
        if isinstance(outbound, NostrAnnounce):
            return self.build_announce_event()
        if isinstance(outbound, DirectedToPeer):
            return self._sign(
                SignalingEnvelope(sender=self.device_id, msg=outbound.msg, to=outbound.to)
            )
        raise TypeError(f"not an outbound message: {type(outbound).__name__}")

    def subscription_request(self) -> str:
        """The REQ frame subscribing to recent signaling events for the room."""
        since = max(0, now_secs() - SUBSCRIPTION_LOOKBACK_SECS)
        return _compact(
            [
                "REQ",
                SUBSCRIPTION_ID,
                {"#r": [self.room_handle], "kinds": [SIGNALING_EVENT_KIND], "since": since},
            ]
        )

    def handle_inbound_frame(self, url: str, frame: str) -> NostrInbound | None:
        """Turn a relay frame into an engine event, or ``None`` if nothing to deliver.

        Raises ``DecodeError`` when the frame or its event is malformed.
        """
        try:
            value = json.loads(frame)
        except ValueError as exc:
            raise DecodeError(f"frame is not JSON: {exc}") from exc
        if not isinstance(value, list):
            raise DecodeError("not an array")
        tag = value[0] if value and isinstance(value[0], str) else ""

        if tag == "EVENT":
            if len(value) < 3:
                raise DecodeError("missing event body")
            event = NostrEvent.from_dict(value[2])
            if event.pubkey == self.identity.pubkey_hex():
                return None
            if not self._mark_seen(event.id):
                return None
            envelope = SignalingEnvelope.from_json(event.content)
            if envelope.to is not None and envelope.to != self.device_id:
                return None
            if isinstance(envelope.msg, Announce):
                if envelope.msg.peer_id == self.device_id:
                    return None
                return PeerAnnounced(device_id=envelope.msg.peer_id)
            return PeerMessage(sender=envelope.sender, msg=envelope.msg)

        if tag == "EOSE":
            log.debug("relay %s: EOSE", url)
        elif tag == "NOTICE":
            body = value[1] if len(value) > 1 and isinstance(value[1], str) else ""
            log.debug("relay %s notice: %s", url, body)
        else:
            log.debug("relay %s: unhandled tag %r", url, tag)
        return None