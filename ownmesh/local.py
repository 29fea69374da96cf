"""In-process loopback signaling.

A single :class:`LocalBroker` owns the routing table. Each peer joins
a room and gets a :class:`LocalPeer`; messages it sends are delivered
to the inboxes of matching peers in the same room.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import Union

from .messages import SignalingError, SignalingMessage


@dataclass(frozen=True)
class AnnounceOut:
    """Outbound presence announce."""

    device_id: str


@dataclass(frozen=True)
class DirectedToPeer:
    """Outbound message addressed to one peer."""

    to: str
    msg: SignalingMessage


@dataclass(frozen=True)
class LeaveOut:
    """Outbound leave broadcast."""

    device_id: str


LocalOutbound = Union[AnnounceOut, DirectedToPeer, LeaveOut]


@dataclass(frozen=True)
class PeerAnnounced:
    """A peer announced itself in the room."""

    device_id: str


@dataclass(frozen=True)
class PeerMessage:
    """A directed signaling message from ``sender``."""

    sender: str
    msg: SignalingMessage


@dataclass(frozen=True)
class PeerLeft:
    """A peer left the room."""

    device_id: str


LocalInbound = Union[PeerAnnounced, PeerMessage, PeerLeft]


class LocalPeer:
    """One peer's membership of a broker room."""

    def __init__(self, broker: LocalBroker, room: str, device_id: str) -> None:
        self._broker = broker
        self.room = room
        self.device_id = device_id
        self._inbox: asyncio.Queue[LocalInbound] = asyncio.Queue()
        self._closed = False

    def _deliver(self, event: LocalInbound) -> None:
        self._inbox.put_nowait(event)

    def send(self, outbound: LocalOutbound) -> int:
        """Route ``outbound`` to the room; return how many peers received it."""
        if self._closed:
            raise SignalingError("peer has left the room")
        return self._broker._route(self, outbound)

    async def recv(self) -> LocalInbound:
        """Wait for the next inbound event."""
        return await self._inbox.get()

    def close(self) -> None:
        """Leave the room, notifying the remaining peers. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._broker._leave(self)

    def __enter__(self) -> LocalPeer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class LocalBroker:
    """Routes signaling between peers in the same process."""

    def __init__(self) -> None:
        self._rooms: dict[str, list[LocalPeer]] = {}
        self._lock = threading.Lock()

    def join(self, room: str, device_id: str) -> LocalPeer:
        """Join ``device_id`` to ``room``; existing peers and the joiner learn of each other."""
        peer = LocalPeer(self, room, device_id)
        with self._lock:
            peers = self._rooms.setdefault(room, [])
            for existing in peers:
                existing._deliver(PeerAnnounced(device_id=device_id))
                peer._deliver(PeerAnnounced(device_id=existing.device_id))
            peers.append(peer)
        return peer

    def _route(self, sender: LocalPeer, outbound: LocalOutbound) -> int:
        if not isinstance(outbound, (AnnounceOut, DirectedToPeer, LeaveOut)):
            raise TypeError(f"not an outbound message: {type(outbound).__name__}")
        with self._lock:
            peers = self._rooms.get(sender.room)
            if not peers:
                return 0
            delivered = 0
            for peer in peers:
                if peer.device_id == sender.device_id:
                    continue
                if isinstance(outbound, AnnounceOut):
                    event: LocalInbound = PeerAnnounced(device_id=outbound.device_id)
                elif isinstance(outbound, DirectedToPeer):
                    if peer.device_id != outbound.to:
                        continue
                    event = PeerMessage(sender=sender.device_id, msg=outbound.msg)
                else:
                    event = PeerLeft(device_id=outbound.device_id)
                peer._deliver(event)
                delivered += 1
            return delivered

    def _leave(self, leaving: LocalPeer) -> None:
        with self._lock:
            peers = self._rooms.get(leaving.room)
            if peers is None:
                return
            peers[:] = [p for p in peers if p.device_id != leaving.device_id]
            for peer in peers:
                peer._deliver(PeerLeft(device_id=leaving.device_id))
            if not peers:
                del self._rooms[leaving.room]