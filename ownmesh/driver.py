"""Nostr signaling driver: relay connections, presence announces and routing.

One task per selected relay keeps a WebSocket open, subscribes to the
room, publishes outbound events and hands inbound events to the
engine. A single announcer task publishes presence on the adaptive
schedule, independent of how many relays are connected. Failed or
closed relays are retried with exponential backoff capped at one
minute.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Protocol

import websockets

from .dispatch import (
    DriverState,
    NostrDriverConfig,
    NostrInbound,
    NostrOutbound,
    resolve_relays,
)
from .event import NostrEvent, NostrIdentity
from .handle import derive_room_handle
from .messages import DecodeError, SignalingError
from .relay import SubscriptionReplay
from .upstream import announce_wait_ms

log = logging.getLogger(__name__)

PUBLISH_CAPACITY = 64
"""Per-relay queue size for outbound events; the oldest is dropped when full."""

MAX_BACKOFF_SECS = 60
"""Longest wait between reconnect attempts to one relay."""

_MAX_BACKOFF_EXPONENT = 6


class RelayConnection(Protocol):
    """The parts of a WebSocket connection the driver uses."""

    async def send(self, message: str) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...

    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[RelayConnection]]
Sleeper = Callable[[float], Awaitable[Any]]


async def _websocket_connect(url: str) -> RelayConnection:
    return await websockets.connect(url)


def _event_frame(event: NostrEvent) -> str:
    return json.dumps(["EVENT", event.to_dict()], separators=(",", ":"), ensure_ascii=False)


def short_relay_name(url: str) -> str:
    """The relay URL without its scheme and path, for log lines."""
    for scheme in ("wss://", "ws://"):
        if url.startswith(scheme):
            url = url[len(scheme):]
            break
    return url.split("/", 1)[0]


class NostrDriver:
    """Signaling over a deterministic set of Nostr relays for one network."""

    def __init__(
        self,
        config: NostrDriverConfig,
        *,
        identity: NostrIdentity | None = None,
        connect: Connector | None = None,
        sleep: Sleeper | None = None,
    ) -> None:
        self.config = config
        self.state = DriverState(
            device_id=config.device_id,
            room_handle=derive_room_handle(config.app_id, config.network_id),
            identity=identity,
        )
        self.relays: list[str] = resolve_relays(config)
        self._connect: Connector = connect if connect is not None else _websocket_connect
        self._sleep: Sleeper = sleep if sleep is not None else asyncio.sleep
        self._inbound: asyncio.Queue[NostrInbound] = asyncio.Queue()
        self._subscribers: set[asyncio.Queue[str]] = set()
        self._tasks: list[asyncio.Task[None]] = []
        self._stopped = False

    def start(self) -> None:
        """Spawn the relay and announcer tasks on the running event loop."""
        if self._stopped:
            raise SignalingError("driver is stopped")
        if self._tasks:
            raise SignalingError("driver already started")
        loop = asyncio.get_running_loop()
        log.info(
            "starting Nostr driver: network=%s room_handle=%s pubkey=%s relays=%d",
            self.config.network_id,
            self.state.room_handle[:16],
            self.state.identity.pubkey_hex()[:16],
            len(self.relays),
        )
        self._tasks = [loop.create_task(self._run_relay(url)) for url in self.relays]
        self._tasks.append(loop.create_task(self._run_announcer()))

    def send(self, outbound: NostrOutbound) -> bool:
        """Publish an outbound message to every connected relay.

        Returns False when no relay session is ready and the event was dropped.
        """
        if self._stopped:
            raise SignalingError("driver is stopped")
        event = self.state.build_outbound_event(outbound)
        if not self._subscribers:
            log.debug("no relay subscribers ready; outbound event dropped")
            return False
        self._publish(event)
        return True

    async def recv(self) -> NostrInbound:
        """Wait for the next inbound signaling event."""
        return await self._inbound.get()

    def stop(self) -> None:
        """Signal every task to stop. Idempotent."""
        self._stopped = True
        for task in self._tasks:
            task.cancel()

    async def __aenter__(self) -> NostrDriver:
        if not self._tasks:
            self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.stop()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    def _publish(self, event: NostrEvent) -> int:
        frame = _event_frame(event)
        for bus in self._subscribers:
            if bus.full():
                bus.get_nowait()
                log.warning("publish bus lagged; dropped oldest event")
            bus.put_nowait(frame)
        return len(self._subscribers)

    async def _run_relay(self, url: str) -> None:
        name = short_relay_name(url)
        backoff_attempt = 0
        failures = 0
        replay = SubscriptionReplay()
        while not self._stopped:
            try:
                conn = await self._connect(url)
            except Exception as exc:
                if failures == 0:
                    log.warning("relay %s connect failed: %s", name, exc)
                else:
                    log.debug("relay %s still failing (attempt %d): %s", name, failures + 1, exc)
                failures += 1
            else:
                if failures:
                    log.info("relay %s recovered after %d failed attempts", name, failures)
                else:
                    log.info("relay %s connected", name)
                failures = 0
                backoff_attempt = 0
                outcome = await self._run_session(url, conn, replay)
                log.debug("relay %s session ended: %s", name, outcome)
            if self._stopped:
                return
            backoff_attempt = min(backoff_attempt + 1, _MAX_BACKOFF_EXPONENT)
            wait = min(1 << backoff_attempt, MAX_BACKOFF_SECS)
            log.debug("relay %s backoff %ds before reconnect", name, wait)
            await self._sleep(wait)

    async def _run_session(
        self, url: str, conn: RelayConnection, replay: SubscriptionReplay
    ) -> str:
        bus: asyncio.Queue[str] = asyncio.Queue(maxsize=PUBLISH_CAPACITY)
        try:
            request = replay.observe_send(self.state.subscription_request())
            await conn.send(request)
            replay.on_open()
            replay.record_replay()
            self._subscribers.add(bus)
            await conn.send(_event_frame(self.state.build_announce_event()))

            reader = asyncio.ensure_future(self._read_loop(url, conn))
            writer = asyncio.ensure_future(self._write_loop(conn, bus))
            try:
                done, _ = await asyncio.wait(
                    {reader, writer}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                reader.cancel()
                writer.cancel()
                await asyncio.gather(reader, writer, return_exceptions=True)
            for task in done:
                task.result()
            return "socket closed"
        except Exception as exc:
            return f"error: {exc}"
        finally:
            self._subscribers.discard(bus)
            with contextlib.suppress(Exception):
                await conn.close()

    async def _read_loop(self, url: str, conn: RelayConnection) -> None:
        async for message in conn:
            if isinstance(message, bytes):
                try:
                    message = message.decode("utf-8")
                except UnicodeDecodeError:
                    continue
            try:
                inbound = self.state.handle_inbound_frame(url, message)
            except DecodeError as exc:
                log.debug("relay %s inbound frame parse: %s", short_relay_name(url), exc)
                continue
            if inbound is not None:
                self._inbound.put_nowait(inbound)

    @staticmethod
    async def _write_loop(conn: RelayConnection, bus: asyncio.Queue[str]) -> None:
        while True:
            frame = await bus.get()
            await conn.send(frame)

    async def _run_announcer(self) -> None:
        count = 0
        while not self._stopped:
            self._publish(self.state.build_announce_event())
            wait_ms = announce_wait_ms(count)
            count += 1
            await self._sleep(wait_ms / 1000)


def start(config: NostrDriverConfig) -> NostrDriver:
    """Create a driver for ``config`` and start it on the running loop."""
    driver = NostrDriver(config)
    driver.start()
    return driver