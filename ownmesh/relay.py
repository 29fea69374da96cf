"""Per-socket tracking of Nostr subscriptions, replayed on reconnect.

Outgoing ``["REQ", subId, ...]`` and ``["CLOSE", subId]`` frames are
observed. On every open after the first, the active REQ frames are
handed back for replay under an anti-flood backoff that saturates at
its longest step and resets after a quiet period.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import dataclass

from .upstream import BACKOFF_RESET_AFTER_MS, RESUBSCRIBE_BACKOFF_MS


@dataclass(frozen=True)
class ReplayDecision:
    """What to replay after an open; durations are in seconds.

    Empty ``frames`` means nothing to replay right now.
    """

    frames: tuple[str, ...] = ()
    wait: float = 0.0
    attempt: int = 0
    next_eligible_in: float = 0.0


class SubscriptionReplay:
    """Tracks the active REQ subscriptions on one WebSocket."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._active: dict[str, str] = {}
        self._attempt = 0
        self._last_replay_at: float | None = None
        self._has_opened_once = False

    def observe_send(self, frame: str) -> str:
        """Update the tracked subscriptions from an outgoing frame and return it unchanged."""
        if not frame.startswith("["):
            return frame
        try:
            parsed = json.loads(frame)
        except ValueError:
            return frame
        if (
            isinstance(parsed, list)
            and len(parsed) >= 2
            and isinstance(parsed[0], str)
            and isinstance(parsed[1], str)
        ):
            tag, sub_id = parsed[0], parsed[1]
            if tag == "REQ":
                self._active[sub_id] = frame
            elif tag == "CLOSE":
                self._active.pop(sub_id, None)
        return frame

    def on_open(self) -> ReplayDecision:
        """Mark the socket as freshly open and decide what to replay.

        The first open never replays.
        """
        if not self._has_opened_once:
            self._has_opened_once = True
            return ReplayDecision()

        now = self._clock()
        if (
            self._last_replay_at is not None
            and (now - self._last_replay_at) * 1000 > BACKOFF_RESET_AFTER_MS
        ):
            self._attempt = 0
        idx = min(self._attempt, len(RESUBSCRIBE_BACKOFF_MS) - 1)
        delay = RESUBSCRIBE_BACKOFF_MS[idx] / 1000

        if not self._active:
            return ReplayDecision()

        if self._last_replay_at is None:
            wait = 0.0
        else:
            wait = max(0.0, delay - (now - self._last_replay_at))

        self._attempt += 1
        return ReplayDecision(
            frames=tuple(self._active.values()),
            wait=wait,
            attempt=self._attempt,
            next_eligible_in=delay,
        )

    def record_replay(self) -> None:
        """Note that a replay was just sent, for future backoff decisions."""
        self._last_replay_at = self._clock()

    def active_count(self) -> int:
        """Number of active REQ subscriptions."""
        return len(self._active)