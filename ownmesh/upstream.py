"""Signaling tuning constants and the schedules built from them.

- Subscription replay after socket reconnect follows an anti-flood
  backoff that saturates at its last value and resets after a quiet
  period.
- A peer whose last inbound signaling message is older than
  ``STALE_INBOUND_MS`` is treated as a zombie when it re-announces.
- Offer-pool flushes on peer drop are throttled.
- Inbound events are deduplicated by id in a bounded ring.
- Presence announces fire once at start, then on the adaptive
  schedule ``ANNOUNCE_BACKOFF_MS``, then every ``ANNOUNCE_STEADY_MS``.
"""

from __future__ import annotations

STALE_INBOUND_MS = 25_000
"""Inbound staleness threshold for clearing zombie connections."""

OFFER_POOL_FLUSH_THROTTLE_MS = 10_000
"""Minimum time between offer-pool flushes."""

RESUBSCRIBE_BACKOFF_MS: tuple[int, ...] = (5_000, 10_000, 15_000, 30_000, 60_000)
"""Replay backoff after reconnect; indices saturate at the last value."""

BACKOFF_RESET_AFTER_MS = 60_000
"""Quiet period after which the resubscribe backoff index resets."""

SEEN_EVENT_CAPACITY = 2048
"""Size of the inbound event-id deduplication ring."""

DISCONNECTED_PEER_GRACE_MS = 7_500
"""Grace window before a disconnected peer's connection is torn down."""

ANNOUNCE_INTERVAL_MS = 5_333
"""Legacy flat announce cadence, kept as a reference value."""

ANNOUNCE_BACKOFF_MS: tuple[int, ...] = (30_000,)
"""Wait before the next announce, indexed by announces already fired after the first."""

ANNOUNCE_STEADY_MS = 300_000
"""Announce cadence once ``ANNOUNCE_BACKOFF_MS`` is exhausted."""

ANNOUNCE_WARMUP_INTERVALS_MS: tuple[int, ...] = (500, 1_500, 3_000)
"""Warmup announce delays after joining a room."""


def announce_wait_ms(count: int) -> int:
    """Wait in milliseconds before the next announce, after ``count`` have fired.

    ``count`` starts at 0 after the immediate first announce.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    if count < len(ANNOUNCE_BACKOFF_MS):
        return ANNOUNCE_BACKOFF_MS[count]
    return ANNOUNCE_STEADY_MS


def resubscribe_backoff_ms(attempt: int) -> int:
    """Replay backoff in milliseconds for reconnect ``attempt`` (saturating)."""
    if attempt < 0:
        raise ValueError(f"attempt must be non-negative, got {attempt}")
    return RESUBSCRIBE_BACKOFF_MS[min(attempt, len(RESUBSCRIBE_BACKOFF_MS) - 1)]