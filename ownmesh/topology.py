"""Topology selectors: which connected peers receive application traffic.

Peers outside the preferred set are shelved: their data channel stays
open as a heartbeat, but no application frames flow to them.

Selectors are pure. Every peer runs the same algorithm over the same
input and reaches the same answer, which is what makes shelving safe
without a coordinator.
"""

from __future__ import annotations

import abc
from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_RING_N_PREFERRED = 3
"""Default number of preferred peers for the ring topology."""


class Topology(abc.ABC):
    """Strategy for choosing the peers to keep active.

    Implementations must be deterministic: the same ``self_id`` and
    ``peer_ids`` always give the same set.
    """

    @abc.abstractmethod
    def select_preferred(self, self_id: str, peer_ids: Sequence[str]) -> set[str]:
        """Return the subset of ``peer_ids`` (which excludes self) to keep active."""


@dataclass(frozen=True)
class FullMeshSelector(Topology):
    """Every peer is preferred; nobody is shelved."""

    def select_preferred(self, self_id: str, peer_ids: Sequence[str]) -> set[str]:
        return set(peer_ids)


@dataclass(frozen=True)
class RingSelector(Topology):
    """Keep the two ring neighbours plus the closest shortcuts."""

    n_preferred: int = DEFAULT_RING_N_PREFERRED

    def select_preferred(self, self_id: str, peer_ids: Sequence[str]) -> set[str]:
        return select_ring_neighbors(self_id, peer_ids, self.n_preferred)


def select_ring_neighbors(
    self_pubkey: str, peer_pubkeys: Sequence[str], n_preferred: int
) -> set[str]:
    """Pick ring neighbours and lexically closest shortcuts for ``self_pubkey``.

    Peers and self are sorted into a ring. The two immediate
    neighbours (one each way) are always kept; remaining slots up to
    ``n_preferred`` are filled by walking outward, clockwise first at
    each distance. With ``n_preferred`` or fewer peers, all are kept.
    """
    if n_preferred < 0:
        raise ValueError(f"n_preferred must be non-negative, got {n_preferred}")
    if not peer_pubkeys:
        return set()
    if len(peer_pubkeys) <= n_preferred:
        return set(peer_pubkeys)

    ring = sorted(set(peer_pubkeys) | {self_pubkey})
    my_idx = ring.index(self_pubkey)
    ring_len = len(ring)
    preferred: set[str] = set()

    if ring_len > 1:
        preferred.add(ring[(my_idx + 1) % ring_len])
        preferred.add(ring[(my_idx - 1) % ring_len])

    dist = 2
    while len(preferred) < n_preferred and dist < ring_len:
        cw = ring[(my_idx + dist) % ring_len]
        if cw != self_pubkey and cw not in preferred:
            preferred.add(cw)
            if len(preferred) >= n_preferred:
                break
        ccw = ring[(my_idx - dist) % ring_len]
        if ccw != self_pubkey and ccw not in preferred:
            preferred.add(ccw)
        dist += 1
    return preferred