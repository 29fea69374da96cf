"""Per-peer transport diagnostics: ICE candidate counts and link counters."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class IceCandidateKind(enum.Enum):
    """Coarse ICE candidate type."""

    HOST = "host"
    SERVER_REFLEXIVE = "server_reflexive"
    PEER_REFLEXIVE = "peer_reflexive"
    RELAY = "relay"
    UNKNOWN = "unknown"


@dataclass
class IceCandidateStats:
    """Counts of ICE candidates seen, by kind."""

    host: int = 0
    server_reflexive: int = 0
    peer_reflexive: int = 0
    relay: int = 0
    unknown: int = 0

    def record(self, kind: IceCandidateKind) -> None:
        """Count one candidate of ``kind``."""
        attr = kind.value
        setattr(self, attr, getattr(self, attr) + 1)

    def total(self) -> int:
        """Number of candidates recorded across all kinds."""
        return (
            self.host
            + self.server_reflexive
            + self.peer_reflexive
            + self.relay
            + self.unknown
        )


@dataclass(frozen=True)
class SelectedCandidatePair:
    """The candidate pair the ICE agent chose for sending packets."""

    local: IceCandidateKind = IceCandidateKind.UNKNOWN
    remote: IceCandidateKind = IceCandidateKind.UNKNOWN


@dataclass
class PeerDiag:
    """Diagnostic counters kept for one peer connection."""

    local_candidates: IceCandidateStats = field(default_factory=IceCandidateStats)
    remote_candidates: IceCandidateStats = field(default_factory=IceCandidateStats)
    ice_transitions: int = 0
    ice_restarts: int = 0
    hellos_sent: int = 0
    bytes_in: int = 0
    bytes_out: int = 0
    frames_in: int = 0
    frames_out: int = 0