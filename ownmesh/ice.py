"""ICE candidate-type classification from SDP candidate lines."""

from __future__ import annotations

from .diag import IceCandidateKind

_TYPES = {
    "host": IceCandidateKind.HOST,
    "srflx": IceCandidateKind.SERVER_REFLEXIVE,
    "prflx": IceCandidateKind.PEER_REFLEXIVE,
    "relay": IceCandidateKind.RELAY,
}


def classify_candidate_sdp(sdp: str) -> IceCandidateKind:
    """Classify a candidate line by the token after its first ``typ``.

    Anything unrecognised or malformed yields ``UNKNOWN``.
    """
    tokens = iter(sdp.split())
    for token in tokens:
        if token == "typ":
            return _TYPES.get(next(tokens, ""), IceCandidateKind.UNKNOWN)
    return IceCandidateKind.UNKNOWN