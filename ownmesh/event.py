"""Minimal Nostr events: the event shape, its id, and BIP-340 signing.

The event id is the SHA-256 of the compact JSON array
``[0, pubkey, created_at, kind, tags, content]``; the signature is a
BIP-340 Schnorr signature over that id with a secp256k1 key.
"""

from __future__ import annotations

import hashlib
import json
import secrets
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .messages import DecodeError

SIGNALING_EVENT_KIND = 1077
"""Event kind for signaling; a regular kind so relays store and replay it."""

_U16_MAX = 0xFFFF
_U64_MAX = 0xFFFFFFFFFFFFFFFF

# secp256k1 domain parameters.
_P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)

_Point = tuple[int, int] | None


def _point_add(a: _Point, b: _Point) -> _Point:
    if a is None:
        return b
    if b is None:
        return a
    if a[0] == b[0] and a[1] != b[1]:
        return None
    if a == b:
        slope = 3 * a[0] * a[0] * pow(2 * a[1], -1, _P) % _P
    else:
        slope = (b[1] - a[1]) * pow(b[0] - a[0], -1, _P) % _P
    x = (slope * slope - a[0] - b[0]) % _P
    return x, (slope * (a[0] - x) - a[1]) % _P


def _point_mul(point: _Point, scalar: int) -> _Point:
    result: _Point = None
    while scalar:
        if scalar & 1:
            result = _point_add(result, point)
        point = _point_add(point, point)
        scalar >>= 1
    return result


def _lift_x(x: int) -> _Point:
    if x >= _P:
        return None
    c = (pow(x, 3, _P) + 7) % _P
    y = pow(c, (_P + 1) // 4, _P)
    if y * y % _P != c:
        return None
    return x, y if y % 2 == 0 else _P - y


def _tagged_hash(tag: str, data: bytes) -> bytes:
    tag_hash = hashlib.sha256(tag.encode()).digest()
    return hashlib.sha256(tag_hash + tag_hash + data).digest()


def _xbytes(point: tuple[int, int]) -> bytes:
    return point[0].to_bytes(32, "big")


def _schnorr_verify(pubkey: bytes, msg: bytes, sig: bytes) -> bool:
    if len(pubkey) != 32 or len(msg) != 32 or len(sig) != 64:
        return False
    p = _lift_x(int.from_bytes(pubkey, "big"))
    r = int.from_bytes(sig[:32], "big")
    s = int.from_bytes(sig[32:], "big")
    if p is None or r >= _P or s >= _N:
        return False
    e = int.from_bytes(
        _tagged_hash("BIP0340/challenge", sig[:32] + pubkey + msg), "big"
    ) % _N
    big_r = _point_add(_point_mul(_G, s), _point_mul(p, _N - e))
    return big_r is not None and big_r[1] % 2 == 0 and big_r[0] == r


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class NostrIdentity:
    """A secp256k1 key used to sign Nostr events."""

    def __init__(self, secret: int) -> None:
        if not 0 < secret < _N:
            raise ValueError("secret key out of range")
        point = _point_mul(_G, secret)
        assert point is not None
        self._point = point
        self._secret = secret if point[1] % 2 == 0 else _N - secret
        self._pubkey = _xbytes(point)

    @classmethod
    def generate(cls) -> NostrIdentity:
        """Create an identity from a fresh random key."""
        return cls(secrets.randbelow(_N - 1) + 1)

    @classmethod
    def from_secret(cls, secret: bytes) -> NostrIdentity:
        """Create an identity from a 32-byte secret key."""
        if len(secret) != 32:
            raise ValueError(f"secret key must be 32 bytes, got {len(secret)}")
        return cls(int.from_bytes(secret, "big"))

    def pubkey_hex(self) -> str:
        """The x-only public key as 64 lowercase hex characters."""
        return self._pubkey.hex()

    def sign_digest(self, digest: bytes) -> bytes:
        """BIP-340 Schnorr signature over a 32-byte digest, with zero auxiliary randomness."""
        if len(digest) != 32:
            raise ValueError(f"digest must be 32 bytes, got {len(digest)}")
        key = self._secret.to_bytes(32, "big")
        mask = _tagged_hash("BIP0340/aux", bytes(32))
        t = bytes(a ^ b for a, b in zip(key, mask))
        k0 = int.from_bytes(
            _tagged_hash("BIP0340/nonce", t + self._pubkey + digest), "big"
        ) % _N
        if k0 == 0:
            raise ValueError("derived nonce is zero")
        r = _point_mul(_G, k0)
        assert r is not None
        k = k0 if r[1] % 2 == 0 else _N - k0
        e = int.from_bytes(
            _tagged_hash("BIP0340/challenge", _xbytes(r) + self._pubkey + digest),
            "big",
        ) % _N
        return _xbytes(r) + ((k + e * self._secret) % _N).to_bytes(32, "big")


@dataclass(frozen=True)
class NostrEvent:
    """A signed NIP-01 event."""

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: list[list[str]] = field(default_factory=list)
    content: str = ""
    sig: str = ""

    def to_dict(self) -> dict[str, Any]:
        """The event as its JSON object."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NostrEvent:
        """Parse an event object; raises ``DecodeError`` on a malformed one."""
        if not isinstance(data, Mapping):
            raise DecodeError("event must be an object")

        def get(name: str) -> Any:
            if name not in data:
                raise DecodeError(f"missing field {name!r}")
            return data[name]

        def text(name: str) -> str:
            value = get(name)
            if not isinstance(value, str):
                raise DecodeError(f"field {name!r} must be a string")
            return value

        def integer(name: str, limit: int) -> int:
            value = get(name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise DecodeError(f"field {name!r} must be an integer")
            if not 0 <= value <= limit:
                raise DecodeError(f"field {name!r} out of range: {value}")
            return value

        raw_tags = get("tags")
        if not isinstance(raw_tags, list) or not all(
            isinstance(tag, list) and all(isinstance(s, str) for s in tag)
            for tag in raw_tags
        ):
            raise DecodeError("field 'tags' must be a list of string lists")
        return cls(
            id=text("id"),
            pubkey=text("pubkey"),
            created_at=integer("created_at", _U64_MAX),
            kind=integer("kind", _U16_MAX),
            tags=[list(tag) for tag in raw_tags],
            content=text("content"),
            sig=text("sig"),
        )


def _event_id(
    pubkey: str, created_at: int, kind: int, tags: Sequence[Sequence[str]], content: str
) -> bytes:
    payload = [0, pubkey, created_at, kind, [list(t) for t in tags], content]
    return hashlib.sha256(_compact_json(payload).encode("utf-8")).digest()


def make_event(
    identity: NostrIdentity,
    kind: int,
    tags: Sequence[Sequence[str]],
    content: str,
    created_at: int,
) -> NostrEvent:
    """Build and sign a fresh event."""
    if not 0 <= kind <= _U16_MAX:
        raise ValueError(f"kind out of range: {kind}")
    if not 0 <= created_at <= _U64_MAX:
        raise ValueError(f"created_at out of range: {created_at}")
    pubkey = identity.pubkey_hex()
    tag_list = [list(t) for t in tags]
    digest = _event_id(pubkey, created_at, kind, tag_list, content)
    return NostrEvent(
        id=digest.hex(),
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        tags=tag_list,
        content=content,
        sig=identity.sign_digest(digest).hex(),
    )


def verify_event(event: NostrEvent) -> bool:
    """True when the event's id matches its content and its signature is valid."""
    digest = _event_id(
        event.pubkey, event.created_at, event.kind, event.tags, event.content
    )
    if digest.hex() != event.id.lower():
        return False
    try:
        pubkey = bytes.fromhex(event.pubkey)
        sig = bytes.fromhex(event.sig)
    except ValueError:
        return False
    return _schnorr_verify(pubkey, digest, sig)


def now_secs() -> int:
    """Current Unix time in whole seconds."""
    return max(0, int(time.time()))