"""Built-in Nostr relay pool and the hostname denylist applied to it."""

from __future__ import annotations

from collections.abc import Iterable

_DEFAULT_RELAY_HOSTS = """
    nos.lol relay.damus.io relay.nostr.band nostr.mom relay.snort.social
    relay.primal.net nostr-pub.wellorder.net relay.nostr.bg nostr.wine offchain.pub
""".split()

DEFAULT_RELAY_URLS: tuple[str, ...] = tuple(f"wss://{host}" for host in _DEFAULT_RELAY_HOSTS)
"""Default relay URLs. Order is only a stable input to the per-app shuffle."""

# The first host drops subscriptions under load; the second accepts
# events without passing them on to other subscribers.
DEFAULT_DENYLIST: tuple[str, ...] = ("relay.damus.io", "chorus.pjv.me")
"""Hostnames always excluded from the relay pool (matched case-insensitively)."""

_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)


def _ascii_lower(text: str) -> str:
    return text.translate(_ASCII_LOWER)


def extract_host(url: str) -> str:
    """Return the hostname of a ``wss://`` or ``ws://`` URL, without port or path.

    A string without a scheme is treated as starting with the host.
    """
    for scheme in ("wss://", "ws://"):
        if url.startswith(scheme):
            url = url[len(scheme):]
            break
    host = url.split("/", 1)[0]
    return host.split(":", 1)[0]


def is_denied(url: str, extra: Iterable[str] = ()) -> bool:
    """True when the URL's host matches the default denylist or ``extra``."""
    host = _ascii_lower(extract_host(url))
    if any(_ascii_lower(entry) == host for entry in DEFAULT_DENYLIST):
        return True
    return any(_ascii_lower(entry) == host for entry in extra)