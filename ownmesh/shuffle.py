"""Deterministic relay selection shared by every peer of an app.

Relays are ordered by ``(sha256(app_id + ":" + url), url)`` and the
first ``redundancy`` are taken, so all peers with the same app id and
pool arrive at the same relays without coordination.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable


def _score(app_id: str, url: str) -> str:
    return hashlib.sha256(f"{app_id}:{url}".encode("utf-8")).hexdigest()


def select_top_n(app_id: str, pool: Iterable[str], redundancy: int) -> list[str]:
    """Return the top ``redundancy`` relays of ``pool`` for ``app_id``.

    Empty when the pool is empty or ``redundancy`` is zero.
    """
    if redundancy < 0:
        raise ValueError(f"redundancy must be non-negative, got {redundancy}")
    urls = list(pool)
    if not urls or redundancy == 0:
        return []
    ranked = sorted(urls, key=lambda url: (_score(app_id, url), url))
    return ranked[:redundancy]