"""Room-handle derivation: the opaque wire identifier peers meet on.

The handle is the lowercase hex SHA-256 of ``app_id + ":" + network_id``.
Different app ids give unrelated handles, isolating deployments.
"""

from __future__ import annotations

import hashlib


def derive_room_handle(app_id: str, network_id: str) -> str:
    """Return the 64-character hex room handle for ``(app_id, network_id)``."""
    digest = hashlib.sha256()
    digest.update(app_id.encode("utf-8"))
    digest.update(b":")
    digest.update(network_id.encode("utf-8"))
    return digest.hexdigest()