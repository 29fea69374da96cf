"""Short human-readable verification codes for out-of-band handshake checks.

A code is six characters drawn from ``[a-z0-9]``. It is not what
authenticates a peer; it is the eyeball check a user reads aloud to
confirm both sides see the same handshake.
"""

import secrets
import string

ALPHABET = string.ascii_lowercase + string.digits

VERIFICATION_CODE_LEN = 6
"""Length of every verification code emitted."""

_ALLOWED = frozenset(ALPHABET)


def generate_code() -> str:
    """Return a fresh code drawn from OS randomness."""
    return "".join(secrets.choice(ALPHABET) for _ in range(VERIFICATION_CODE_LEN))


def is_well_formed(code: str) -> bool:
    """True when ``code`` is exactly six lowercase ASCII letters or digits."""
    return len(code) == VERIFICATION_CODE_LEN and all(c in _ALLOWED for c in code)