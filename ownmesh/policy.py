"""Apply-policy gate deciding whether a version bump may apply automatically.

Versions compare semver-style as ``MAJOR.MINOR.PATCH``. A pre-release
suffix after the first ``-`` is split off before the numeric
comparison and then used as a lexicographic tiebreaker; a release
without a suffix outranks one with a suffix.
"""

from __future__ import annotations

import enum

_U32_MAX = 0xFFFFFFFF


class ApplyPolicy(enum.Enum):
    """Which version bumps may apply without user confirmation."""

    PATCH = "patch"
    MINOR = "minor"
    ALL = "all"
    NONE = "none"

    @classmethod
    def parse(cls, s: str) -> ApplyPolicy | None:
        """Parse a config string; unknown values give ``None``."""
        try:
            return cls(s)
        except ValueError:
            return None


def _split_prerelease(version: str) -> tuple[str, str]:
    core, _, pre = version.partition("-")
    return core, pre


def _parse_component(part: str) -> int:
    digits = part[1:] if part.startswith("+") else part
    if not digits or not (digits.isascii() and digits.isdigit()):
        return 0
    value = int(digits)
    return value if value <= _U32_MAX else 0


def _parse_core(core: str) -> tuple[int, int, int]:
    parts = [_parse_component(p) for p in core.split(".")[:3]]
    parts.extend([0] * (3 - len(parts)))
    return parts[0], parts[1], parts[2]


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def compare_semver(a: str, b: str) -> int:
    """Return -1, 0 or 1 as ``a`` is older than, equal to or newer than ``b``."""
    a_core, a_pre = _split_prerelease(a)
    b_core, b_pre = _split_prerelease(b)
    order = _cmp(_parse_core(a_core), _parse_core(b_core))
    if order != 0:
        return order
    if not a_pre and b_pre:
        return 1
    if a_pre and not b_pre:
        return -1
    return _cmp(a_pre, b_pre)


def policy_allows(policy: ApplyPolicy, current: str, candidate: str) -> bool:
    """True when ``candidate`` may replace ``current`` under ``policy``.

    Equal and older candidates are never allowed.
    """
    if compare_semver(candidate, current) != 1:
        return False
    cur_major, cur_minor, _ = _parse_core(_split_prerelease(current)[0])
    cand_major, cand_minor, _ = _parse_core(_split_prerelease(candidate)[0])
    if policy is ApplyPolicy.NONE:
        return False
    if policy is ApplyPolicy.PATCH:
        return cur_major == cand_major and cur_minor == cand_minor
    if policy is ApplyPolicy.MINOR:
        return cur_major == cand_major
    return True