"""
SemVer 2.0.0 parsing, precedence and bump classification.
"""

from __future__ import annotations

import re
from enum import IntEnum
from functools import cmp_to_key
from typing import Iterable, List, Optional, Sequence

from .errors import VersionParseError
from .models import BumpType, VersionTuple


_SEMVER_RE = re.compile(
    r"[v=]*([0-9]+)\.([0-9]+)\.([0-9]+)"
    r"(?:-([0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?"
)
_NUMERIC_RE = re.compile(r"[0-9]+")


class Precedence(IntEnum):
    LOWER = -1
    EQUAL = 0
    HIGHER = 1


def parse_version(version: str) -> VersionTuple:
    """Parse a version string into its numeric and prerelease parts.

    Leading ``v``/``=`` markers and ``+build`` metadata are discarded.

    Raises:
        VersionParseError: If the string is not ``major.minor.patch[-pre]``.
    """
    match = _SEMVER_RE.fullmatch(version or "")
    if match is None:
        raise VersionParseError(version)
    major, minor, patch, pre = match.groups()
    prerelease = tuple(pre.split(".")) if pre else ()
    return VersionTuple(int(major), int(minor), int(patch), prerelease)


def try_parse_version(version: str) -> Optional[VersionTuple]:
    """Like :func:`parse_version` but returns ``None`` on failure."""
    try:
        return parse_version(version)
    except VersionParseError:
        return None


def compare_prerelease(pre1: Sequence[str], pre2: Sequence[str]) -> int:
    """Compare two prerelease identifier sequences (-1, 0 or 1).

    An empty sequence is a released version and outranks any prerelease.
    Numeric identifiers compare as integers and rank below alphanumeric
    ones; alphanumeric identifiers compare by ASCII code point. When one
    sequence is a prefix of the other, the longer one wins.
    """
    if not pre1 and not pre2:
        return 0
    if not pre1:
        return 1
    if not pre2:
        return -1

    for id1, id2 in zip(pre1, pre2):
        num1 = _NUMERIC_RE.fullmatch(id1) is not None
        num2 = _NUMERIC_RE.fullmatch(id2) is not None
        if num1 and num2:
            n1, n2 = int(id1), int(id2)
            if n1 != n2:
                return -1 if n1 < n2 else 1
            continue
        if num1:
            return -1
        if num2:
            return 1
        if id1 != id2:
            return -1 if id1 < id2 else 1

    if len(pre1) == len(pre2):
        return 0
    return -1 if len(pre1) < len(pre2) else 1


def compare_precedence(a: VersionTuple, b: VersionTuple) -> Precedence:
    """Order two parsed versions by SemVer precedence."""
    for left, right in zip(a[:3], b[:3]):
        if left != right:
            return Precedence.LOWER if left < right else Precedence.HIGHER
    return Precedence(compare_prerelease(a.prerelease, b.prerelease))


def is_higher(version1: str, version2: str) -> bool:
    """Return True if ``version1`` strictly outranks ``version2``.

    Unparseable input on either side yields False.
    """
    v1 = try_parse_version(version1)
    v2 = try_parse_version(version2)
    if v1 is None or v2 is None:
        return False
    return compare_precedence(v1, v2) is Precedence.HIGHER


def classify_bump(from_version: str, to_version: str) -> BumpType:
    """Name the most significant component that changes between versions."""
    a = try_parse_version(from_version)
    b = try_parse_version(to_version)
    if a is None or b is None:
        return BumpType.UNKNOWN
    if a[:3] == b[:3]:
        if ".".join(a.prerelease) == ".".join(b.prerelease):
            return BumpType.SAME
        return BumpType.PRERELEASE
    if a.major != b.major:
        return BumpType.MAJOR
    if a.minor != b.minor:
        return BumpType.MINOR
    return BumpType.PATCH


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Sort version strings by precedence, dropping unparseable ones."""
    parsed = [(v, try_parse_version(v)) for v in versions]
    valid = [(v, p) for v, p in parsed if p is not None]
    key = cmp_to_key(lambda x, y: int(compare_precedence(x[1], y[1])))
    return [v for v, _ in sorted(valid, key=key)]
