"""
Core data models for outdated package reports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple


class BumpType(str, Enum):
    """Severity of the change between two versions."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    PRERELEASE = "prerelease"
    SAME = "same"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


class VersionTuple(NamedTuple):
    """Parsed ``major.minor.patch[-prerelease]`` version."""

    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            return f"{base}-{'.'.join(self.prerelease)}"
        return base


@dataclass(frozen=True)
class OutdatedEntry:
    """One package as reported by ``npm outdated``."""

    current: str
    wanted: str
    latest: str


@dataclass(frozen=True)
class PackageMeta:
    """Registry metadata needed to date a package's versions."""

    latest: str
    time_map: Dict[str, str] = field(default_factory=dict)


META_FALLBACK = PackageMeta(latest="", time_map={})


@dataclass(frozen=True)
class SkipEntry:
    """A skip-list rule, optionally pinned to one version."""

    package: str
    version: Optional[str] = None

    def __str__(self) -> str:
        if self.version is None:
            return self.package
        return f"{self.package}@{self.version}"


@dataclass(frozen=True)
class Row:
    """A display-ready report row plus the raw values used for sorting."""

    package: str
    current: str
    wanted: str
    to_wanted: BumpType
    latest: str
    to_latest: BumpType
    published_wanted: str
    age_wanted: str
    published_latest: str
    age_latest: str
    sort_name: str
    published_wanted_ms: int
    published_latest_ms: int
    age_wanted_days: float
    age_latest_days: float
    latest_raw: str
