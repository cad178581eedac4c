"""
Interfaces for the outdated detector and the metadata source.
"""

from __future__ import annotations

from typing import Dict, Protocol

from .models import OutdatedEntry, PackageMeta


class OutdatedDetector(Protocol):
    """Report the packages of a project that have newer versions."""

    def outdated(self, check_all: bool = False) -> Dict[str, OutdatedEntry]:
        ...


class MetadataSource(Protocol):
    """Fetch the latest version and publication times for a package."""

    def fetch(self, package_name: str) -> PackageMeta:
        ...
