"""
Skip-list rules and their persisted configuration file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import OutdatedEntry, SkipEntry
from .semver import is_higher


logger = logging.getLogger(__name__)

DEFAULT_SKIP_REASON = "Skip entries added via command line"


class SkipFileConfig(BaseModel):
    """Contents of the ``.outdated-plus-skip`` file."""

    model_config = ConfigDict(populate_by_name=True)

    packages: List[str] = Field(default_factory=list)
    reason: Optional[str] = None
    auto_cleanup: bool = Field(default=True, alias="autoCleanup")


def parse_skip_entry(entry: str) -> SkipEntry:
    """Split ``name`` or ``name@version`` into a :class:`SkipEntry`.

    Scoped names (``@scope/pkg``) use the second ``@`` as the separator;
    other names use the last ``@`` so that names containing ``@`` still
    parse.
    """
    if entry.startswith("@"):
        at_index = entry.find("@", 1)
    else:
        at_index = entry.rfind("@")

    if at_index == -1:
        return SkipEntry(package=entry)
    return SkipEntry(package=entry[:at_index], version=entry[at_index + 1:] or None)


def should_skip(
    package_name: str,
    current: str,
    wanted: str,
    latest: str,
    skip_entries: Iterable[str],
) -> bool:
    """Decide whether a package is hidden by the skip list.

    An unversioned entry hides the package outright. A versioned entry hides
    it only while that version is the latest and ``wanted`` has not moved
    past ``current``.
    """
    for raw in skip_entries:
        entry = parse_skip_entry(raw)
        if entry.package != package_name:
            continue
        if entry.version is None:
            return True
        if entry.version == latest and wanted == current:
            return True
    return False


def _version_reached(installed: str, target: str) -> bool:
    return installed == target or is_higher(installed, target)


def _is_still_relevant(entry: SkipEntry, outdated: Mapping[str, OutdatedEntry]) -> bool:
    info = outdated.get(entry.package)
    if info is None:
        return False
    if entry.version is None:
        return True
    return not (
        _version_reached(info.current, entry.version)
        or _version_reached(info.wanted, entry.version)
    )


def cleanup_skip_entries(
    entries: Sequence[SkipEntry],
    outdated: Mapping[str, OutdatedEntry],
) -> List[SkipEntry]:
    """Drop entries for packages no longer outdated or already upgraded."""
    return [entry for entry in entries if _is_still_relevant(entry, outdated)]


def load_skip_file(path: Path) -> Optional[SkipFileConfig]:
    """Read a skip file, returning None when it is absent or unusable."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Could not read skip file %s: %s", path, e)
        return None

    try:
        return SkipFileConfig.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Ignoring invalid skip file %s: %s", path, e)
        return None


def save_skip_file(config: SkipFileConfig, path: Path) -> bool:
    """Write a skip file; failures are logged and reported as False."""
    payload = config.model_dump(by_alias=True, exclude_none=True)
    try:
        path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        logger.warning("Could not write skip file %s: %s", path, e)
        return False
    logger.debug("Saved %d skip entries to %s", len(config.packages), path)
    return True


def add_skip_entries(
    config: Optional[SkipFileConfig],
    path: Path,
    entries: Sequence[str],
) -> Optional[SkipFileConfig]:
    """Append command-line skip entries that the file does not list yet."""
    if not entries:
        return config

    if config is None:
        config = SkipFileConfig(reason=DEFAULT_SKIP_REASON, auto_cleanup=True)

    existing = set(config.packages)
    new_entries = []
    for entry in entries:
        if entry and entry not in existing:
            existing.add(entry)
            new_entries.append(entry)

    if not new_entries:
        return config

    updated = config.model_copy(update={"packages": config.packages + new_entries})
    save_skip_file(updated, path)
    return updated


def cleanup_and_save_skip_file(
    config: Optional[SkipFileConfig],
    path: Optional[Path],
    outdated: Mapping[str, OutdatedEntry],
) -> Optional[SkipFileConfig]:
    """Rewrite the skip file without stale entries when auto-cleanup is on."""
    if config is None or path is None:
        return config
    if not config.auto_cleanup:
        return config

    kept = [
        raw for raw in config.packages
        if _is_still_relevant(parse_skip_entry(raw), outdated)
    ]
    if len(kept) == len(config.packages):
        return config

    logger.info("Removing %d stale skip entries", len(config.packages) - len(kept))
    updated = config.model_copy(update={"packages": kept})
    save_skip_file(updated, path)
    return updated
