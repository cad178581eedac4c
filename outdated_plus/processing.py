"""
Turn outdated entries plus registry metadata into sorted report rows.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

from .constants import DEFAULT_SORT_KEY
from .models import META_FALLBACK, BumpType, OutdatedEntry, PackageMeta, Row
from .semver import classify_bump
from .skip import should_skip
from .time_utils import days_ago, format_time, parse_timestamp_ms, to_epoch_ms


logger = logging.getLogger(__name__)

SortValue = Union[int, float, str]

_SORT_FIELDS: Dict[str, Callable[[Row], SortValue]] = {
    "name": lambda r: r.sort_name,
    "age_latest": lambda r: r.age_latest_days,
    "age_wanted": lambda r: r.age_wanted_days,
    "published_latest": lambda r: r.published_latest_ms,
    "published_wanted": lambda r: r.published_wanted_ms,
    "current": lambda r: r.current,
    "wanted": lambda r: r.wanted,
    "latest": lambda r: r.latest_raw,
}


def build_rows(
    outdated: Mapping[str, OutdatedEntry],
    metas: Mapping[str, PackageMeta],
    show_all: bool,
    cutoff_days: int,
    skip_entries: Sequence[str],
    use_iso: bool = False,
    now: Optional[datetime] = None,
) -> List[Row]:
    """Build report rows for outdated packages.

    Args:
        outdated: Package name to ``npm outdated`` entry, in report order.
        metas: Package name to registry metadata; missing names use the
            empty fallback.
        show_all: Keep rows regardless of age.
        cutoff_days: Minimum age (days) of the wanted or latest release.
        skip_entries: Raw ``name`` / ``name@version`` skip tokens.
        use_iso: Format publication times as ISO 8601 UTC.
        now: Reference time for ages, defaults to the current time.

    Returns:
        One row per package that survives skipping and age filtering.
    """
    now_ms = to_epoch_ms(now or datetime.now(timezone.utc))
    rows: List[Row] = []

    for name, entry in outdated.items():
        current = entry.current or ""
        wanted = entry.wanted or ""

        if should_skip(name, current, wanted, entry.latest or "", skip_entries):
            logger.debug("Skipping %s per skip list", name)
            continue

        meta = metas.get(name, META_FALLBACK)
        latest = entry.latest or meta.latest or ""

        if current and current == wanted == latest:
            logger.debug("Dropping %s: current, wanted and latest agree", name)
            continue

        published_wanted = parse_timestamp_ms(meta.time_map.get(wanted))
        published_latest = parse_timestamp_ms(meta.time_map.get(latest))
        age_wanted = days_ago(published_wanted, now_ms)
        age_latest = days_ago(published_latest, now_ms)

        if not show_all:
            meets = any(
                age is not None and age >= cutoff_days
                for age in (age_wanted, age_latest)
            )
            if not meets:
                continue

        rows.append(Row(
            package=name,
            current=current,
            wanted=wanted,
            to_wanted=classify_bump(current, wanted) if wanted else BumpType.UNKNOWN,
            latest=latest,
            to_latest=classify_bump(current, latest) if latest else BumpType.UNKNOWN,
            published_wanted=format_time(published_wanted, use_iso),
            age_wanted="-" if age_wanted is None else str(age_wanted),
            published_latest=format_time(published_latest, use_iso),
            age_latest="-" if age_latest is None else str(age_latest),
            sort_name=name.lower(),
            published_wanted_ms=published_wanted or 0,
            published_latest_ms=published_latest or 0,
            age_wanted_days=math.inf if age_wanted is None else age_wanted,
            age_latest_days=math.inf if age_latest is None else age_latest,
            latest_raw=latest,
        ))

    return rows


def sort_rows(rows: Sequence[Row], sort_by: str, order: str) -> List[Row]:
    """Return a new list of rows ordered by ``sort_by``.

    Unknown keys sort by latest publication time. The sort is stable in
    both directions.
    """
    key = _SORT_FIELDS.get(sort_by, _SORT_FIELDS[DEFAULT_SORT_KEY])
    return sorted(rows, key=key, reverse=(order == "desc"))
