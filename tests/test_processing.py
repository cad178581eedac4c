"""Tests for row building and sorting."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from outdated_plus.models import BumpType, OutdatedEntry, PackageMeta
from outdated_plus.processing import build_rows, sort_rows


NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def iso_days_ago(days: int) -> str:
    return (NOW - timedelta(days=days)).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def sample_inputs():
    outdated = {"a": OutdatedEntry(current="1.0.0", wanted="1.1.0", latest="2.0.0")}
    metas = {
        "a": PackageMeta(
            latest="2.0.0",
            time_map={"1.1.0": iso_days_ago(30), "2.0.0": iso_days_ago(16)},
        )
    }
    return outdated, metas


def test_build_rows_end_to_end():
    outdated, metas = sample_inputs()

    rows = build_rows(outdated, metas, show_all=False, cutoff_days=20, skip_entries=[], now=NOW)

    assert len(rows) == 1
    row = rows[0]
    assert row.package == "a"
    assert row.to_wanted is BumpType.MINOR
    assert row.to_latest is BumpType.MAJOR
    assert row.age_wanted == "30"
    assert row.age_latest == "16"
    assert row.age_wanted_days == 30
    assert row.published_latest_ms == int((NOW - timedelta(days=16)).timestamp() * 1000)


def test_build_rows_cutoff_filters_everything():
    outdated, metas = sample_inputs()

    rows = build_rows(outdated, metas, show_all=False, cutoff_days=50, skip_entries=[], now=NOW)

    assert rows == []


def test_show_all_keeps_rows_below_cutoff_and_unknown_ages():
    outdated, metas = sample_inputs()
    outdated["b"] = OutdatedEntry("1.0.0", "1.0.1", "1.0.1")

    rows = build_rows(outdated, metas, show_all=True, cutoff_days=50, skip_entries=[], now=NOW)

    assert [r.package for r in rows] == ["a", "b"]
    unknown = rows[1]
    assert unknown.age_latest == "-"
    assert unknown.published_latest == "-"
    assert unknown.published_latest_ms == 0
    assert math.isinf(unknown.age_latest_days)


def test_unknown_ages_never_meet_cutoff():
    outdated = {"b": OutdatedEntry("1.0.0", "1.0.1", "1.0.1")}

    rows = build_rows(outdated, {}, show_all=False, cutoff_days=0, skip_entries=[], now=NOW)

    assert rows == []


def test_detector_latest_takes_priority_over_registry():
    outdated = {"a": OutdatedEntry("1.0.0", "1.0.0", "1.5.0")}
    metas = {"a": PackageMeta(latest="2.0.0", time_map={"1.5.0": iso_days_ago(10)})}

    rows = build_rows(outdated, metas, show_all=True, cutoff_days=0, skip_entries=[], now=NOW)

    assert rows[0].latest == "1.5.0"
    assert rows[0].age_latest == "10"


def test_registry_latest_used_when_detector_empty():
    outdated = {"a": OutdatedEntry("1.0.0", "1.0.0", "")}
    metas = {"a": PackageMeta(latest="2.0.0", time_map={"2.0.0": iso_days_ago(10)})}

    rows = build_rows(outdated, metas, show_all=True, cutoff_days=0, skip_entries=[], now=NOW)

    assert rows[0].latest == "2.0.0"
    assert rows[0].to_latest is BumpType.MAJOR


def test_drops_rows_where_all_versions_agree():
    outdated = {
        "same": OutdatedEntry("1.0.0", "1.0.0", "1.0.0"),
        "empty": OutdatedEntry("", "", ""),
    }

    rows = build_rows(outdated, {}, show_all=True, cutoff_days=0, skip_entries=[], now=NOW)

    assert [r.package for r in rows] == ["empty"]
    assert rows[0].to_wanted is BumpType.UNKNOWN
    assert rows[0].to_latest is BumpType.UNKNOWN


def test_future_timestamps_have_zero_age():
    outdated = {"a": OutdatedEntry("1.0.0", "1.1.0", "1.1.0")}
    future = (NOW + timedelta(days=3)).isoformat()
    metas = {"a": PackageMeta(latest="1.1.0", time_map={"1.1.0": future})}

    rows = build_rows(outdated, metas, show_all=False, cutoff_days=0, skip_entries=[], now=NOW)

    assert rows[0].age_wanted == "0"
    assert rows[0].age_latest == "0"


def test_skip_entries_drop_rows():
    outdated, metas = sample_inputs()
    outdated["b"] = OutdatedEntry("1.0.0", "1.0.0", "2.0.0")
    metas["b"] = PackageMeta(latest="2.0.0", time_map={"2.0.0": iso_days_ago(100)})

    rows = build_rows(outdated, metas, show_all=True, cutoff_days=0, skip_entries=["a", "b@2.0.0"], now=NOW)

    assert rows == []


def test_iso_formatting():
    outdated, metas = sample_inputs()

    rows = build_rows(outdated, metas, show_all=True, cutoff_days=0, skip_entries=[], use_iso=True, now=NOW)

    assert rows[0].published_latest == "2024-02-14T12:00Z"


def make_rows():
    outdated = {
        "Beta": OutdatedEntry("1.0.0", "1.0.1", "3.0.0"),
        "alpha": OutdatedEntry("2.0.0", "2.1.0", "2.1.0"),
        "gamma": OutdatedEntry("0.1.0", "0.1.0", "1.0.0"),
        "delta": OutdatedEntry("0.1.0", "0.2.0", "1.0.0"),
    }
    metas = {
        "Beta": PackageMeta("3.0.0", {"1.0.1": iso_days_ago(200), "3.0.0": iso_days_ago(5)}),
        "alpha": PackageMeta("2.1.0", {"2.1.0": iso_days_ago(40)}),
        "gamma": PackageMeta("1.0.0", {"1.0.0": iso_days_ago(40)}),
        "delta": PackageMeta("1.0.0", {}),
    }
    return build_rows(outdated, metas, show_all=True, cutoff_days=0, skip_entries=[], now=NOW)


def test_sort_by_name_is_case_insensitive():
    rows = make_rows()

    ordered = sort_rows(rows, "name", "asc")

    assert [r.package for r in ordered] == ["alpha", "Beta", "delta", "gamma"]


def test_sort_by_age_latest_desc_puts_unknown_first():
    ordered = sort_rows(make_rows(), "age_latest", "desc")

    assert [r.package for r in ordered] == ["delta", "alpha", "gamma", "Beta"]


def test_sort_is_stable_for_ties_in_both_directions():
    rows = make_rows()

    asc = sort_rows(rows, "published_latest", "asc")
    desc = sort_rows(rows, "published_latest", "desc")

    assert [r.package for r in asc] == ["delta", "alpha", "gamma", "Beta"]
    assert [r.package for r in desc] == ["Beta", "alpha", "gamma", "delta"]


def test_unknown_sort_key_falls_back_to_published_latest():
    rows = make_rows()

    assert sort_rows(rows, "bogus", "desc") == sort_rows(rows, "published_latest", "desc")


@pytest.mark.parametrize(
    "key", ["name", "age_latest", "age_wanted", "published_latest", "published_wanted", "current", "wanted", "latest"]
)
def test_sort_does_not_mutate_input(key):
    rows = make_rows()
    snapshot = list(rows)

    result = sort_rows(rows, key, "desc")

    assert rows == snapshot
    assert result is not rows
    assert len(result) == len(rows)
