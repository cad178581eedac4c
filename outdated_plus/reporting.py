"""
Reporting and export utilities.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pandas as pd
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TaskProgressColumn
from rich.table import Table

from .constants import AGE_THRESHOLD_RED, AGE_THRESHOLD_YELLOW
from .models import BumpType, Row


logger = logging.getLogger(__name__)

EXPORT_SUFFIXES = (".csv", ".json", ".xlsx")

_BUMP_STYLES = {
    BumpType.MAJOR: "red",
    BumpType.MINOR: "yellow",
    BumpType.PATCH: "green",
    BumpType.PRERELEASE: "cyan",
    BumpType.SAME: "bright_black",
}


@dataclass(frozen=True)
class RenderOptions:
    """Explicit rendering switches resolved once by the CLI."""

    color: bool = False
    show_wanted_only: bool = False


@dataclass(frozen=True)
class Column:
    header: str
    value: Callable[[Row], str]
    kind: str = "text"
    justify: str = "left"


_WANTED_COLUMNS = [
    Column("Wanted", lambda r: r.wanted),
    Column("To Wanted", lambda r: r.to_wanted.value, kind="bump"),
]
_LATEST_COLUMNS = [
    Column("Latest", lambda r: r.latest),
    Column("To Latest", lambda r: r.to_latest.value, kind="bump"),
]
_WANTED_DATES = [
    Column("Published (Wanted)", lambda r: r.published_wanted),
    Column("Age(d) (Wanted)", lambda r: r.age_wanted, kind="age", justify="right"),
]
_LATEST_DATES = [
    Column("Published (Latest)", lambda r: r.published_latest),
    Column("Age(d) (Latest)", lambda r: r.age_latest, kind="age", justify="right"),
]


def columns_for(options: RenderOptions) -> List[Column]:
    head = [Column("Package", lambda r: r.package), Column("Current", lambda r: r.current)]
    if options.show_wanted_only:
        return head + _WANTED_COLUMNS + _WANTED_DATES
    return head + _WANTED_COLUMNS + _LATEST_COLUMNS + _WANTED_DATES + _LATEST_DATES


def color_bump(bump: BumpType, color: bool) -> str:
    """Wrap a bump label in rich markup when colour is enabled."""
    style = _BUMP_STYLES.get(bump)
    if not color or style is None:
        return bump.value
    return f"[{style}]{bump.value}[/{style}]"


def color_age(age: Optional[int], color: bool) -> str:
    if age is None:
        return "-"
    text = str(age)
    if not color:
        return text
    if age > AGE_THRESHOLD_RED:
        style = "red"
    elif age > AGE_THRESHOLD_YELLOW:
        style = "yellow"
    else:
        style = "green"
    return f"[{style}]{text}[/{style}]"


def _styled_cell(column: Column, row: Row, color: bool) -> str:
    value = column.value(row)
    if column.kind == "bump":
        return color_bump(BumpType(value), color)
    if column.kind == "age":
        return color_age(None if value == "-" else int(value), color)
    return escape(value)


def render_plain(rows: Sequence[Row], options: RenderOptions, console: Console) -> None:
    """Print rows as an aligned terminal table."""
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    columns = columns_for(options)
    for column in columns:
        table.add_column(column.header, justify=column.justify, no_wrap=True)
    for row in rows:
        table.add_row(*(_styled_cell(column, row, options.color) for column in columns))
    console.print(table)


def render_tsv(rows: Sequence[Row], options: RenderOptions) -> str:
    columns = columns_for(options)
    lines = ["\t".join(c.header for c in columns)]
    for row in rows:
        lines.append("\t".join(c.value(row) for c in columns))
    return "\n".join(lines)


def render_markdown(rows: Sequence[Row], options: RenderOptions) -> str:
    columns = columns_for(options)
    lines = [
        "| " + " | ".join(c.header for c in columns) + " |",
        "| " + " | ".join("---" for _ in columns) + " |",
    ]
    for row in rows:
        lines.append("| " + " | ".join(c.value(row) for c in columns) + " |")
    return "\n".join(lines)


def rows_to_frame(rows: Sequence[Row], options: Optional[RenderOptions] = None) -> pd.DataFrame:
    columns = columns_for(options or RenderOptions())
    records = [{c.header: c.value(row) for c in columns} for row in rows]
    return pd.DataFrame(records, columns=[c.header for c in columns])


def export_rows(rows: Sequence[Row], path: Path, options: Optional[RenderOptions] = None) -> Path:
    """Write rows to ``.csv``, ``.json`` or ``.xlsx`` depending on the suffix."""
    suffix = path.suffix.lower()
    if suffix not in EXPORT_SUFFIXES:
        raise ValueError(f"Unsupported export format: {path.suffix or path.name}")

    path.parent.mkdir(parents=True, exist_ok=True)
    df = rows_to_frame(rows, options)
    if suffix == ".csv":
        df.to_csv(path, index=False)
    elif suffix == ".json":
        df.to_json(path, orient="records", indent=2)
    else:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="outdated", index=False)
    logger.info("Exported %d rows to %s", len(rows), path)
    return path


class ProgressReporter:
    """Progress bar on stderr for metadata fetching."""

    def __init__(self, total: int, enabled: Optional[bool] = None) -> None:
        self.total = total
        self.enabled = sys.stderr.isatty() if enabled is None else enabled
        self.completed = 0
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def __enter__(self) -> "ProgressReporter":
        if self.enabled:
            self._progress = Progress(
                BarColumn(bar_width=40),
                TaskProgressColumn(),
                MofNCompleteColumn(),
                console=Console(stderr=True),
                transient=True,
            )
            self._progress.start()
            self._task = self._progress.add_task("fetch", total=self.total)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    def advance(self, _item: Optional[str] = None) -> None:
        self.completed += 1
        if self._progress is not None and self._task is not None:
            self._progress.advance(self._task)
