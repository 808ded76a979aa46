"""Fixed-width text rendering of a completed RunStats."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .classifier import OPERATIONS
from .percentiles import (
    DEFAULT_PERCENTILES,
    compute_percentiles,
    is_small_sample,
    normalize_percentiles,
    percentile_label,
)
from .run_stats import RunStats, TimeBounds
from .tally import TallyBucket, TotalsBucket
from .utils import address_sort_key, format_duration, format_timestamp

COLUMN_WIDTH = 7
SMALL_SAMPLE_MARKER = "*"

Row = Tuple[Sequence[object], str]


@dataclass
class ReportOptions:
    summary: bool = True
    hosts: bool = True
    queues: bool = True
    sizes: bool = False
    percentiles: List[float] = field(default_factory=lambda: list(DEFAULT_PERCENTILES))
    resolve_names: bool = False

    def __post_init__(self) -> None:
        self.percentiles = normalize_percentiles(self.percentiles)


def format_table(headers: Sequence[str], rows: Sequence[Row], label_header: str) -> List[str]:
    """Render right-aligned numeric columns followed by a free-width label."""
    label_width = max([len(label_header)] + [len(label) for _, label in rows])
    lines = [" ".join([f"{header:>{COLUMN_WIDTH}}" for header in headers] + [label_header])]
    lines.append(" ".join(["-" * COLUMN_WIDTH] * len(headers) + ["-" * label_width]))
    for values, label in rows:
        lines.append(" ".join([f"{value:>{COLUMN_WIDTH}}" for value in values] + [label]))
    return lines


def _operation_headers() -> List[str]:
    return [operation.value for operation in OPERATIONS]


def _bounds_line(title: str, bounds: TimeBounds) -> str:
    return (
        f"{title}: {format_timestamp(bounds.first)} -> {format_timestamp(bounds.last)}"
        f" ({format_duration(bounds.first, bounds.last)})"
    )


def _summary_section(totals: TotalsBucket) -> List[str]:
    rows = [
        ([totals.row(name)[operation] for operation in OPERATIONS], name)
        for name in TotalsBucket.ROWS
    ]
    return format_table(_operation_headers(), rows, "packets")


def _tally_section(
    bucket: TallyBucket,
    label_header: str,
    display: Callable[[str], str] = str,
    sort_key: Optional[Callable[[str], Any]] = None,
) -> List[str]:
    rows = []
    for key in bucket.keys(sort_key):
        counts = bucket.counts_for(key)
        rows.append(([counts[operation] for operation in OPERATIONS], display(key)))
    return format_table(_operation_headers(), rows, label_header)


def _sizes_section(stats: RunStats, percentiles: Sequence[float]) -> List[str]:
    rows = []
    for queue in sorted(stats.sizes):
        samples = stats.sizes[queue]
        label = queue + (SMALL_SAMPLE_MARKER if is_small_sample(samples) else "")
        rows.append(([len(samples)] + compute_percentiles(samples, percentiles), label))

    headers = ["count"] + [percentile_label(p) for p in percentiles]
    lines = format_table(headers, rows, "enqueue size (bytes)")

    small = stats.small_sample_queues()
    if small:
        lines.append("")
        lines.append(
            f"{SMALL_SAMPLE_MARKER} fewer than 100 samples, percentiles are approximate: "
            + ", ".join(small)
        )
    failures = stats.sorted_parse_failures()
    if failures:
        lines.append("")
        lines.append("warning: could not parse set size for queues: " + ", ".join(failures))
    return lines


def format_report(
    stats: RunStats,
    options: Optional[ReportOptions] = None,
    resolver: Optional[Callable[[str], str]] = None,
) -> str:
    options = options or ReportOptions()
    lines = [f"=== {stats.host} ==="]
    lines.append(
        f"packets: {stats.count_total} seen, {stats.count_with_data} with data, "
        f"{stats.count_filtered} filtered, {stats.count_matched} matched"
    )
    if stats.count_matched == 0:
        return "\n".join(lines) + "\n"

    lines.append(_bounds_line("capture", stats.seen))
    lines.append(_bounds_line("matched", stats.matched_seen))

    sections: List[List[str]] = []
    if options.summary:
        sections.append(_summary_section(stats.totals))
    if options.hosts:
        display = resolver if (options.resolve_names and resolver is not None) else str
        sections.append(_tally_section(stats.by_host, "source host", display, address_sort_key))
    if options.queues:
        sections.append(_tally_section(stats.by_queue, "queue"))
    if options.sizes:
        sections.append(_sizes_section(stats, options.percentiles))

    for section in sections:
        lines.append("")
        lines.extend(section)
    return "\n".join(lines) + "\n"


__all__ = ["COLUMN_WIDTH", "SMALL_SAMPLE_MARKER", "ReportOptions", "format_table", "format_report"]
