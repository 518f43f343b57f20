"""Comparison report built from two parsed traces and their alignment."""

import json
from collections import Counter
from collections.abc import Collection, Iterable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from .align import align_traces, score_rows
from .models import (
    DeleteRow,
    DiffRow,
    InsertRow,
    MatchRow,
    MismatchRow,
    ParsedTrace,
    TraceMode,
    TraceStats,
)
from .parse import parse_trace

SLOW_CALL_THRESHOLD = 0.001  # seconds
DEFAULT_TOP_CALLS = 10


@dataclass(frozen=True)
class CallDelta:
    """Per-call-name time and count in both traces."""

    name: str
    time_a: float
    time_b: float
    count_a: int
    count_b: int
    delta: float  # time_b - time_a


@dataclass(frozen=True)
class RowCounts:
    """Number of aligned rows of each kind."""

    match: int = 0
    mismatch: int = 0
    insert: int = 0
    delete: int = 0


@dataclass(frozen=True)
class DiffReport:
    """Everything a viewer needs to present the comparison of two traces."""

    name_a: str
    name_b: str
    stats_a: TraceStats
    stats_b: TraceStats
    wall_time_skew: float  # B - A
    ops_delta: int  # B - A
    score: float
    row_counts: RowCounts
    top_calls: tuple[CallDelta, ...]
    pids: tuple[int, ...]
    rows: tuple[DiffRow, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name_a": self.name_a,
            "name_b": self.name_b,
            "stats_a": self.stats_a.to_dict(),
            "stats_b": self.stats_b.to_dict(),
            "wall_time_skew": self.wall_time_skew,
            "ops_delta": self.ops_delta,
            "score": self.score,
            "row_counts": asdict(self.row_counts),
            "top_calls": [asdict(c) for c in self.top_calls],
            "pids": list(self.pids),
            "rows": [r.to_dict() for r in self.rows],
        }


def observed_pids(trace_a: ParsedTrace, trace_b: ParsedTrace) -> tuple[int, ...]:
    """Sorted union of the process ids seen in either trace."""
    return tuple(sorted(trace_a.pids | trace_b.pids))


def _is_slow(row: DiffRow) -> bool:
    durations = []
    if isinstance(row, (MatchRow, MismatchRow)):
        durations = [row.a.duration, row.b.duration]
    elif isinstance(row, DeleteRow):
        durations = [row.a.duration]
    elif isinstance(row, InsertRow):
        durations = [row.b.duration]
    return any(d > SLOW_CALL_THRESHOLD for d in durations)


def _pid_selected(row: DiffRow, pids: Collection[int]) -> bool:
    if isinstance(row, InsertRow):
        return row.b.pid in pids
    if isinstance(row, DeleteRow):
        return row.a.pid in pids
    if isinstance(row, (MatchRow, MismatchRow)):
        return row.a.pid in pids or row.b.pid in pids
    raise TypeError(f"Unknown diff row: {row!r}")


def filter_rows(
    rows: Iterable[DiffRow],
    pids: Collection[int] | None = None,
    slow_only: bool = False,
) -> list[DiffRow]:
    """Select rows by process id and, optionally, slow calls only.

    Insert rows are kept when their B-side pid is selected, delete rows when
    their A-side pid is, paired rows when either side is. ``pids=None``
    keeps every process.
    """
    selected = []
    for row in rows:
        if pids is not None and not _pid_selected(row, pids):
            continue
        if slow_only and not _is_slow(row):
            continue
        selected.append(row)
    return selected


def compare_calls(
    stats_a: TraceStats, stats_b: TraceStats, top: int = DEFAULT_TOP_CALLS
) -> list[CallDelta]:
    """Call names with the largest total-time difference between the traces."""
    deltas = []
    names = {name for name, _ in stats_a.calls} | {name for name, _ in stats_b.calls}
    for name in names:
        info_a = stats_a.call(name)
        info_b = stats_b.call(name)
        time_a = info_a.total_duration if info_a else 0.0
        time_b = info_b.total_duration if info_b else 0.0
        deltas.append(
            CallDelta(
                name=name,
                time_a=time_a,
                time_b=time_b,
                count_a=info_a.count if info_a else 0,
                count_b=info_b.count if info_b else 0,
                delta=time_b - time_a,
            )
        )

    # Name as secondary key keeps the order deterministic
    deltas.sort(key=lambda d: (-abs(d.delta), d.name))
    return deltas[:top]


def build_report(
    trace_a: ParsedTrace,
    trace_b: ParsedTrace,
    pids: Collection[int] | None = None,
    slow_only: bool = False,
    top: int = DEFAULT_TOP_CALLS,
) -> DiffReport:
    """Align two traces and summarize the result."""
    rows = align_traces(trace_a, trace_b)
    counts = Counter(row.kind for row in rows)

    return DiffReport(
        name_a=trace_a.name,
        name_b=trace_b.name,
        stats_a=trace_a.stats,
        stats_b=trace_b.stats,
        wall_time_skew=trace_b.stats.total_wall_time - trace_a.stats.total_wall_time,
        ops_delta=trace_b.stats.total_events - trace_a.stats.total_events,
        score=score_rows(rows),
        row_counts=RowCounts(**counts),
        top_calls=tuple(compare_calls(trace_a.stats, trace_b.stats, top)),
        pids=observed_pids(trace_a, trace_b),
        rows=tuple(filter_rows(rows, pids, slow_only)),
    )


def diff_files(
    path_a: str,
    path_b: str,
    output_path: str,
    mode: TraceMode = "strace",
    pids: Collection[int] | None = None,
    slow_only: bool = False,
    top: int = DEFAULT_TOP_CALLS,
) -> DiffReport:
    """Main entry point: parse two trace files, align them and write JSON.

    Args:
        path_a: Baseline trace file
        path_b: Comparison trace file
        output_path: Path to output JSON file
        mode: Trace format of both inputs: "strace" or "perf"
    """
    file_a = Path(path_a)
    file_b = Path(path_b)
    output_file = Path(output_path)

    trace_a = parse_trace(file_a.read_text(encoding="utf-8", errors="replace"), file_a.name, mode)
    trace_b = parse_trace(file_b.read_text(encoding="utf-8", errors="replace"), file_b.name, mode)
    report = build_report(trace_a, trace_b, pids=pids, slow_only=slow_only, top=top)

    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, ensure_ascii=False, indent=2)

    counts = report.row_counts
    print(f"Compared {trace_a.stats.total_events} vs {trace_b.stats.total_events} calls")
    print(f"  Matches: {counts.match}, mismatches: {counts.mismatch}")
    print(f"  Inserted: {counts.insert}, deleted: {counts.delete}")
    print(f"  Wall time skew: {report.wall_time_skew:+.4f}s")
    print(f"Output written to: {output_path}")

    return report
