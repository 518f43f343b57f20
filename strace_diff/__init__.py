"""Align and compare system call traces from two runs of a program."""

from .align import align_traces, score_rows
from .models import (
    CallEvent,
    CallStat,
    DeleteRow,
    DiffRow,
    InsertRow,
    MatchRow,
    MismatchRow,
    ParsedTrace,
    TraceStats,
)
from .parse import UnknownTraceFormatError, parse_perf_trace, parse_strace, parse_trace
from .report import DiffReport, RowCounts, build_report

__all__ = [
    "CallEvent",
    "CallStat",
    "TraceStats",
    "ParsedTrace",
    "DiffRow",
    "MatchRow",
    "MismatchRow",
    "InsertRow",
    "DeleteRow",
    "UnknownTraceFormatError",
    "parse_trace",
    "parse_strace",
    "parse_perf_trace",
    "align_traces",
    "score_rows",
    "DiffReport",
    "RowCounts",
    "build_report",
]
