"""Data models for parsed system-call traces and their diff."""

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Literal, Union

TraceMode = Literal["strace", "perf"]


@dataclass(frozen=True)
class CallEvent:
    """A single completed system call."""

    id: int  # Index of the source line that started the call
    pid: int  # 0 when the line carried no process id
    timestamp: str  # Original timestamp text
    start_ms: float  # Relative to the first event of the trace
    name: str
    args: str
    result: str
    duration: float  # Kernel time in seconds
    idle_gap: float  # Seconds spent outside traced calls before this one
    raw: str

    def to_dict(self) -> dict[str, Any]:
        """Convert the event to a dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True)
class CallStat:
    """Count and summed duration for one call name."""

    count: int = 0
    total_duration: float = 0.0


@dataclass(frozen=True)
class TraceStats:
    """Aggregate timings over one event sequence."""

    total_events: int = 0
    total_wall_time: float = 0.0
    total_kernel_time: float = 0.0
    total_idle_time: float = 0.0
    calls: tuple[tuple[str, CallStat], ...] = ()  # (name, stat) pairs sorted by name

    def call(self, name: str) -> CallStat | None:
        """Stats for one call name, if it was seen."""
        for call_name, stat in self.calls:
            if call_name == name:
                return stat
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_events": self.total_events,
            "total_wall_time": self.total_wall_time,
            "total_kernel_time": self.total_kernel_time,
            "total_idle_time": self.total_idle_time,
            "calls": {name: asdict(stat) for name, stat in self.calls},
        }


@dataclass(frozen=True)
class ParsedTrace:
    """Result of parsing one trace log."""

    name: str
    events: tuple[CallEvent, ...]
    stats: TraceStats
    pids: frozenset[int]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "events": [e.to_dict() for e in self.events],
            "stats": self.stats.to_dict(),
            "pids": sorted(self.pids),
        }


@dataclass(frozen=True)
class MatchRow:
    """Paired events whose call score is positive."""

    kind: ClassVar[str] = "match"

    a: CallEvent
    b: CallEvent
    duration_delta: float  # a.duration - b.duration
    idle_gap_delta: float  # a.idle_gap - b.idle_gap

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "a": self.a.to_dict(),
            "b": self.b.to_dict(),
            "duration_delta": self.duration_delta,
            "idle_gap_delta": self.idle_gap_delta,
        }


@dataclass(frozen=True)
class MismatchRow:
    """Paired events that do not resemble each other."""

    kind: ClassVar[str] = "mismatch"

    a: CallEvent
    b: CallEvent

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "a": self.a.to_dict(), "b": self.b.to_dict()}


@dataclass(frozen=True)
class InsertRow:
    """Event present only in trace B."""

    kind: ClassVar[str] = "insert"

    b: CallEvent

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "b": self.b.to_dict()}


@dataclass(frozen=True)
class DeleteRow:
    """Event present only in trace A."""

    kind: ClassVar[str] = "delete"

    a: CallEvent

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "a": self.a.to_dict()}


DiffRow = Union[MatchRow, MismatchRow, InsertRow, DeleteRow]


def side_a(row: DiffRow) -> CallEvent | None:
    """Return the trace-A event of a row, if it has one."""
    if isinstance(row, (MatchRow, MismatchRow, DeleteRow)):
        return row.a
    if isinstance(row, InsertRow):
        return None
    raise TypeError(f"Unknown diff row: {row!r}")


def side_b(row: DiffRow) -> CallEvent | None:
    """Return the trace-B event of a row, if it has one."""
    if isinstance(row, (MatchRow, MismatchRow, InsertRow)):
        return row.b
    if isinstance(row, DeleteRow):
        return None
    raise TypeError(f"Unknown diff row: {row!r}")
