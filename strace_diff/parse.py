"""Parsers that turn strace and perf trace logs into call event sequences."""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .models import CallEvent, ParsedTrace, TraceMode
from .stats import compute_stats

# [pid  4242] 21:55:34.211679 ...
PID_PREFIX_RE = re.compile(r"^\[pid\s+(\d+)\]\s*")
STRACE_LINE_RE = re.compile(r"^(\d+:\d+:\d+\.\d+)\s+(.*)$")
WALL_CLOCK_RE = re.compile(r"^(\d+):(\d+):(\d+(?:\.\d+)?)$")

# mmap(NULL, 8192, PROT_READ|PROT_WRITE, ...) = 0x7f2b4c000000 <0.000046>
STANDARD_CALL_RE = re.compile(r"^(\w+)\((.*)\)\s+=\s+(.+?)\s+<([\d.]+)>")
# read(3, <unfinished ...>
UNFINISHED_CALL_RE = re.compile(r"^(\w+)\((.*?) ?<unfinished \.\.\.>")
# <... read resumed> "data", 4) = 4 <0.050000>
RESUMED_CALL_RE = re.compile(r"^<\.\.\. (\w+) resumed>(.*)\)\s+=\s+(.+?)\s+<([\d.]+)>")

# 1000.000000 ( 1.000 ms): app/42 openat(dfd: CWD, filename: "/etc/ld.so.cache") = 3
PERF_CALL_RE = re.compile(
    r"^\s*(\d+\.\d+)\s+\(\s*([\d.]+)\s*ms\):\s+(.+?)/(\d+)\s+(\w+)\((.*)\)\s+=\s+(.+?)\s*$"
)


class UnknownTraceFormatError(ValueError):
    """Raised when a trace mode other than ``strace`` or ``perf`` is requested."""


def wall_clock_to_ms(text: str) -> float | None:
    """Convert ``HH:MM:SS.ffffff`` to milliseconds since midnight."""
    match = WALL_CLOCK_RE.match(text)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return (int(hours) * 3600 + int(minutes) * 60 + float(seconds)) * 1000


def seconds_to_ms(text: str) -> float | None:
    """Convert an absolute seconds value to milliseconds."""
    try:
        return float(text) * 1000
    except ValueError:
        return None


class TimestampNormalizer:
    """Makes absolute times relative to the first time it sees."""

    def __init__(self):
        self.origin_ms: float | None = None

    def relative(self, absolute_ms: float) -> float:
        if self.origin_ms is None:
            self.origin_ms = absolute_ms
        return absolute_ms - self.origin_ms


@dataclass
class PendingCall:
    """An unfinished strace call waiting for its resumed line."""

    line_index: int
    timestamp: str
    start_ms: float
    name: str
    partial_args: str
    raw: str


class _TraceParser(ABC):
    """Shared per-run state: time origin, per-pid last end time and output."""

    def __init__(self):
        self.normalizer = TimestampNormalizer()
        self.last_end_ms: dict[int, float] = {}
        self.events: list[CallEvent] = []
        self.skipped = 0

    def _idle_gap(self, pid: int, start_ms: float) -> float:
        """Seconds between the pid's previous call end and ``start_ms``."""
        last_end = self.last_end_ms.setdefault(pid, start_ms)
        return max(0.0, start_ms - last_end) / 1000

    @abstractmethod
    def _parse_line(self, index: int, line: str) -> bool:
        """Consume one non-empty line; return False when it is not recognized."""

    def parse(self, content: str, name: str) -> ParsedTrace:
        for index, raw in enumerate(content.splitlines()):
            line = raw.rstrip()
            if not line or not self._parse_line(index, line):
                self.skipped += 1

        # Resumed calls are emitted at the resuming line but carry the earlier
        # start time; a stable sort restores chronological order.
        self.events.sort(key=lambda e: e.start_ms)
        events = tuple(self.events)

        logging.debug(f"Parsed {name}: {len(events)} events, {self.skipped} lines skipped")

        return ParsedTrace(
            name=name,
            events=events,
            stats=compute_stats(events),
            pids=frozenset(e.pid for e in events),
        )


class StraceParser(_TraceParser):
    """Parser for ``strace -f -tt -T`` output.

    Calls interrupted by another thread are printed as an ``<unfinished ...>``
    line followed later by a ``<... name resumed>`` line. They are stitched
    back together per pid; only one call per pid can be pending, a second
    unfinished line replaces the first.
    """

    def __init__(self):
        super().__init__()
        self.pending: dict[int, PendingCall] = {}
        self.orphaned_resumes = 0
        self.overwritten_pending = 0

    def _parse_line(self, index: int, line: str) -> bool:
        pid = 0
        pid_match = PID_PREFIX_RE.match(line)
        if pid_match:
            pid = int(pid_match.group(1))
            body = line[pid_match.end():]
        else:
            body = line

        line_match = STRACE_LINE_RE.match(body)
        if not line_match:
            return False
        timestamp, call = line_match.groups()
        absolute_ms = wall_clock_to_ms(timestamp)
        if absolute_ms is None:
            return False

        match = STANDARD_CALL_RE.match(call)
        if match:
            return self._standard(index, line, pid, timestamp, absolute_ms, match)

        match = UNFINISHED_CALL_RE.match(call)
        if match:
            if pid in self.pending:
                self.overwritten_pending += 1
            self.pending[pid] = PendingCall(
                line_index=index,
                timestamp=timestamp,
                start_ms=self.normalizer.relative(absolute_ms),
                name=match.group(1),
                partial_args=match.group(2),
                raw=line,
            )
            return True

        match = RESUMED_CALL_RE.match(call)
        if match:
            return self._resumed(line, pid, absolute_ms, match)

        return False

    def _standard(
        self,
        index: int,
        line: str,
        pid: int,
        timestamp: str,
        absolute_ms: float,
        match: re.Match,
    ) -> bool:
        name, args, result, duration_text = match.groups()
        try:
            duration = float(duration_text)
        except ValueError:
            return False

        start_ms = self.normalizer.relative(absolute_ms)
        idle_gap = self._idle_gap(pid, start_ms)
        self.last_end_ms[pid] = start_ms + duration * 1000

        self.events.append(
            CallEvent(
                id=index,
                pid=pid,
                timestamp=timestamp,
                start_ms=start_ms,
                name=name,
                args=args,
                result=result,
                duration=duration,
                idle_gap=idle_gap,
                raw=line,
            )
        )
        return True

    def _resumed(self, line: str, pid: int, absolute_ms: float, match: re.Match) -> bool:
        name, rest_args, result, duration_text = match.groups()
        pending = self.pending.get(pid)
        if pending is None or pending.name != name:
            self.orphaned_resumes += 1
            return False
        try:
            duration = float(duration_text)
        except ValueError:
            return False
        del self.pending[pid]

        idle_gap = self._idle_gap(pid, pending.start_ms)
        self.last_end_ms[pid] = self.normalizer.relative(absolute_ms)

        self.events.append(
            CallEvent(
                id=pending.line_index,
                pid=pid,
                timestamp=pending.timestamp,
                start_ms=pending.start_ms,
                name=name,
                args=pending.partial_args + rest_args,
                result=result,
                duration=duration,
                idle_gap=idle_gap,
                raw=f"{pending.raw}\n{line}",
            )
        )
        return True

    def parse(self, content: str, name: str) -> ParsedTrace:
        trace = super().parse(content, name)
        if self.orphaned_resumes or self.overwritten_pending or self.pending:
            logging.debug(
                f"{name}: {self.orphaned_resumes} orphaned resumes, "
                f"{self.overwritten_pending} overwritten pending calls, "
                f"{len(self.pending)} calls never resumed"
            )
        return trace


class PerfTraceParser(_TraceParser):
    """Parser for ``perf trace -T -F`` output, one complete call per line."""

    def _parse_line(self, index: int, line: str) -> bool:
        match = PERF_CALL_RE.match(line)
        if not match:
            return False
        timestamp, duration_ms, _process, pid, name, args, result = match.groups()

        absolute_ms = seconds_to_ms(timestamp)
        try:
            duration = float(duration_ms) / 1000
        except ValueError:
            return False
        if absolute_ms is None:
            return False

        pid_value = int(pid)
        start_ms = self.normalizer.relative(absolute_ms)
        idle_gap = self._idle_gap(pid_value, start_ms)
        self.last_end_ms[pid_value] = start_ms + duration * 1000

        self.events.append(
            CallEvent(
                id=index,
                pid=pid_value,
                timestamp=timestamp,
                start_ms=start_ms,
                name=name,
                args=args,
                result=result,
                duration=duration,
                idle_gap=idle_gap,
                raw=line,
            )
        )
        return True


PARSERS: dict[str, type[_TraceParser]] = {
    "strace": StraceParser,
    "perf": PerfTraceParser,
}


def parse_strace(content: str, name: str) -> ParsedTrace:
    """Parse ``strace -f -tt -T`` output."""
    return StraceParser().parse(content, name)


def parse_perf_trace(content: str, name: str) -> ParsedTrace:
    """Parse ``perf trace -T -F`` output."""
    return PerfTraceParser().parse(content, name)


def parse_trace(content: str, name: str, mode: TraceMode = "strace") -> ParsedTrace:
    """Parse a whole trace log in the given format.

    Lines that match no known shape are skipped; a malformed or truncated log
    yields fewer events rather than an error.

    Raises:
        UnknownTraceFormatError: if ``mode`` is not ``"strace"`` or ``"perf"``.
    """
    parser_cls = PARSERS.get(mode)
    if parser_cls is None:
        raise UnknownTraceFormatError(f"Unknown trace format: {mode!r}")
    return parser_cls().parse(content, name)
