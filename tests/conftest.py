"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from strace_diff.models import CallEvent  # noqa: E402

STRACE_SAMPLE = """\
10:00:00.000000 execve("/usr/bin/app", ["app"], 0x7ffd4a1c8e40 /* 24 vars */) = 0 <0.000500>
10:00:00.001000 openat(AT_FDCWD, "/etc/ld.so.cache", O_RDONLY|O_CLOEXEC) = 3 <0.000020>
10:00:00.002000 read(3, <unfinished ...>
[pid   101] 10:00:00.002500 write(1, "hello\\n", 6) = 6 <0.000100>
10:00:00.004000 <... read resumed> "data", 4) = 4 <0.002000>
10:00:00.005000 --- SIGCHLD {si_signo=SIGCHLD, si_code=CLD_EXITED} ---
10:00:00.006000 close(3) = 0 <0.000005>
10:00:00.007000 +++ exited with 0 +++
"""

PERF_SAMPLE = """\
1000.000000 ( 1.500 ms): app/42 openat(dfd: CWD, filename: "/etc/hosts") = 3
1000.002000 ( 0.010 ms): app/42 read(fd: 3, buf: 0x7ffd2c0, count: 4096) = 120
1000.003000 ( 0.005 ms): app/43 close(fd: 3) = 0
not a perf trace line
"""


@pytest.fixture
def strace_sample():
    """A small strace log with a split read call and two processes."""
    return STRACE_SAMPLE


@pytest.fixture
def perf_sample():
    """A small perf trace log with two processes."""
    return PERF_SAMPLE


def make_event(
    name: str,
    args: str = "",
    duration: float = 0.0,
    idle_gap: float = 0.0,
    pid: int = 0,
    index: int = 0,
) -> CallEvent:
    """Build a CallEvent without going through a parser."""
    return CallEvent(
        id=index,
        pid=pid,
        timestamp="",
        start_ms=float(index),
        name=name,
        args=args,
        result="0",
        duration=duration,
        idle_gap=idle_gap,
        raw=f"{name}({args}) = 0",
    )


@pytest.fixture
def event_factory():
    """Factory for hand-built call events."""
    return make_event
