"""Aggregate statistics over a parsed event sequence."""

from collections.abc import Sequence

from .models import CallEvent, CallStat, TraceStats


def compute_stats(events: Sequence[CallEvent]) -> TraceStats:
    """Compute trace-level totals and the per-call table.

    Wall time is the last event's relative start (in seconds) plus its
    duration, so ``events`` should already be in chronological order.
    """
    if not events:
        return TraceStats()

    counts: dict[str, int] = {}
    durations: dict[str, float] = {}
    kernel_time = 0.0
    idle_time = 0.0

    for event in events:
        kernel_time += event.duration
        idle_time += event.idle_gap
        counts[event.name] = counts.get(event.name, 0) + 1
        durations[event.name] = durations.get(event.name, 0.0) + event.duration

    last = events[-1]
    return TraceStats(
        total_events=len(events),
        total_wall_time=last.start_ms / 1000 + last.duration,
        total_kernel_time=kernel_time,
        total_idle_time=idle_time,
        calls=tuple(
            (name, CallStat(count=counts[name], total_duration=durations[name]))
            for name in sorted(counts)
        ),
    )
