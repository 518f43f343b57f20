"""Banded Needleman-Wunsch alignment of two call event sequences."""

import logging
from collections.abc import Iterable, Sequence

from .models import CallEvent, DeleteRow, DiffRow, InsertRow, MatchRow, MismatchRow, ParsedTrace
from .similarity import call_score

NEG_INF = float("-inf")

# Traceback directions
DIAG = 1
UP = 2  # Delete A
LEFT = 3  # Insert B


class TraceAligner:
    """Global alignment restricted to a band around the proportional diagonal.

    Only cells with ``|j - i*m/n| <= band`` are computed; scores and
    traceback directions live in dictionaries keyed by ``i * (m + 1) + j`` so
    memory grows with ``n * band`` rather than ``n * m``.
    """

    GAP_PENALTY = -4
    MIN_BAND = 200
    BAND_MARGIN = 100

    def __init__(self, events_a: Sequence[CallEvent], events_b: Sequence[CallEvent]):
        self.events_a = events_a
        self.events_b = events_b
        self.n = len(events_a)
        self.m = len(events_b)
        self.band = max(self.MIN_BAND, abs(self.n - self.m) + self.BAND_MARGIN)
        self.width = self.m + 1
        self.scores: dict[int, float] = {}
        self.directions: dict[int, int] = {}
        self.forced_steps = 0

    def _score(self, i: int, j: int) -> float:
        if i == 0:
            return j * self.GAP_PENALTY
        if j == 0:
            return i * self.GAP_PENALTY
        return self.scores.get(i * self.width + j, NEG_INF)

    def _band_range(self, i: int) -> range:
        center = i * self.m // self.n if self.n else 0
        return range(max(0, center - self.band), min(self.m, center + self.band) + 1)

    def fill(self) -> None:
        """Fill the banded score and direction tables."""
        for i in range(self.n + 1):
            for j in self._band_range(i):
                if i == 0 and j == 0:
                    self.scores[0] = 0
                    continue

                score_left = NEG_INF
                if j > 0:
                    score_left = self._score(i, j - 1) + self.GAP_PENALTY

                score_up = NEG_INF
                if i > 0:
                    score_up = self._score(i - 1, j) + self.GAP_PENALTY

                score_diag = NEG_INF
                if i > 0 and j > 0:
                    previous = self._score(i - 1, j - 1)
                    if previous != NEG_INF:
                        score_diag = previous + call_score(
                            self.events_a[i - 1], self.events_b[j - 1]
                        )

                best, direction = score_left, LEFT
                if score_up > best:
                    best, direction = score_up, UP
                # Ties go to the diagonal
                if score_diag >= best:
                    best, direction = score_diag, DIAG

                if best > NEG_INF:
                    key = i * self.width + j
                    self.scores[key] = best
                    self.directions[key] = direction

    def traceback(self) -> tuple[DiffRow, ...]:
        """Walk back from (n, m) to (0, 0) and emit rows in chronological order."""
        rows: list[DiffRow] = []
        i, j = self.n, self.m

        while i > 0 or j > 0:
            direction = self.directions.get(i * self.width + j)

            if direction is None:
                # Outside the band: head straight for the origin
                if i > 0 and j > 0:
                    self.forced_steps += 1
                    i -= 1
                    j -= 1
                    rows.append(MismatchRow(a=self.events_a[i], b=self.events_b[j]))
                elif i > 0:
                    i -= 1
                    rows.append(DeleteRow(a=self.events_a[i]))
                else:
                    j -= 1
                    rows.append(InsertRow(b=self.events_b[j]))
                continue

            if direction == DIAG:
                i -= 1
                j -= 1
                a = self.events_a[i]
                b = self.events_b[j]
                if call_score(a, b) > 0:
                    rows.append(
                        MatchRow(
                            a=a,
                            b=b,
                            duration_delta=a.duration - b.duration,
                            idle_gap_delta=a.idle_gap - b.idle_gap,
                        )
                    )
                else:
                    rows.append(MismatchRow(a=a, b=b))
            elif direction == UP:
                i -= 1
                rows.append(DeleteRow(a=self.events_a[i]))
            else:
                j -= 1
                rows.append(InsertRow(b=self.events_b[j]))

        rows.reverse()
        return tuple(rows)

    def align(self) -> tuple[DiffRow, ...]:
        logging.info(f"Aligning {self.n} x {self.m} events (band half-width {self.band})")
        self.fill()
        rows = self.traceback()
        if self.forced_steps:
            logging.info(f"Traceback left the band: {self.forced_steps} forced diagonal steps")
        return rows


def align_events(
    events_a: Sequence[CallEvent], events_b: Sequence[CallEvent]
) -> tuple[DiffRow, ...]:
    """Align two event sequences and return the ordered diff rows."""
    return TraceAligner(events_a, events_b).align()


def align_traces(trace_a: ParsedTrace, trace_b: ParsedTrace) -> tuple[DiffRow, ...]:
    """Align two parsed traces and return the ordered diff rows."""
    return align_events(trace_a.events, trace_b.events)


def score_rows(rows: Iterable[DiffRow]) -> float:
    """Total alignment score of a diff sequence."""
    total = 0.0
    for row in rows:
        if isinstance(row, (MatchRow, MismatchRow)):
            total += call_score(row.a, row.b)
        elif isinstance(row, (InsertRow, DeleteRow)):
            total += TraceAligner.GAP_PENALTY
        else:
            raise TypeError(f"Unknown diff row: {row!r}")
    return total
