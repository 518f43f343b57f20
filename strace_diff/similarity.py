"""Similarity heuristics used to score candidate call pairs."""

import re

from .models import CallEvent

# Strings longer than this get a cheap distance estimate instead of a full DP
MAX_EDIT_DISTANCE_LENGTH = 40

# First quoted string containing a slash, e.g. "/usr/lib/locale/locale-archive"
QUOTED_PATH_RE = re.compile(r'"([^"]*/[^"]*)"')

PREFIX_CHECK_LENGTH = 30
PREFIX_WEIGHT = 0.7
LENGTH_WEIGHT = 0.3

SCORE_MATCH = 10
SCORE_APPROX = 6  # Similar call name, e.g. fstat vs newfstatat
SCORE_MISMATCH = -10
MAX_ARG_BONUS = 5
APPROX_NAME_DISTANCE = 3


def edit_distance(a: str, b: str) -> int:
    """Compute Levenshtein distance between two short strings.

    Operations: insert, delete, substitute, each costing 1. When either string
    is longer than ``MAX_EDIT_DISTANCE_LENGTH`` the length difference plus 5 is
    returned instead.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) > MAX_EDIT_DISTANCE_LENGTH or len(b) > MAX_EDIT_DISTANCE_LENGTH:
        return abs(len(a) - len(b)) + 5

    previous = list(range(len(b) + 1))
    for i in range(1, len(a) + 1):
        current = [i] + [0] * len(b)
        for j in range(1, len(b) + 1):
            if a[i - 1] == b[j - 1]:
                current[j] = previous[j - 1]
            else:
                current[j] = 1 + min(
                    previous[j],  # delete
                    current[j - 1],  # insert
                    previous[j - 1],  # substitute
                )
        previous = current

    return previous[len(b)]


def _split_path(path: str) -> tuple[str, str]:
    """Return (parent directory segment, basename) of a slash path."""
    parts = path.split("/")
    parent = parts[-2] if len(parts) > 1 else ""
    return parent, parts[-1]


def argument_similarity(a: str, b: str) -> float:
    """Score how alike two raw argument strings are, from 0.0 to 1.0.

    When both strings mention a quoted path the file names decide the score;
    otherwise a blend of common prefix and relative length is used.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    match_a = QUOTED_PATH_RE.search(a)
    match_b = QUOTED_PATH_RE.search(b)

    if match_a and match_b:
        dir_a, file_a = _split_path(match_a.group(1))
        dir_b, file_b = _split_path(match_b.group(1))

        if file_a == file_b and file_a:
            return 1.0 if dir_a == dir_b else 0.9

        # Version bumps like libprotobuf.so.32 vs libprotobuf.so.33
        if edit_distance(file_a, file_b) <= 2 and len(file_a) > 3:
            return 0.7

        # Below the generic fallback so unrelated file operations stay apart
        return 0.2

    shorter = min(len(a), len(b))
    longer = max(len(a), len(b))

    check_length = min(shorter, PREFIX_CHECK_LENGTH)
    common = 0
    for i in range(check_length):
        if a[i] != b[i]:
            break
        common += 1

    prefix_score = common / max(check_length, 1)
    length_score = shorter / longer
    return prefix_score * PREFIX_WEIGHT + length_score * LENGTH_WEIGHT


def call_score(a: CallEvent, b: CallEvent) -> float:
    """Substitution score for aligning call ``a`` with call ``b``."""
    if a.name == b.name:
        return SCORE_MATCH + argument_similarity(a.args, b.args) * MAX_ARG_BONUS

    if (
        edit_distance(a.name, b.name) <= APPROX_NAME_DISTANCE
        or a.name in b.name
        or b.name in a.name
    ):
        return SCORE_APPROX + argument_similarity(a.args, b.args) * (MAX_ARG_BONUS / 2)

    return SCORE_MISMATCH
