"""Output-sensitive edit distance test for short barcode and UMI sequences.

The search keeps, for every diagonal ``k`` of the edit matrix, the furthest
read position that can be reached with ``d`` edits (a "front"). Fronts grow one
edit at a time, so the work is proportional to ``d * (m + n)`` and the typical
budget of one to three edits stays cheap regardless of sequence length.

No traceback is kept: callers get a yes/no answer and a score, never positions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .longest_common_prefix import longest_common_prefix
from .types import MatchScore


@dataclass
class DiagonalFront:
    """Reach per diagonal for the previous and the current edit round.

    Diagonal ``k`` (pattern index minus read index) lives at ``offset + k``.
    ``None`` marks a diagonal not reached yet.
    """

    previous: List[Optional[int]]
    current: List[Optional[int]]
    offset: int
    d: int = 0

    @classmethod
    def allocate(cls, m: int, n: int) -> "DiagonalFront":
        size = m + n + 3
        return cls(previous=[None] * size, current=[None] * size, offset=m + 1)

    def reach(self, diagonal: int) -> Optional[int]:
        return self.current[self.offset + diagonal]


def advance_front(sequence: Sequence, pattern: Sequence, front: DiagonalFront) -> None:
    """Compute the front of round ``front.d`` from the front of round ``front.d - 1``."""
    m = len(sequence)
    n = len(pattern)
    low = min(m, front.d)
    high = min(n, front.d)

    front.previous = front.current
    front.current = [None] * len(front.previous)
    previous = front.previous

    for diagonal in range(-low, high + 1):
        idx = front.offset + diagonal

        candidates = []
        if previous[idx] is not None:
            # substitution
            candidates.append(previous[idx] + 1)
        if previous[idx + 1] is not None:
            # deletion from the read
            candidates.append(previous[idx + 1] + 1)
        if previous[idx - 1] is not None:
            # insertion into the read
            candidates.append(previous[idx - 1])
        if not candidates:
            continue

        reach = min(max(candidates), m, n - diagonal)
        reach += longest_common_prefix(sequence, pattern, reach, reach + diagonal)
        front.current[idx] = reach


def output_sensitive_match(sequence: Sequence, pattern: Sequence, mismatches: int) -> MatchScore:
    """Test whether ``sequence`` and ``pattern`` are within ``mismatches`` edits.

    Parameters
    ----------
    sequence : str or bytes
        Observed read segment.
    pattern : str or bytes
        Expected barcode or UMI.
    mismatches : int
        Edit budget (substitutions, insertions and deletions all cost 1).

    Returns
    -------
    MatchScore
        ``success`` and the edit distance, or ``mismatches + 1`` on rejection.
    """
    if mismatches < 0:
        raise ValueError(f"mismatches must be non-negative, got {mismatches}")

    m = len(sequence)
    n = len(pattern)
    front = DiagonalFront.allocate(m, n)
    target = n - m

    front.current[front.offset] = longest_common_prefix(sequence, pattern)
    if front.reach(target) == m:
        return MatchScore(success=True, score=0)

    for d in range(1, min(max(m, n), mismatches) + 1):
        front.d = d
        advance_front(sequence, pattern, front)
        if front.reach(target) == m:
            return MatchScore(success=True, score=d)

    return MatchScore(success=False, score=mismatches + 1)
