"""Result types shared by the matching engine."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple


@dataclass(frozen=True)
class MatchScore:
    """Outcome of a bounded membership test.

    ``score`` is the edit distance when ``success`` is True, otherwise
    ``mismatches + 1``, which only signals rejection.
    """

    success: bool
    score: int


@dataclass(frozen=True)
class AlignmentResult:
    """Outcome of the free-end aligner.

    Positions are 0-based; ``match_end`` and ``end_in_pattern`` are the first
    indices past the match. They are ``None`` whenever ``success`` is False.
    """

    success: bool
    score: int
    match_start: Optional[int] = None
    match_end: Optional[int] = None
    start_in_pattern: Optional[int] = None
    end_in_pattern: Optional[int] = None

    @property
    def span(self) -> Optional[Tuple[int, int]]:
        if self.match_start is None or self.match_end is None:
            return None
        return self.match_start, self.match_end

    @property
    def pattern_span(self) -> Optional[Tuple[int, int]]:
        if self.start_in_pattern is None or self.end_in_pattern is None:
            return None
        return self.start_in_pattern, self.end_in_pattern

    def widened(self, front: int, back: int) -> "AlignmentResult":
        """Return a copy with the span moved ``front`` bases left and ``back`` bases right."""
        if not self.success:
            return self
        return replace(
            self,
            match_start=self.match_start - front,
            start_in_pattern=self.start_in_pattern - front,
            match_end=self.match_end + back,
            end_in_pattern=self.end_in_pattern + back,
        )
