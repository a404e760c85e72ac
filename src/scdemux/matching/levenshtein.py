"""Free-end Levenshtein alignment with backtracking of the matched span.

Used to place a fixed barcode pattern inside a longer read. Read bases before
the pattern and read bases after the last pattern column are free, every other
edit costs 1. Match boundaries are the first and last literal base matches on
the backtracked path, so edits at the ends never bleed into a neighbouring
barcode of the same read.
"""

from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence

from scdemux.logging_utils import get_logger

from .types import AlignmentResult

logger = get_logger(__name__)


class EditCell(NamedTuple):
    """Cost of one matrix cell and the flat index of its predecessor."""

    cost: int
    predecessor: Optional[int]


class MatrixBuffer:
    """Row-major edit matrix storage that can be reused across calls.

    One buffer per worker thread avoids allocating a fresh matrix for each of
    the many short alignments a demultiplexing run performs.
    """

    __slots__ = ("costs", "predecessors", "cols")

    def __init__(self):
        self.costs: List[int] = []
        self.predecessors: List[Optional[int]] = []
        self.cols = 0

    def reset(self, rows: int, cols: int) -> None:
        size = rows * cols
        missing = size - len(self.costs)
        if missing > 0:
            self.costs.extend([0] * missing)
            self.predecessors.extend([None] * missing)
        self.cols = cols

    def index(self, i: int, j: int) -> int:
        return i * self.cols + j

    def cell(self, i: int, j: int) -> EditCell:
        idx = self.index(i, j)
        return EditCell(self.costs[idx], self.predecessors[idx])


def levenshtein(
    sequence: Sequence,
    pattern: Sequence,
    mismatches: int,
    upper_bound_check: bool = False,
    buffer: Optional[MatrixBuffer] = None,
) -> AlignmentResult:
    """Align ``pattern`` somewhere inside ``sequence`` within ``mismatches`` edits.

    Parameters
    ----------
    sequence : str or bytes
        Read segment that should contain the pattern.
    pattern : str or bytes
        Expected barcode.
    mismatches : int
        Edit budget.
    upper_bound_check : bool
        Skip cells that can no longer be within budget and stop as soon as
        the final cell is over budget. Accept/reject decisions and boundaries
        are the same as without the check; a rejected score is not exact.
    buffer : MatrixBuffer, optional
        Storage reused between calls.

    Returns
    -------
    AlignmentResult
        Boundaries are set only when ``success`` is True. An alignment that
        never pairs two equal bases has no boundary and is rejected.
    """
    if mismatches < 0:
        raise ValueError(f"mismatches must be non-negative, got {mismatches}")

    ls = len(sequence)
    la = len(pattern)
    over_budget = mismatches + 1
    if la == 0:
        return AlignmentResult(success=False, score=over_budget)

    if buffer is None:
        buffer = MatrixBuffer()
    cols = la + 1
    buffer.reset(ls + 1, cols)
    costs = buffer.costs
    predecessors = buffer.predecessors

    # Leading read bases are free
    for i in range(ls + 1):
        costs[i * cols] = 0
        predecessors[i * cols] = (i - 1) * cols if i else None
    # Skipping pattern bases is not
    for j in range(1, cols):
        costs[j] = j
        predecessors[j] = j - 1

    upper_bound_col = min(mismatches, la)
    for i in range(1, ls + 1):
        row = i * cols
        prev_row = row - cols
        base = sequence[i - 1]
        last_col = min(la, upper_bound_col + 1) if upper_bound_check else la
        row_upper = 0

        for j in range(1, last_col + 1):
            deletion = costs[prev_row + j] + (0 if j == la else 1)
            insertion = costs[row + j - 1] + 1
            substitution = costs[prev_row + j - 1] + (0 if base == pattern[j - 1] else 1)

            # On ties prefer deletion, then insertion, then substitution
            if deletion <= insertion and deletion <= substitution:
                cost, predecessor = deletion, prev_row + j
            elif insertion <= substitution:
                cost, predecessor = insertion, row + j - 1
            else:
                cost, predecessor = substitution, prev_row + j - 1

            costs[row + j] = cost
            predecessors[row + j] = predecessor
            if cost <= mismatches:
                row_upper = j

        if upper_bound_check:
            for j in range(last_col + 1, cols):
                costs[row + j] = over_budget
                predecessors[row + j] = None
            upper_bound_col = row_upper

    final = ls * cols + la
    score = costs[final]
    if score > mismatches:
        return AlignmentResult(success=False, score=score)

    start = start_in_pattern = end = end_in_pattern = None
    i, j = ls, la
    while i != 0 and j != 0:
        idx = i * cols + j
        predecessor = predecessors[idx]
        i_new, j_new = divmod(predecessor, cols)
        unchanged = costs[idx] == costs[predecessor]

        # A diagonal step without cost is a literal match; the last one seen
        # while walking backwards is the first match of the alignment.
        if unchanged and i_new != i and j_new != j:
            start, start_in_pattern = i, j
        if end is None and unchanged and j_new < la:
            end, end_in_pattern = i, j

        i, j = i_new, j_new

    if start is None:
        logger.debug(
            "No literal base match on the alignment path (score %d); no boundary recoverable.", score
        )
        return AlignmentResult(success=False, score=score)

    return AlignmentResult(
        success=True,
        score=score,
        match_start=start - 1,
        match_end=end,
        start_in_pattern=start_in_pattern - 1,
        end_in_pattern=end_in_pattern,
    )
