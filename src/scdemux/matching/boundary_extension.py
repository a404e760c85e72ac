"""Extend aligner boundaries across the free-indel zones at both ends.

The free-end aligner does not charge for read bases outside the pattern, so a
literal match right next to the reported span can be left out of it. These
helpers count how many such bases still match base by base.
"""

from __future__ import annotations

from typing import Sequence

from .types import AlignmentResult


def back_barcode_mapping_extension(
    sequence: Sequence, pattern: Sequence, seq_end: int, pattern_end: int
) -> int:
    """Count matching bases from ``seq_end``/``pattern_end`` onwards.

    Stops at the first mismatch, at the end of the pattern, or when the read
    ends before the pattern does.
    """
    elongation = 0
    for offset in range(len(pattern) - pattern_end):
        if seq_end + offset >= len(sequence):
            break
        if sequence[seq_end + offset] != pattern[pattern_end + offset]:
            break
        elongation += 1
    return elongation


def front_barcode_mapping_extension(
    sequence: Sequence, pattern: Sequence, seq_start: int, pattern_start: int
) -> int:
    """Count matching bases walking left from ``seq_start``/``pattern_start``.

    ``pattern_start`` bases of the pattern were left unmatched by the aligner;
    the walk stops at the first mismatch or at index 0 of either sequence.
    """
    elongation = 0
    for offset in range(min(pattern_start, seq_start)):
        if sequence[seq_start - 1 - offset] != pattern[pattern_start - 1 - offset]:
            break
        elongation += 1
    return elongation


def extend_alignment(sequence: Sequence, pattern: Sequence, result: AlignmentResult) -> AlignmentResult:
    """Widen a successful alignment by all literally matching flanking bases."""
    if not result.success:
        return result
    front = front_barcode_mapping_extension(
        sequence, pattern, result.match_start, result.start_in_pattern
    )
    back = back_barcode_mapping_extension(sequence, pattern, result.match_end, result.end_in_pattern)
    return result.widened(front, back)
