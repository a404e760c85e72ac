from __future__ import annotations

from typing import Sequence


def longest_common_prefix(a: Sequence, b: Sequence, a_start: int = 0, b_start: int = 0) -> int:
    """Length of the shared prefix of ``a[a_start:]`` and ``b[b_start:]``.

    Capped at the shorter remaining length; 0 when either remainder is empty.
    Works on ``str`` and ``bytes`` alike without slicing copies.
    """
    limit = min(len(a) - a_start, len(b) - b_start)
    lcp = 0
    while lcp < limit and a[a_start + lcp] == b[b_start + lcp]:
        lcp += 1
    return lcp
