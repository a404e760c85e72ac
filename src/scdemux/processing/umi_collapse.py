"""Collapsing of sequencing-error UMI variants onto their parent UMI."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Tuple

from scdemux.matching import output_sensitive_match


def cluster_umis(umis: Iterable[str], mismatches: int) -> Dict[str, str]:
    """
    Cluster UMIs within ``mismatches`` edits and map each UMI to its representative.

    Parameters
    ----------
    umis : Iterable[str]
        UMI of every read (duplicates expected).
    mismatches : int
        Maximum edit distance between a UMI and its representative.

    Returns
    -------
    Dict[str, str]
        Mapping from each distinct UMI to its cluster representative.

    Notes
    -----
    Directional clustering: UMIs are visited from highest to lowest read
    count (ties broken alphabetically) and each unassigned UMI absorbs every
    unassigned, equally or less frequent UMI within the budget.
    """
    umi_counts = Counter(umis)
    if not umi_counts:
        return {}

    sorted_umis = sorted(umi_counts, key=lambda umi: (-umi_counts[umi], umi))
    umi_to_cluster = {umi: umi for umi in sorted_umis}
    if mismatches == 0:
        return umi_to_cluster

    assigned = set()
    for i, parent in enumerate(sorted_umis):
        if parent in assigned:
            continue
        for child in sorted_umis[i + 1:]:
            if child in assigned:
                continue
            if output_sensitive_match(child, parent, mismatches).success:
                umi_to_cluster[child] = parent
                assigned.add(child)

    return umi_to_cluster


def collapse_group(umis: List[str], mismatches: int) -> Tuple[int, Dict[str, str]]:
    """Return the number of distinct molecules in a group and its UMI mapping."""
    mapping = cluster_umis(umis, mismatches)
    return len(set(mapping.values())), mapping
