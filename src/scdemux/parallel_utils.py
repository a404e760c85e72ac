"""Utilities for safe multiprocessing across macOS and Linux."""

from __future__ import annotations

import os


def resolve_n_jobs(n_jobs: int) -> int:
    """Resolve n_jobs to a concrete positive worker count.

    Parameters
    ----------
    n_jobs:
        Number of workers. Negative values map to ``os.cpu_count()``.
        Zero is treated as 1.
    """
    if n_jobs < 0:
        return os.cpu_count() or 1
    return max(1, n_jobs)



def pool_chunksize(n_tasks: int, n_jobs: int, chunks_per_worker: int = 4) -> int:
    """Chunk size for ``Executor.map`` giving each worker a few batches of tasks."""
    return max(1, n_tasks // (max(1, n_jobs) * chunks_per_worker))
