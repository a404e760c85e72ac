## readwrite ##
from __future__ import annotations

import gzip
from pathlib import Path
from typing import IO, Iterable, Union

import anndata as ad
import pandas as pd

from scdemux.logging_utils import get_logger

logger = get_logger(__name__)


######################################################################################################
## General file and directory handling
def make_dirs(directories: Union[str, Path, Iterable[Union[str, Path]]]) -> None:
    """
    Create one or multiple directories.

    Parameters
    ----------
    directories : str | Path | list/iterable of str | Path
        Paths of directories to create. If a file path is passed,
        the parent directory is created.
    """
    if isinstance(directories, (str, Path)):
        directories = [directories]

    for d in directories:
        p = Path(d)
        if p.suffix:
            p = p.parent
        p.mkdir(parents=True, exist_ok=True)


def open_text(path: Union[str, Path]) -> IO[str]:
    """Open a plain or gzip-compressed text file for reading."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    if p.suffix == ".gz":
        return gzip.open(p, "rt")
    return p.open("r")


def count_lines(path: Union[str, Path], chunk_size: int = 1 << 20) -> int:
    """Count newline characters in a plain or gzip-compressed file."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    opener = gzip.open if p.suffix == ".gz" else open
    total = 0
    with opener(p, "rb") as fh:
        while True:
            chunk = fh.read(chunk_size)
            if not chunk:
                break
            total += chunk.count(b"\n")
    return total


def output_path(prefix: Union[str, Path], suffix: str) -> Path:
    """Build ``<prefix><suffix>``, dropping a ``.tsv``/``.txt`` extension from the prefix."""
    p = Path(prefix)
    if p.suffix in (".tsv", ".txt"):
        p = p.with_suffix("")
    return p.parent / f"{p.name}{suffix}"
######################################################################################################


######################################################################################################
## Tables
def write_tsv(df: pd.DataFrame, path: Union[str, Path]) -> Path:
    p = Path(path)
    make_dirs(p)
    df.to_csv(p, sep="\t", index=False)
    logger.info("Wrote %d rows to %s", len(df), p)
    return p


def write_h5ad(adata: ad.AnnData, path: Union[str, Path], compression: str = "gzip") -> Path:
    """Write an AnnData object after casting object columns of obs/var to strings."""
    p = Path(path)
    make_dirs(p)
    for frame in (adata.obs, adata.var):
        for col in frame.columns:
            if frame[col].dtype == object:
                frame[col] = frame[col].astype(str)
    adata.write_h5ad(p, compression=compression)
    logger.info("Wrote AnnData %s to %s", adata.shape, p)
    return p
######################################################################################################
