from __future__ import annotations

from types import MappingProxyType
from typing import Any, Final, Mapping


## Helpers ##
def _deep_freeze(obj: Any) -> Any:
    """Recursively freeze common containers. Use for constant exports."""
    if isinstance(obj, dict):
        return MappingProxyType({k: _deep_freeze(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return tuple(_deep_freeze(v) for v in obj)
    if isinstance(obj, set):
        return frozenset(_deep_freeze(v) for v in obj)
    return obj


## Constants ##
DEFAULT_UMI_MISMATCHES: Final[int] = 2
DEFAULT_CLASS_MISMATCHES: Final[int] = 1
DEFAULT_THREADS: Final[int] = 5

BARCODE_LIST_DELIMITER: Final[str] = ","
NAME_LIST_DELIMITER: Final[str] = ","
SINGLE_CELL_ID_DELIMITER: Final[str] = "."

# Columns of the demultiplexed read table
UMI_COLUMN: Final[str] = "UMI"
READ_NAME_COLUMN: Final[str] = "ReadName"
GUIDE_COLUMN: Final[str] = "Guide"
RESERVED_INPUT_COLUMNS: Final[frozenset] = frozenset({UMI_COLUMN, READ_NAME_COLUMN, GUIDE_COLUMN})

# Columns of the antibody count table
AB_ID_COLUMN: Final[str] = "AB_ID"
AB_COUNT_COLUMN: Final[str] = "AB_COUNT"
SINGLE_CELL_COLUMN: Final[str] = "SingleCell_BARCODE"
TREATMENT_COLUMN: Final[str] = "TREATMENT"
CLASS_COLUMN: Final[str] = "CLASS"

UNKNOWN_LABEL: Final[str] = "unknown"

_private_output_suffixes = {
    "ab_counts": "_AB_counts.tsv",
    "umi_collapsed": "_UMI_collapsed.tsv",
    "log": "_log.txt",
    "h5ad": "_AB_counts.h5ad",
}
OUTPUT_SUFFIXES: Final[Mapping[str, str]] = _deep_freeze(_private_output_suffixes)
