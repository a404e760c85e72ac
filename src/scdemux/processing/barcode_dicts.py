"""Loading of barcode alternatives and the name tables attached to them."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from scdemux.constants import BARCODE_LIST_DELIMITER, NAME_LIST_DELIMITER
from scdemux.logging_utils import get_logger
from scdemux.readwrite import open_text

logger = get_logger(__name__)


def _read_delimited_entries(path: Union[str, Path], delimiter: str) -> List[List[str]]:
    """Return the non-empty, stripped entries of each non-empty line."""
    rows = []
    with open_text(path) as fh:
        for line in fh:
            entries = [entry.strip() for entry in line.strip().split(delimiter)]
            entries = [entry for entry in entries if entry]
            if entries:
                rows.append(entries)
    return rows


def load_barcode_list(path: Union[str, Path]) -> List[List[str]]:
    """
    Load the allowed barcodes for every variable barcode position.

    Each line of the file holds the comma-separated alternatives of one
    position, in the order the positions occur in the read.
    """
    rows = _read_delimited_entries(path, BARCODE_LIST_DELIMITER)
    if not rows:
        raise ValueError(f"No barcodes found in barcode list: {path}")
    return [[seq.upper() for seq in row] for row in rows]


def load_name_list(path: Union[str, Path]) -> List[str]:
    """Load comma-separated names, reading all lines in order."""
    return [name for row in _read_delimited_entries(path, NAME_LIST_DELIMITER) for name in row]


@dataclass
class BarcodeInformation:
    """Allowed barcodes per position and the roles of those positions."""

    barcode_alternatives: List[List[str]]
    ci_barcode_indices: List[int]
    antibody_index: int
    treatment_index: Optional[int] = None
    barcode_index: List[Dict[str, int]] = field(init=False, repr=False)

    def __post_init__(self):
        n_positions = len(self.barcode_alternatives)
        roles = list(self.ci_barcode_indices) + [self.antibody_index]
        if self.treatment_index is not None:
            roles.append(self.treatment_index)
        for idx in roles:
            if idx < 0 or idx >= n_positions:
                raise ValueError(
                    f"Barcode position {idx} out of range; the barcode list has {n_positions} positions."
                )
        if self.antibody_index in self.ci_barcode_indices:
            raise ValueError("The antibody barcode position cannot also identify single cells.")

        self.barcode_index = []
        for position, alternatives in enumerate(self.barcode_alternatives):
            lookup: Dict[str, int] = {}
            for idx, seq in enumerate(alternatives):
                if seq in lookup:
                    logger.warning("Duplicate barcode %s at position %d ignored.", seq, position)
                    continue
                lookup[seq] = idx
            self.barcode_index.append(lookup)

    @property
    def n_positions(self) -> int:
        return len(self.barcode_alternatives)

    @property
    def antibody_barcodes(self) -> List[str]:
        return self.barcode_alternatives[self.antibody_index]

    @property
    def treatment_barcodes(self) -> List[str]:
        if self.treatment_index is None:
            return []
        return self.barcode_alternatives[self.treatment_index]

    def lookup(self, position: int, seq: str) -> Optional[int]:
        """Index of ``seq`` among the alternatives of ``position``, or None."""
        return self.barcode_index[position].get(seq.upper())


def generate_barcode_dicts(
    barcode_file: Union[str, Path],
    ci_barcode_indices: Sequence[int],
    antibody_index: int,
    treatment_index: Optional[int] = None,
) -> BarcodeInformation:
    alternatives = load_barcode_list(barcode_file)
    info = BarcodeInformation(
        barcode_alternatives=alternatives,
        ci_barcode_indices=list(ci_barcode_indices),
        antibody_index=antibody_index,
        treatment_index=treatment_index,
    )
    logger.info(
        "Loaded %d barcode positions (%s alternatives).",
        info.n_positions,
        ", ".join(str(len(row)) for row in alternatives),
    )
    return info


def _zip_names(barcodes: Sequence[str], names: Sequence[str], what: str) -> Dict[str, str]:
    if len(barcodes) != len(names):
        raise ValueError(
            f"Number of {what} names ({len(names)}) does not match the number of "
            f"{what} barcodes ({len(barcodes)})."
        )
    return dict(zip(barcodes, names))


def generate_protein_dict(antibody_file: Union[str, Path], antibody_barcodes: Sequence[str]) -> Dict[str, str]:
    """Map antibody barcodes to antibody names listed in the same order."""
    return _zip_names(antibody_barcodes, load_name_list(antibody_file), "antibody")


def generate_treatment_dict(
    treatment_file: Union[str, Path], treatment_barcodes: Sequence[str]
) -> Dict[str, str]:
    """Map treatment barcodes to treatment (group) names listed in the same order."""
    return _zip_names(treatment_barcodes, load_name_list(treatment_file), "treatment")


def generate_class_dict(class_seq_file: Union[str, Path], class_name_file: Union[str, Path]) -> Dict[str, str]:
    """Map class-defining sequences (e.g. guide RNAs) to class names."""
    seqs = [seq.upper() for seq in load_name_list(class_seq_file)]
    if not seqs:
        raise ValueError(f"Could not parse any sequence for guides from {class_seq_file}.")
    names = load_name_list(class_name_file)
    if not names:
        raise ValueError(f"Could not parse any names for guides from {class_name_file}.")
    if len(names) != len(seqs):
        raise ValueError(
            "The number of sequences and names for guide reads does not match "
            f"({len(seqs)} sequences, {len(names)} names)."
        )
    return dict(zip(seqs, names))
