"""Bounded edit-distance matching of barcodes and UMIs."""

from .boundary_extension import (
    back_barcode_mapping_extension,
    extend_alignment,
    front_barcode_mapping_extension,
)
from .front_propagation import DiagonalFront, advance_front, output_sensitive_match
from .levenshtein import EditCell, MatrixBuffer, levenshtein
from .longest_common_prefix import longest_common_prefix
from .saturating import UINT64_MAX, SaturatingCounter, saturating_add
from .types import AlignmentResult, MatchScore

__all__ = [
    "AlignmentResult",
    "DiagonalFront",
    "EditCell",
    "MatchScore",
    "MatrixBuffer",
    "SaturatingCounter",
    "UINT64_MAX",
    "advance_front",
    "back_barcode_mapping_extension",
    "extend_alignment",
    "front_barcode_mapping_extension",
    "levenshtein",
    "longest_common_prefix",
    "output_sensitive_match",
    "saturating_add",
]
