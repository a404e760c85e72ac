"""scdemux"""

from importlib.metadata import version

from . import config, matching, processing
from .matching import (
    levenshtein,
    output_sensitive_match,
    saturating_add,
)
from .processing import BarcodeProcessingHandler, process_barcodes

package_name = "scdemux"
__version__ = version(package_name)

__all__ = [
    "BarcodeProcessingHandler",
    "config",
    "levenshtein",
    "matching",
    "output_sensitive_match",
    "process_barcodes",
    "processing",
    "saturating_add",
]
