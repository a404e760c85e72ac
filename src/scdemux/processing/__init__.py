from .barcode_dicts import (
    BarcodeInformation,
    generate_barcode_dicts,
    generate_class_dict,
    generate_protein_dict,
    generate_treatment_dict,
    load_barcode_list,
    load_name_list,
)
from .barcode_processing import BarcodeProcessingHandler, ProcessingStats
from .pipeline import process_barcodes
from .umi_collapse import cluster_umis, collapse_group

__all__ = [
    "BarcodeInformation",
    "BarcodeProcessingHandler",
    "ProcessingStats",
    "cluster_umis",
    "collapse_group",
    "generate_barcode_dicts",
    "generate_class_dict",
    "generate_protein_dict",
    "generate_treatment_dict",
    "load_barcode_list",
    "load_name_list",
    "process_barcodes",
]
