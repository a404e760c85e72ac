"""End-to-end barcode processing run driven by a ProcessingConfig."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from scdemux.config.processing_config import ProcessingConfig
from scdemux.logging_utils import get_logger

from .barcode_dicts import (
    generate_barcode_dicts,
    generate_class_dict,
    generate_protein_dict,
    generate_treatment_dict,
)
from .barcode_processing import BarcodeProcessingHandler

logger = get_logger(__name__)


def process_barcodes(config: ProcessingConfig) -> Dict[str, Path]:
    """
    Run the barcode processing steps for one input table.

    1. Load barcode alternatives and the antibody/treatment/class name tables.
    2. Parse the demultiplexed reads.
    3. Collapse UMIs and count molecules per cell and antibody.
    4. Write the log, the UMI table, the count table and optionally an h5ad.

    Returns
    -------
    Dict[str, Path]
        Paths of the written outputs keyed by kind.
    """
    config.validate()

    barcode_info = generate_barcode_dicts(
        config.barcode_file,
        config.ci_barcode_indices,
        config.antibody_index,
        config.treatment_index,
    )
    handler = BarcodeProcessingHandler(barcode_info, class_mismatches=config.class_mismatches)

    if config.antibody_file:
        handler.add_protein_data(generate_protein_dict(config.antibody_file, barcode_info.antibody_barcodes))
    if config.treatment_file:
        handler.add_treatment_data(
            generate_treatment_dict(config.treatment_file, barcode_info.treatment_barcodes)
        )
    if config.class_seq_file:
        handler.add_class_data(generate_class_dict(config.class_seq_file, config.class_name_file))

    handler.parse_file(config.input_file)
    handler.process_barcode_mapping(config.umi_mismatches, config.threads)

    outputs = {
        "log": handler.write_log(config.output_file),
        "umi_collapsed": handler.write_umi_collapsed(config.output_file),
        "ab_counts": handler.write_ab_counts_per_sc(config.output_file),
    }
    if config.write_h5ad:
        outputs["h5ad"] = handler.write_h5ad(config.output_file)
    logger.info("Barcode processing finished: %s", ", ".join(str(p) for p in outputs.values()))
    return outputs
