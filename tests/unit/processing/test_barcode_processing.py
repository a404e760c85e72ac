import gzip

import anndata as ad
import numpy as np
import pandas as pd
import pytest

from scdemux.processing import (
    BarcodeInformation,
    BarcodeProcessingHandler,
    generate_barcode_dicts,
    generate_protein_dict,
    generate_treatment_dict,
)

EXPECTED_COUNTS = [
    ("CD3", 2, "0.0", "ctrl", ""),
    ("CD4", 1, "0.0", "ctrl", ""),
    ("CD3", 1, "1.1", "stim", ""),
]


@pytest.fixture
def handler(processing_inputs):
    info = generate_barcode_dicts(processing_inputs["barcodes"], [0, 2], 1, 2)
    handler = BarcodeProcessingHandler(info)
    handler.add_protein_data(generate_protein_dict(processing_inputs["antibodies"], info.antibody_barcodes))
    handler.add_treatment_data(generate_treatment_dict(processing_inputs["groups"], info.treatment_barcodes))
    return handler


def _guide_handler(tmp_path, guides):
    reads = tmp_path / "guide_reads.tsv"
    rows = ["ReadName\tUMI\tBC0\tBC1\tGuide"]
    for idx, (umi, guide) in enumerate(zip(["AAAAAA", "CCCCCC", "GGGGGG", "TTTTTT"], guides)):
        rows.append(f"r{idx}\t{umi}\tAAAA\tGGGG\t{guide}")
    reads.write_text("\n".join(rows) + "\n")
    info = BarcodeInformation([["AAAA", "CCCC"], ["GGGG", "TTTT"]], ci_barcode_indices=[0], antibody_index=1)
    handler = BarcodeProcessingHandler(info, class_mismatches=1)
    handler.add_class_data({"ACGTACGT": "geneA", "TTTTCCCC": "geneB"})
    return handler, reads


class TestParsing:
    def test_parse_file_maps_barcodes(self, handler, processing_inputs):
        reads = handler.parse_file(processing_inputs["reads"])
        assert len(reads) == 6
        assert set(reads["SingleCell_BARCODE"]) == {"0.0", "1.1"}
        assert set(reads["AB_ID"]) == {"CD3", "CD4"}
        assert set(reads["TREATMENT"]) == {"ctrl", "stim"}
        assert (reads["CLASS"] == "").all()

        stats = handler.stats.to_dict()
        assert stats["total_reads"] == 7
        assert stats["parsed_reads"] == 6
        assert stats["unmapped_barcode_reads"] == 1

    def test_small_chunks_give_same_reads(self, handler, processing_inputs):
        reads = handler.parse_file(processing_inputs["reads"], chunksize=2)
        assert len(reads) == 6
        assert handler.stats.to_dict()["total_reads"] == 7

    def test_gzipped_input(self, handler, processing_inputs, tmp_path):
        gz_path = tmp_path / "reads.tsv.gz"
        with gzip.open(gz_path, "wt") as fh:
            fh.write(processing_inputs["reads"].read_text())
        assert len(handler.parse_file(gz_path)) == 6

    def test_names_fall_back_to_sequences(self, processing_inputs):
        info = generate_barcode_dicts(processing_inputs["barcodes"], [0, 2], 1)
        handler = BarcodeProcessingHandler(info)
        reads = handler.parse_file(processing_inputs["reads"])
        assert set(reads["AB_ID"]) == {"GGGG", "TTTT"}
        assert (reads["TREATMENT"] == "").all()

    def test_missing_umi_column(self, handler, tmp_path):
        path = tmp_path / "bad.tsv"
        path.write_text("ReadName\tBC0\tBC1\tBC2\nr1\tAAAA\tGGGG\tACAC\n")
        with pytest.raises(ValueError, match="UMI"):
            handler.parse_file(path)

    def test_barcode_column_count_mismatch(self, handler, tmp_path):
        path = tmp_path / "bad.tsv"
        path.write_text("UMI\tBC0\tBC1\nAAAAAA\tAAAA\tGGGG\n")
        with pytest.raises(ValueError, match="barcode columns"):
            handler.parse_file(path)

    def test_missing_input(self, handler, tmp_path):
        with pytest.raises(FileNotFoundError):
            handler.parse_file(tmp_path / "missing.tsv")


class TestClassAssignment:
    def test_exact_close_and_unknown_guides(self, tmp_path):
        handler, reads_path = _guide_handler(tmp_path, ["ACGTACGT", "ACGTACGA", "GGGGGGGG"])
        reads = handler.parse_file(reads_path)
        assert reads["CLASS"].tolist() == ["geneA", "geneA", "unknown"]
        assert handler.stats.to_dict()["unassigned_class_reads"] == 1

    def test_ambiguous_guide_is_unassigned(self):
        info = BarcodeInformation([["AAAA"], ["GGGG"]], ci_barcode_indices=[0], antibody_index=1)
        handler = BarcodeProcessingHandler(info, class_mismatches=1)
        handler.add_class_data({"AAAA": "x", "AAAT": "y"})
        assert handler.assign_class("AAAC") is None
        assert handler.assign_class("aaaa") == "x"

    def test_missing_guide_column(self, tmp_path, processing_inputs):
        info = generate_barcode_dicts(processing_inputs["barcodes"], [0, 2], 1, 2)
        handler = BarcodeProcessingHandler(info)
        handler.add_class_data({"ACGTACGT": "geneA"})
        with pytest.raises(ValueError, match="Guide"):
            handler.parse_file(processing_inputs["reads"])


class TestCounting:
    def test_counts_per_cell_and_antibody(self, handler, processing_inputs):
        handler.parse_file(processing_inputs["reads"])
        counts = handler.process_barcode_mapping(umi_mismatches=1, threads=1)
        assert list(counts.itertuples(index=False, name=None)) == EXPECTED_COUNTS

        stats = handler.stats.to_dict()
        assert stats["unique_umis"] == 5
        assert stats["corrected_umis"] == 1
        assert stats["molecules"] == 4
        assert stats["duplicate_reads"] == 2

    def test_umi_table(self, handler, processing_inputs):
        handler.parse_file(processing_inputs["reads"])
        handler.process_barcode_mapping(umi_mismatches=1, threads=1)
        collapsed = handler.umi_collapsed
        first_cell = collapsed[(collapsed["SingleCell_BARCODE"] == "0.0") & (collapsed["AB_ID"] == "CD3")]
        assert dict(zip(first_cell["UMI"], first_cell["READS"])) == {"AAAAAA": 3, "CCCCCC": 1}

    def test_exact_umis_only(self, handler, processing_inputs):
        handler.parse_file(processing_inputs["reads"])
        counts = handler.process_barcode_mapping(umi_mismatches=0, threads=1)
        assert counts["AB_COUNT"].tolist() == [3, 1, 1]

    def test_worker_processes_give_same_counts(self, handler, processing_inputs):
        handler.parse_file(processing_inputs["reads"])
        counts = handler.process_barcode_mapping(umi_mismatches=1, threads=2)
        assert list(counts.itertuples(index=False, name=None)) == EXPECTED_COUNTS

    def test_requires_parsed_reads(self, handler):
        with pytest.raises(RuntimeError):
            handler.process_barcode_mapping(umi_mismatches=1)


class TestOutputs:
    def test_write_tables_and_log(self, handler, processing_inputs, tmp_path):
        handler.parse_file(processing_inputs["reads"])
        handler.process_barcode_mapping(umi_mismatches=1, threads=1)
        prefix = tmp_path / "out" / "run1.tsv"

        counts_path = handler.write_ab_counts_per_sc(prefix)
        umi_path = handler.write_umi_collapsed(prefix)
        log_path = handler.write_log(prefix)

        assert counts_path.name == "run1_AB_counts.tsv"
        assert umi_path.name == "run1_UMI_collapsed.tsv"
        assert log_path.name == "run1_log.txt"

        written = pd.read_csv(counts_path, sep="\t", dtype=str, keep_default_na=False)
        assert list(written.columns) == ["AB_ID", "AB_COUNT", "SingleCell_BARCODE", "TREATMENT"]
        assert written["AB_COUNT"].tolist() == ["2", "1", "1"]
        assert "molecules\t4" in log_path.read_text().splitlines()

    def test_write_before_processing(self, handler, tmp_path):
        with pytest.raises(RuntimeError):
            handler.write_ab_counts_per_sc(tmp_path / "run1")

    def test_to_anndata(self, handler, processing_inputs):
        handler.parse_file(processing_inputs["reads"])
        handler.process_barcode_mapping(umi_mismatches=1, threads=1)
        adata = handler.to_anndata()
        assert adata.shape == (2, 2)
        assert list(adata.obs_names) == ["0.0", "1.1"]
        assert list(adata.var_names) == ["CD3", "CD4"]
        np.testing.assert_array_equal(adata.X, np.array([[2, 1], [1, 0]]))
        assert adata.obs["TREATMENT"].tolist() == ["ctrl", "stim"]
        assert "CLASS" not in adata.obs.columns
        assert adata.uns["processing_stats"]["molecules"] == 4

    def test_write_h5ad(self, handler, processing_inputs, tmp_path):
        handler.parse_file(processing_inputs["reads"])
        handler.process_barcode_mapping(umi_mismatches=1, threads=1)
        path = handler.write_h5ad(tmp_path / "run1")
        assert path.name == "run1_AB_counts.h5ad"
        reloaded = ad.read_h5ad(path)
        assert reloaded.shape == (2, 2)
