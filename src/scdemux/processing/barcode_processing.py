"""Aggregation of demultiplexed reads into per-cell antibody counts."""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from itertools import repeat
from pathlib import Path
from typing import Dict, List, Optional, Union

import anndata as ad
import numpy as np
import pandas as pd
from tqdm import tqdm

from scdemux.constants import (
    AB_COUNT_COLUMN,
    AB_ID_COLUMN,
    CLASS_COLUMN,
    DEFAULT_CLASS_MISMATCHES,
    GUIDE_COLUMN,
    OUTPUT_SUFFIXES,
    RESERVED_INPUT_COLUMNS,
    SINGLE_CELL_COLUMN,
    SINGLE_CELL_ID_DELIMITER,
    TREATMENT_COLUMN,
    UMI_COLUMN,
    UNKNOWN_LABEL,
)
from scdemux.logging_utils import get_logger
from scdemux.matching import SaturatingCounter, output_sensitive_match
from scdemux.parallel_utils import pool_chunksize, resolve_n_jobs
from scdemux.readwrite import count_lines, output_path, write_h5ad, write_tsv

from .barcode_dicts import BarcodeInformation
from .umi_collapse import collapse_group

logger = get_logger(__name__)

READS_COLUMN = "READS"
GROUP_COLUMNS = [SINGLE_CELL_COLUMN, AB_ID_COLUMN, TREATMENT_COLUMN, CLASS_COLUMN]


@dataclass
class ProcessingStats:
    """Run-level tallies reported in the log file."""

    total_reads: SaturatingCounter = field(default_factory=SaturatingCounter)
    parsed_reads: SaturatingCounter = field(default_factory=SaturatingCounter)
    unmapped_barcode_reads: SaturatingCounter = field(default_factory=SaturatingCounter)
    unassigned_class_reads: SaturatingCounter = field(default_factory=SaturatingCounter)
    unique_umis: SaturatingCounter = field(default_factory=SaturatingCounter)
    corrected_umis: SaturatingCounter = field(default_factory=SaturatingCounter)
    duplicate_reads: SaturatingCounter = field(default_factory=SaturatingCounter)
    molecules: SaturatingCounter = field(default_factory=SaturatingCounter)

    def to_dict(self) -> Dict[str, int]:
        return {name: int(counter) for name, counter in vars(self).items()}


class BarcodeProcessingHandler:
    """
    Turns a table of demultiplexed reads into UMI-collapsed antibody counts.

    Typical use::

        handler = BarcodeProcessingHandler(barcode_info)
        handler.add_protein_data(protein_dict)
        handler.parse_file("reads.tsv.gz")
        handler.process_barcode_mapping(umi_mismatches=2, threads=4)
        handler.write_ab_counts_per_sc("out/run1")
    """

    def __init__(self, barcode_info: BarcodeInformation, class_mismatches: int = DEFAULT_CLASS_MISMATCHES):
        self.barcode_info = barcode_info
        self.class_mismatches = class_mismatches
        self.protein_dict: Dict[str, str] = {}
        self.treatment_dict: Dict[str, str] = {}
        self.class_dict: Dict[str, str] = {}
        self.stats = ProcessingStats()

        self.reads: Optional[pd.DataFrame] = None
        self.umi_collapsed: Optional[pd.DataFrame] = None
        self.ab_counts: Optional[pd.DataFrame] = None
        self._class_cache: Dict[str, Optional[str]] = {}

    # ------------------------------------------------------------------ #
    # Name lookups
    # ------------------------------------------------------------------ #
    def add_protein_data(self, protein_dict: Dict[str, str]) -> None:
        self.protein_dict = {seq.upper(): name for seq, name in protein_dict.items()}

    def add_treatment_data(self, treatment_dict: Dict[str, str]) -> None:
        self.treatment_dict = {seq.upper(): name for seq, name in treatment_dict.items()}

    def add_class_data(self, class_dict: Dict[str, str]) -> None:
        self.class_dict = {seq.upper(): name for seq, name in class_dict.items()}
        self._class_cache.clear()

    def assign_class(self, guide: str) -> Optional[str]:
        """Class name of a guide sequence: exact hit, else the unique closest within budget."""
        guide = guide.upper()
        if guide in self._class_cache:
            return self._class_cache[guide]

        name = self.class_dict.get(guide)
        if name is None and guide:
            best_score = None
            best_names: List[str] = []
            for seq, candidate in self.class_dict.items():
                result = output_sensitive_match(guide, seq, self.class_mismatches)
                if not result.success:
                    continue
                if best_score is None or result.score < best_score:
                    best_score = result.score
                    best_names = [candidate]
                elif result.score == best_score:
                    best_names.append(candidate)
            if len(best_names) == 1:
                name = best_names[0]

        self._class_cache[guide] = name
        return name

    # ------------------------------------------------------------------ #
    # Parsing
    # ------------------------------------------------------------------ #
    def parse_file(self, in_file: Union[str, Path], chunksize: int = 100_000) -> pd.DataFrame:
        """
        Parse a tab-separated table of demultiplexed reads.

        The header must contain a ``UMI`` column; ``ReadName`` and ``Guide``
        are optional. All other columns are the variable barcode positions,
        in the same order as the lines of the barcode list.
        """
        n_lines = count_lines(in_file)
        logger.info("Parsing %s (%d lines).", in_file, n_lines)

        frames = []
        with pd.read_csv(
            in_file,
            sep="\t",
            dtype=str,
            keep_default_na=False,
            compression="infer",
            chunksize=chunksize,
        ) as reader, tqdm(total=max(n_lines - 1, 0), desc="Parsing reads", unit="read") as progress:
            for chunk in reader:
                frames.append(self._parse_chunk(chunk))
                progress.update(len(chunk))

        if frames:
            self.reads = pd.concat(frames, ignore_index=True)
        else:
            self.reads = pd.DataFrame(columns=[UMI_COLUMN] + GROUP_COLUMNS)
        logger.info(
            "Kept %d of %d reads (%d with unknown barcodes).",
            int(self.stats.parsed_reads),
            int(self.stats.total_reads),
            int(self.stats.unmapped_barcode_reads),
        )
        return self.reads

    def _parse_chunk(self, chunk: pd.DataFrame) -> pd.DataFrame:
        info = self.barcode_info
        if UMI_COLUMN not in chunk.columns:
            raise ValueError(f"Input table has no '{UMI_COLUMN}' column.")
        barcode_columns = [col for col in chunk.columns if col not in RESERVED_INPUT_COLUMNS]
        if len(barcode_columns) != info.n_positions:
            raise ValueError(
                f"Input table has {len(barcode_columns)} barcode columns but the barcode list "
                f"defines {info.n_positions} positions."
            )
        if self.class_dict and GUIDE_COLUMN not in chunk.columns:
            raise ValueError(f"Class data was given but the input table has no '{GUIDE_COLUMN}' column.")

        self.stats.total_reads.add(len(chunk))

        used_positions = list(info.ci_barcode_indices) + [info.antibody_index]
        if info.treatment_index is not None:
            used_positions.append(info.treatment_index)

        indices = {}
        for position in set(used_positions):
            column = chunk[barcode_columns[position]].str.upper()
            indices[position] = column.map(info.barcode_index[position])
        known = np.ones(len(chunk), dtype=bool)
        for series in indices.values():
            known &= series.notna().to_numpy()

        self.stats.unmapped_barcode_reads.add(int((~known).sum()))
        chunk = chunk.loc[known]
        self.stats.parsed_reads.add(len(chunk))

        out = pd.DataFrame(index=chunk.index)
        out[UMI_COLUMN] = chunk[UMI_COLUMN].str.upper()
        out[SINGLE_CELL_COLUMN] = [
            SINGLE_CELL_ID_DELIMITER.join(str(int(v)) for v in row)
            for row in zip(*(indices[pos].loc[known] for pos in info.ci_barcode_indices))
        ]

        antibody_seqs = chunk[barcode_columns[info.antibody_index]].str.upper()
        out[AB_ID_COLUMN] = antibody_seqs.map(lambda seq: self.protein_dict.get(seq, seq))

        if info.treatment_index is not None:
            treatment_seqs = chunk[barcode_columns[info.treatment_index]].str.upper()
            out[TREATMENT_COLUMN] = treatment_seqs.map(lambda seq: self.treatment_dict.get(seq, seq))
        else:
            out[TREATMENT_COLUMN] = ""

        if self.class_dict:
            classes = chunk[GUIDE_COLUMN].map(self.assign_class)
            self.stats.unassigned_class_reads.add(int(classes.isna().sum()))
            out[CLASS_COLUMN] = classes.fillna(UNKNOWN_LABEL)
        else:
            out[CLASS_COLUMN] = ""

        return out.reset_index(drop=True)

    # ------------------------------------------------------------------ #
    # UMI collapsing and counting
    # ------------------------------------------------------------------ #
    def process_barcode_mapping(self, umi_mismatches: int, threads: int = 1) -> pd.DataFrame:
        """
        Collapse UMIs per cell and antibody, drop duplicate reads and count molecules.

        Returns the antibody count table.
        """
        if self.reads is None:
            raise RuntimeError("parse_file must be called before process_barcode_mapping.")

        keys = []
        umi_lists = []
        for key, umis in self.reads.groupby(GROUP_COLUMNS, sort=True)[UMI_COLUMN]:
            keys.append(key)
            umi_lists.append(umis.tolist())

        n_jobs = resolve_n_jobs(threads)
        if n_jobs == 1 or len(umi_lists) < 2:
            results = [
                collapse_group(umis, umi_mismatches)
                for umis in tqdm(umi_lists, desc="Collapsing UMIs", unit="group")
            ]
        else:
            chunksize = pool_chunksize(len(umi_lists), n_jobs)
            with ProcessPoolExecutor(max_workers=n_jobs) as executor:
                results = list(
                    tqdm(
                        executor.map(collapse_group, umi_lists, repeat(umi_mismatches), chunksize=chunksize),
                        desc="Collapsing UMIs",
                        unit="group",
                        total=len(umi_lists),
                    )
                )

        collapsed_rows = []
        count_rows = []
        for key, umis, (n_molecules, mapping) in zip(keys, umi_lists, results):
            self.stats.unique_umis.add(len(mapping))
            self.stats.corrected_umis.add(sum(1 for umi, rep in mapping.items() if umi != rep))
            self.stats.molecules.add(n_molecules)
            self.stats.duplicate_reads.add(len(umis) - n_molecules)

            reads_per_molecule: Dict[str, int] = {}
            for umi in umis:
                rep = mapping[umi]
                reads_per_molecule[rep] = reads_per_molecule.get(rep, 0) + 1
            for rep, n_reads in sorted(reads_per_molecule.items()):
                collapsed_rows.append((rep, *key, n_reads))
            count_rows.append((key[1], n_molecules, key[0], key[2], key[3]))

        self.umi_collapsed = pd.DataFrame(collapsed_rows, columns=[UMI_COLUMN] + GROUP_COLUMNS + [READS_COLUMN])
        self.ab_counts = pd.DataFrame(
            count_rows,
            columns=[AB_ID_COLUMN, AB_COUNT_COLUMN, SINGLE_CELL_COLUMN, TREATMENT_COLUMN, CLASS_COLUMN],
        )
        logger.info(
            "Collapsed %d reads into %d molecules across %d cell/antibody groups.",
            len(self.reads),
            int(self.stats.molecules),
            len(keys),
        )
        return self.ab_counts

    # ------------------------------------------------------------------ #
    # Output
    # ------------------------------------------------------------------ #
    def _require_counts(self) -> None:
        if self.ab_counts is None:
            raise RuntimeError("process_barcode_mapping must be called before writing results.")

    def _output_columns(self, columns: List[str]) -> List[str]:
        if not self.class_dict:
            columns = [col for col in columns if col != CLASS_COLUMN]
        return columns

    def write_ab_counts_per_sc(self, out_file: Union[str, Path]) -> Path:
        self._require_counts()
        columns = self._output_columns(list(self.ab_counts.columns))
        return write_tsv(self.ab_counts[columns], output_path(out_file, OUTPUT_SUFFIXES["ab_counts"]))

    def write_umi_collapsed(self, out_file: Union[str, Path]) -> Path:
        self._require_counts()
        columns = self._output_columns(list(self.umi_collapsed.columns))
        return write_tsv(self.umi_collapsed[columns], output_path(out_file, OUTPUT_SUFFIXES["umi_collapsed"]))

    def write_log(self, out_file: Union[str, Path]) -> Path:
        path = output_path(out_file, OUTPUT_SUFFIXES["log"])
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [f"{name}\t{value}" for name, value in self.stats.to_dict().items()]
        path.write_text("\n".join(lines) + "\n", encoding="utf8")
        logger.info("Wrote processing log to %s", path)
        return path

    def to_anndata(self) -> ad.AnnData:
        """Cells x antibodies count matrix; obs carries treatment and class labels."""
        self._require_counts()
        counts = self.ab_counts
        matrix = counts.pivot_table(
            index=SINGLE_CELL_COLUMN,
            columns=AB_ID_COLUMN,
            values=AB_COUNT_COLUMN,
            aggfunc="sum",
            fill_value=0,
        ).sort_index(axis=0).sort_index(axis=1)

        obs = (
            counts.drop_duplicates(SINGLE_CELL_COLUMN)
            .set_index(SINGLE_CELL_COLUMN)[[TREATMENT_COLUMN, CLASS_COLUMN]]
            .reindex(matrix.index)
        )
        obs = obs[self._output_columns([TREATMENT_COLUMN, CLASS_COLUMN])]
        obs.index = obs.index.astype(str)
        var = pd.DataFrame(index=matrix.columns.astype(str))
        adata = ad.AnnData(X=matrix.to_numpy(dtype=np.int64), obs=obs, var=var)
        adata.uns["processing_stats"] = self.stats.to_dict()
        return adata

    def write_h5ad(self, out_file: Union[str, Path]) -> Path:
        return write_h5ad(self.to_anndata(), output_path(out_file, OUTPUT_SUFFIXES["h5ad"]))
