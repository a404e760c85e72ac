import logging
from pathlib import Path

import click

from .config.processing_config import ProcessingConfig
from .constants import DEFAULT_CLASS_MISMATCHES, DEFAULT_THREADS, DEFAULT_UMI_MISMATCHES
from .logging_utils import setup_logging
from .processing.pipeline import process_barcodes


def _run(config: ProcessingConfig, verbose: bool) -> None:
    setup_logging(level=logging.DEBUG if verbose else logging.INFO, log_file=config.log_file)
    try:
        outputs = process_barcodes(config)
    except (ValueError, FileNotFoundError) as e:
        raise click.ClickException(str(e)) from e
    for kind, path in outputs.items():
        click.echo(f"{kind}\t{path}")


@click.group()
def cli():
    """Command-line interface for scdemux."""
    pass


####### Process from options ###########
@cli.command()
@click.option("--input", "-i", "input_file", required=True, type=click.Path(exists=True, dir_okay=False),
              help="Demultiplexed reads in tsv format (may be gzipped).")
@click.option("--output", "-o", "output_file", required=True, type=click.Path(dir_okay=False),
              help="Output prefix for the count tables and log.")
@click.option("--barcodeList", "-b", "barcode_file", required=True, type=click.Path(exists=True, dir_okay=False),
              help="File with the comma separated barcode alternatives, one line per variable barcode position.")
@click.option("--antibodyList", "-a", "antibody_file", type=click.Path(exists=True, dir_okay=False),
              help="Antibody names in the same order as the antibody barcodes.")
@click.option("--antibodyIndex", "-x", "antibody_index", required=True, type=int,
              help="Barcode position (0-indexed line of the barcode list) of the antibody barcode.")
@click.option("--groupList", "-g", "treatment_file", type=click.Path(exists=True, dir_okay=False),
              help="Group (e.g. treatment) names in the same order as the group barcodes.")
@click.option("--GroupingIndex", "-y", "treatment_index", type=int,
              help="Barcode position used to group cells.")
@click.option("--classSeq", "-s", "class_seq_file", type=click.Path(exists=True, dir_okay=False),
              help="Sequences defining the origin class of cells (e.g. sgRNAs).")
@click.option("--className", "-n", "class_name_file", type=click.Path(exists=True, dir_okay=False),
              help="Names replacing the class sequences.")
@click.option("--CombinatorialIndexingBarcodeIndices", "-c", "ci_barcode_indices", required=True,
              help="Comma separated barcode positions that together identify a single cell.")
@click.option("--mismatches", "-u", "umi_mismatches", default=DEFAULT_UMI_MISMATCHES, show_default=True, type=int,
              help="Allowed edits between UMIs of the same molecule.")
@click.option("--class-mismatches", "class_mismatches", default=DEFAULT_CLASS_MISMATCHES, show_default=True, type=int,
              help="Allowed edits when assigning guide sequences to classes.")
@click.option("--thread", "-t", "threads", default=DEFAULT_THREADS, show_default=True, type=int, help="Number of worker processes.")
@click.option("--h5ad/--no-h5ad", "write_h5ad", default=False, show_default=True,
              help="Also write the counts as an AnnData h5ad file.")
@click.option("--log-file", "log_file", type=click.Path(dir_okay=False), default=None, help="Also log to this file.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging.")
def process(verbose: bool, **options):
    """Collapse UMIs and count antibodies per single cell."""
    try:
        config = ProcessingConfig.from_dict(options)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    _run(config, verbose)
##########################################


####### Process from a YAML config ###########
@cli.command()
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging.")
def run(config_path: Path, verbose: bool):
    """Process barcodes with the parameters in CONFIG_PATH."""
    try:
        config = ProcessingConfig.from_yaml(config_path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    _run(config, verbose)
##########################################


####### Write a config template ###########
@cli.command()
@click.argument("config_path", type=click.Path(dir_okay=False, path_type=Path))
def template(config_path: Path):
    """Write a YAML config with default values to CONFIG_PATH."""
    written = ProcessingConfig().to_yaml(config_path)
    click.echo(written)
##########################################
