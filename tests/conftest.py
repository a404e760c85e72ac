from __future__ import annotations

import logging
from pathlib import Path

import pytest

READS_TSV = (
    "ReadName\tUMI\tBC0\tBC1\tBC2\n"
    "r1\tAAAAAA\tAAAA\tGGGG\tACAC\n"
    "r2\tAAAAAA\tAAAA\tGGGG\tACAC\n"
    "r3\tAAAAAT\tAAAA\tGGGG\tACAC\n"
    "r4\tCCCCCC\tAAAA\tGGGG\tACAC\n"
    "r5\tGGGGGG\tAAAA\tTTTT\tACAC\n"
    "r6\tAAAAAA\tCCCC\tGGGG\tGTGT\n"
    "r7\tAAAAAA\tNNNN\tGGGG\tACAC\n"
)


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark all tests under tests/unit as unit tests."""
    for item in items:
        path = Path(str(item.fspath)).as_posix()
        if "/tests/unit/" in f"/{path}":
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def _reset_scdemux_logging():
    """Drop handlers the CLI attached so later tests do not log to closed streams."""
    yield
    logger = logging.getLogger("scdemux")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def package_caplog(caplog):
    """caplog wired to the scdemux logger, which does not propagate once configured."""
    logger = logging.getLogger("scdemux")
    logger.propagate = False
    logger.addHandler(caplog.handler)
    yield caplog
    logger.removeHandler(caplog.handler)


@pytest.fixture
def processing_inputs(tmp_path: Path) -> dict:
    """Small barcode layout: positions 0 and 2 identify cells, 1 is the antibody, 2 the treatment.

    Expected molecules: cell 0.0 has 2 CD3 and 1 CD4, cell 1.1 has 1 CD3;
    read r7 carries an unknown barcode.
    """
    files = {
        "barcodes": tmp_path / "barcodes.txt",
        "antibodies": tmp_path / "antibodies.txt",
        "groups": tmp_path / "groups.txt",
        "reads": tmp_path / "reads.tsv",
    }
    files["barcodes"].write_text("AAAA,CCCC\nGGGG,TTTT\nACAC,GTGT\n")
    files["antibodies"].write_text("CD3,CD4\n")
    files["groups"].write_text("ctrl,stim\n")
    files["reads"].write_text(READS_TSV)
    return files
