"""Shared fixtures: VCF text builders and a clean global config per test."""

import pytest

from pgxrisk.services.pharmacogenomics.config import reset_config

FILEFORMAT = "##fileformat=VCFv4.2"
COLUMN_HEADER = "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO"
COLUMN_HEADER_WITH_SAMPLE = COLUMN_HEADER + "\tFORMAT\tSAMPLE_001"


def build_vcf(*rows, header=COLUMN_HEADER, fileformat=FILEFORMAT):
    lines = []
    if fileformat is not None:
        lines.append(fileformat)
    if header is not None:
        lines.append(header)
    lines.extend(rows)
    return "\n".join(lines) + "\n"


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_vcf():
    """Return the VCF text builder."""
    return build_vcf


@pytest.fixture
def sample_header():
    """#CHROM line with FORMAT and one sample column."""
    return COLUMN_HEADER_WITH_SAMPLE
