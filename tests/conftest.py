"""
Shared pytest fixtures for fqcollapse tests.
"""

import gzip
import tempfile
from pathlib import Path

import pytest


def fastq_text(records):
    """Render (id, sequence, qualities) tuples as FASTQ text."""
    lines = []
    for read_id, seq, qualities in records:
        lines.append(f"@{read_id}")
        lines.append(seq)
        lines.append("+")
        lines.append("".join(chr(q + 33) for q in qualities))
    return "\n".join(lines) + "\n"


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after the test."""
    with tempfile.TemporaryDirectory(prefix="fqcollapse_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def write_fastq(temp_dir):
    """Return a function writing records to a (optionally gzipped) FASTQ file in temp_dir."""
    def _write(name, records):
        path = temp_dir / name
        text = fastq_text(records)
        if name.endswith(".gz"):
            with gzip.open(path, "wt") as f:
                f.write(text)
        else:
            path.write_text(text)
        return path
    return _write


@pytest.fixture
def single_end_records():
    """Barcoded single end reads: two duplicates, one distinct read, one without a usable barcode."""
    return [
        ("read1", "ACGTACGTAAGGCCTTAAGG", [30] * 20),
        ("read2", "ACGTACGTAAGGCCTTAAGG", [20] * 20),
        ("read3", "ACGTACGTAAGGCCTTAAGC", [40] * 20),
        ("read4", "ACGNACGTAAGGCCTTAAGG", [40] * 20),
    ]


@pytest.fixture
def paired_end_records():
    """Forward and reverse mates of three fragments; fragments 1 and 2 are identical."""
    forward = [
        ("frag1/1", "ACGTACGTAAGGCCTT", [30] * 16),
        ("frag2/1", "ACGTACGTAAGGCCTT", [10] * 16),
        ("frag3/1", "TTTTACGTAAGGCCTT", [30] * 16),
    ]
    reverse = [
        ("frag1/2", "GGCCAATTGGCCAATT", [40] * 16),
        ("frag2/2", "GGCCAATTGGCCAATT", [20] * 16),
        ("frag3/2", "GGCCAATTGGCCAATT", [40] * 16),
    ]
    return forward, reverse


# Markers for test organization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
