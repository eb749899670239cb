"""fqcollapse: Barcode splitting, read QC and exact-duplicate aggregation for FASTQ data."""

__version__ = "0.1.0"

# Re-export key functions and classes that might be useful for programmatic access
from .barcodes import split_barcode, split_barcode_seq
from .collection import BarcodeStats, MultiRecordCollection, get_barcode_stats
from .constants import NO_MATCH, RejectReason, SequencingMode
from .exceptions import FastqIOError, FastqParseError, InputStreamError
from .fastq_io import SeqInputStreams
from .ingest import read_records
from .models import (
    Options,
    PairedEndMultiRecord,
    PairedEndRecord,
    RejectEvent,
    SingleEndMultiRecord,
    SingleEndRecord,
)
from .qc import quality_control

__all__ = [
    "split_barcode",
    "split_barcode_seq",
    "BarcodeStats",
    "MultiRecordCollection",
    "get_barcode_stats",
    "NO_MATCH",
    "RejectReason",
    "SequencingMode",
    "FastqIOError",
    "FastqParseError",
    "InputStreamError",
    "SeqInputStreams",
    "read_records",
    "Options",
    "PairedEndMultiRecord",
    "PairedEndRecord",
    "RejectEvent",
    "SingleEndMultiRecord",
    "SingleEndRecord",
    "quality_control",
]
