"""
Shared constants and enumerations.
"""

from enum import Enum

# Determined barcode bases; U is read as T
UNAMBIGUOUS_BASES = set("ACGTU")

# Position value returned by lookups that found nothing
NO_MATCH = -1

# Number of records between two progress updates
PROGRESS_INTERVAL = 1234

# Quality assigned to every base of FASTA input
DEFAULT_QUALITY = 40

PHRED_OFFSET = 33


class SequencingMode(Enum):
    SINGLE_END = 1
    PAIRED_END = 2

    def to_string(self) -> str:
        if self == SequencingMode.SINGLE_END:
            return 'single_end'
        return 'paired_end'


class RejectReason(Enum):
    """Reasons for excluding a read from aggregation."""
    NONE = 0
    N_IN_BARCODE = 1
    LOW_QUALITY_BARCODE_BASE = 2
    AVERAGE_QUAL_FAIL = 3
    READ_TOO_SHORT = 4
    TOO_SHORT_FOR_BARCODE = 5

    def to_string(self) -> str:
        """Convert reject reason to lowercase string for reports."""
        if self == RejectReason.N_IN_BARCODE:
            return 'n_in_barcode'
        elif self == RejectReason.LOW_QUALITY_BARCODE_BASE:
            return 'low_quality_barcode_base'
        elif self == RejectReason.AVERAGE_QUAL_FAIL:
            return 'average_quality_below_threshold'
        elif self == RejectReason.READ_TOO_SHORT:
            return 'read_too_short'
        elif self == RejectReason.TOO_SHORT_FOR_BARCODE:
            return 'too_short_for_barcode'
        else:
            return 'none'
