"""
Quality control applied to every record directly after reading.

Checks run in a fixed order and the first failing one decides the reject
reason. The paired end checks may drop the forward read when single end
fallback is enabled, so the gate can modify the record it inspects.
"""

from typing import Sequence, Union

from .constants import UNAMBIGUOUS_BASES, RejectReason
from .models import Options, PairedEndRecord, SingleEndRecord


def has_ambiguous_base(seq: str) -> bool:
    return any(b not in UNAMBIGUOUS_BASES for b in seq.upper())


def any_quality_below(qualities: Sequence[int], qmin: int) -> bool:
    return any(q < qmin for q in qualities)


def average_quality_below(qualities: Sequence[int], qmin: int) -> bool:
    """An empty quality vector has no average and never fails."""
    if len(qualities) == 0:
        return False
    return sum(qualities) / len(qualities) < qmin


def record_average_quality_below(rec: Union[SingleEndRecord, PairedEndRecord], qmin: int,
                                 single_end_fallback: bool = False) -> bool:
    if isinstance(rec, SingleEndRecord):
        return average_quality_below(rec.sequence_qualities()[0], qmin)

    fw_qualities, rev_qualities = rec.sequence_qualities()
    if average_quality_below(rev_qualities, qmin):
        return True
    if not average_quality_below(fw_qualities, qmin):
        return False
    if not single_end_fallback:
        return True
    rec.drop_forward_read()
    return False


def read_too_short(rec: Union[SingleEndRecord, PairedEndRecord], min_length: int,
                   single_end_fallback: bool = False) -> bool:
    if isinstance(rec, SingleEndRecord):
        return len(rec.seq) < min_length

    if len(rec.rev_seq) < min_length:
        return True
    if len(rec.fw_seq) >= min_length:
        return False
    if not single_end_fallback:
        return True
    rec.drop_forward_read()
    return False


def quality_control(rec: Union[SingleEndRecord, PairedEndRecord], options: Options) -> RejectReason:
    """
    Run the read-level quality checks on a record.

    Args:
        rec: The record to check, after barcode splitting
        options: Thresholds; a threshold of 0 disables its check

    Returns:
        RejectReason.NONE if the record passes, otherwise the first failing check
    """
    if has_ambiguous_base(rec.bc_seq):
        return RejectReason.N_IN_BARCODE
    if options.bc_qmin > 0 and any_quality_below(rec.barcode_qualities, options.bc_qmin):
        return RejectReason.LOW_QUALITY_BARCODE_BASE
    if options.qmin > 0 and record_average_quality_below(rec, options.qmin, options.single_end_fallback):
        return RejectReason.AVERAGE_QUAL_FAIL
    if read_too_short(rec, options.min_read_length, options.single_end_fallback):
        return RejectReason.READ_TOO_SHORT
    return RejectReason.NONE
