"""
Inline barcode extraction.

The barcode is a fixed-length prefix of one mate. Splitting moves the prefix
into the record's barcode field and keeps the remainder as the read sequence.
Quality vectors are left untouched; records address the barcode and sequence
qualities by position (see models).
"""

from typing import Tuple, Union

from .models import PairedEndRecord, SingleEndRecord


def split_barcode_seq(seq: str, barcode_length: int) -> Tuple[bool, str, str]:
    """
    Separate a barcode prefix from a sequence.

    Args:
        seq: The original sequence
        barcode_length: Length of the barcode, 0 disables splitting

    Returns:
        (ok, barcode, remainder). If the sequence is shorter than the barcode,
        ok is False, the barcode is empty and the sequence is returned unchanged.
    """
    if barcode_length == 0:
        return True, "", seq

    if len(seq) < barcode_length:
        return False, "", seq

    return True, seq[:barcode_length], seq[barcode_length:]


def split_barcode(rec: Union[SingleEndRecord, PairedEndRecord], barcode_vdj_read: bool,
                  barcode_length: int) -> bool:
    """
    Split the barcode off the barcode-carrying read of a record, in place.

    For paired end records the forward read carries the barcode unless
    barcode_vdj_read selects the reverse read. Single end records ignore
    barcode_vdj_read.

    Returns:
        False if the carrying read is too short for the barcode
    """
    if barcode_length == 0:
        return True

    if isinstance(rec, SingleEndRecord):
        ok, rec.bc_seq, rec.seq = split_barcode_seq(rec.seq, barcode_length)
    elif barcode_vdj_read:
        rec.barcode_on_reverse = True
        ok, rec.bc_seq, rec.rev_seq = split_barcode_seq(rec.rev_seq, barcode_length)
    else:
        rec.barcode_on_reverse = False
        ok, rec.bc_seq, rec.fw_seq = split_barcode_seq(rec.fw_seq, barcode_length)
    return ok
