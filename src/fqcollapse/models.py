"""
Record types shared by the ingestion pipeline.

Reads come in two shapes, single end and paired end. Both expose the same
small capability set (identifier, barcode, key, per-mate sequences and
quality views) so the aggregation code never has to branch on the shape.
"""

import argparse
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Set, Tuple

from Bio.Seq import reverse_complement

from .constants import RejectReason, SequencingMode


def _tail(qualities: Sequence[int], length: int) -> List[int]:
    """Return the last `length` values of a quality vector."""
    if length == 0:
        return []
    return list(qualities[len(qualities) - length:])


def _truncated(seq: str, qualities: List[int], max_length: int) -> Tuple[str, List[int]]:
    """Cut a sequence to `max_length` bases and drop the qualities of the removed tail."""
    excess = len(seq) - max_length
    if excess <= 0:
        return seq, qualities
    return seq[:max_length], qualities[:len(qualities) - excess]


@dataclass
class Options:
    """Thresholds and switches for splitting and quality control."""
    barcode_length: int = 0
    barcode_vdj_read: bool = False
    bc_qmin: int = 0
    qmin: int = 0
    min_read_length: int = 0
    single_end_fallback: bool = False
    reverse: bool = False
    sync_orientation: bool = False
    truncate_length: int = 0

    def validate(self) -> None:
        for name in ('barcode_length', 'bc_qmin', 'qmin', 'min_read_length', 'truncate_length'):
            if getattr(self, name) < 0:
                raise ValueError(f"Option {name} must not be negative")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> 'Options':
        options = cls(
            barcode_length=args.barcode_length,
            barcode_vdj_read=args.barcode_vdj_read,
            bc_qmin=args.bc_qmin,
            qmin=args.qmin,
            min_read_length=args.min_length,
            single_end_fallback=args.single_end_fallback,
            reverse=args.reverse,
            sync_orientation=args.sync_orientation,
            truncate_length=args.truncate,
        )
        options.validate()
        return options


class RejectEvent(NamedTuple):
    read_id: str
    reason: RejectReason


class SingleEndRecord:
    mode = SequencingMode.SINGLE_END

    def __init__(self, id: str = "", seq: str = "", qualities: Optional[Sequence[int]] = None,
                 bc_seq: str = ""):
        self.id = id
        self.seq = seq
        self.qualities = list(qualities) if qualities is not None else []
        self.bc_seq = bc_seq

    def key(self) -> Tuple[str, ...]:
        return (self.bc_seq, self.seq)

    def sequences(self) -> Tuple[str, ...]:
        return (self.seq,)

    def sequence_qualities(self) -> Tuple[List[int], ...]:
        """Qualities of the bases still present in each mate.

        The quality vector keeps the barcode prefix after splitting, so the
        sequence qualities are the trailing values of the original vector.
        """
        return (_tail(self.qualities, len(self.seq)),)

    @property
    def barcode_qualities(self) -> List[int]:
        return list(self.qualities[:len(self.bc_seq)])

    def sync_orientation(self, reverse: bool) -> None:
        """Reverse complement the read unless the reverse convention is selected."""
        if not reverse:
            self.qualities = _tail(self.qualities, len(self.seq))[::-1]
            self.seq = reverse_complement(self.seq)

    def truncate(self, max_length: int) -> None:
        self.seq, self.qualities = _truncated(self.seq, self.qualities, max_length)

    def approx_size_in_bytes(self) -> int:
        return 2 * len(self.seq) + 2 * len(self.bc_seq) + len(self.id) + 6

    def __str__(self):
        return f"BARCODE\t{self.bc_seq}\tREAD\t{self.seq}"


class PairedEndRecord:
    mode = SequencingMode.PAIRED_END

    def __init__(self, id: str = "", fw_seq: str = "", rev_seq: str = "",
                 fw_qualities: Optional[Sequence[int]] = None,
                 rev_qualities: Optional[Sequence[int]] = None,
                 bc_seq: str = ""):
        self.id = id
        self.fw_seq = fw_seq
        self.rev_seq = rev_seq
        self.fw_qualities = list(fw_qualities) if fw_qualities is not None else []
        self.rev_qualities = list(rev_qualities) if rev_qualities is not None else []
        self.bc_seq = bc_seq
        self.barcode_on_reverse = False  # set by the barcode splitter

    def key(self) -> Tuple[str, ...]:
        return (self.bc_seq, self.fw_seq, self.rev_seq)

    def sequences(self) -> Tuple[str, ...]:
        return (self.fw_seq, self.rev_seq)

    def sequence_qualities(self) -> Tuple[List[int], ...]:
        return (_tail(self.fw_qualities, len(self.fw_seq)),
                _tail(self.rev_qualities, len(self.rev_seq)))

    @property
    def barcode_qualities(self) -> List[int]:
        source = self.rev_qualities if self.barcode_on_reverse else self.fw_qualities
        return list(source[:len(self.bc_seq)])

    def drop_forward_read(self) -> None:
        """Keep only the reverse mate (single end fallback)."""
        self.fw_seq = ""

    def sync_orientation(self, reverse: bool) -> None:
        """By default the reverse mate is reverse complemented, with `reverse` the forward mate."""
        if reverse:
            self.fw_qualities = _tail(self.fw_qualities, len(self.fw_seq))[::-1]
            self.fw_seq = reverse_complement(self.fw_seq)
        else:
            self.rev_qualities = _tail(self.rev_qualities, len(self.rev_seq))[::-1]
            self.rev_seq = reverse_complement(self.rev_seq)

    def truncate(self, max_length: int) -> None:
        """Truncate both mates to at most `max_length` bases."""
        self.fw_seq, self.fw_qualities = _truncated(self.fw_seq, self.fw_qualities, max_length)
        self.rev_seq, self.rev_qualities = _truncated(self.rev_seq, self.rev_qualities, max_length)

    def approx_size_in_bytes(self) -> int:
        return (2 * len(self.fw_seq) + 2 * len(self.rev_seq) + 2 * len(self.bc_seq)
                + 2 * len(self.id) + 12)

    def __str__(self):
        return f"BARCODE\t{self.bc_seq}\tFORWARD\t{self.fw_seq}\tREVERSE\t{self.rev_seq}"


class MultiRecord:
    """Base for aggregated records: a set of read ids plus running mean qualities."""
    mode: SequencingMode

    def __init__(self, bc_seq: str = "", ids: Optional[Set[str]] = None):
        self.bc_seq = bc_seq
        self.ids: Set[str] = set(ids) if ids else set()

    @property
    def size(self) -> int:
        return len(self.ids)

    def key(self) -> Tuple[str, ...]:
        return (self.bc_seq,) + self.sequences()

    def sequences(self) -> Tuple[str, ...]:
        raise NotImplementedError

    def quality_tracks(self) -> List[List[float]]:
        """Mean quality lists, one per mate, in the order of sequences()."""
        raise NotImplementedError

    def __str__(self):
        return "\t".join([str(self.size), self.bc_seq] + list(self.sequences()))


class SingleEndMultiRecord(MultiRecord):
    mode = SequencingMode.SINGLE_END

    def __init__(self, bc_seq: str = "", seq: str = "", ids: Optional[Set[str]] = None,
                 qualities: Optional[List[float]] = None):
        super().__init__(bc_seq, ids)
        self.seq = seq
        self.qualities: List[float] = list(qualities) if qualities else []

    def sequences(self) -> Tuple[str, ...]:
        return (self.seq,)

    def quality_tracks(self) -> List[List[float]]:
        return [self.qualities]


class PairedEndMultiRecord(MultiRecord):
    mode = SequencingMode.PAIRED_END

    def __init__(self, bc_seq: str = "", fw_seq: str = "", rev_seq: str = "",
                 ids: Optional[Set[str]] = None,
                 fw_qualities: Optional[List[float]] = None,
                 rev_qualities: Optional[List[float]] = None):
        super().__init__(bc_seq, ids)
        self.fw_seq = fw_seq
        self.rev_seq = rev_seq
        self.fw_qualities: List[float] = list(fw_qualities) if fw_qualities else []
        self.rev_qualities: List[float] = list(rev_qualities) if rev_qualities else []

    def sequences(self) -> Tuple[str, ...]:
        return (self.fw_seq, self.rev_seq)

    def quality_tracks(self) -> List[List[float]]:
        return [self.fw_qualities, self.rev_qualities]


MULTI_RECORD_TYPES = {
    SequencingMode.SINGLE_END: SingleEndMultiRecord,
    SequencingMode.PAIRED_END: PairedEndMultiRecord,
}
