"""
Aggregation of identical reads into multi-records.

A MultiRecordCollection holds every multi-record of one pass in an
append-only list and indexes it with a nested dict keyed by barcode, then
sequence (and, for paired end data, the reverse sequence). The leaves of the
nested dict are positions into the list.
"""

import logging
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from .constants import NO_MATCH, SequencingMode
from .models import MULTI_RECORD_TYPES, MultiRecord, PairedEndRecord, SingleEndRecord

SequenceRecord = Union[SingleEndRecord, PairedEndRecord]


def update_mean_qualities(target: List[float], weight: int, qualities: Sequence[int]) -> None:
    """
    Fold one quality vector into a running mean, in place.

    Args:
        target: Current mean qualities over `weight` contributions
        weight: Number of reads that contributed to `target`
        qualities: Qualities of the read being added
    """
    assert (len(target) == 0 and weight == 0) or (len(target) == len(qualities) and weight > 0), \
        "Mean quality vector does not match the read length"
    if weight == 0:
        target[:] = [float(q) for q in qualities]
        return
    for i, q in enumerate(qualities):
        target[i] = (target[i] * weight + q) / (weight + 1)


def combine_mean_qualities(target: List[float], target_weight: int,
                           other: Sequence[float], other_weight: int) -> None:
    """Combine two running means weighted by their read counts, in place."""
    if other_weight == 0:
        return
    assert (len(target) == 0 and target_weight == 0) or (len(target) == len(other) and target_weight > 0), \
        "Mean quality vectors differ in length"
    if target_weight == 0:
        target[:] = list(other)
        return
    total = target_weight + other_weight
    for i in range(len(target)):
        target[i] = (target_weight * target[i] + other_weight * other[i]) / total


class BarcodeCount(NamedTuple):
    barcode: str
    reads: int
    unique_reads: int


class BarcodeStats:
    """Per-barcode read counts of a collection."""

    def __init__(self):
        self.bc_seqs: List[str] = []
        self.n_reads: List[int] = []
        self.n_unique_reads: List[int] = []
        self.n_total_reads = 0
        self.n_total_unique_reads = 0

    def add(self, barcode: str, reads: int, unique_reads: int) -> None:
        self.bc_seqs.append(barcode)
        self.n_reads.append(reads)
        self.n_unique_reads.append(unique_reads)
        self.n_total_reads += reads
        self.n_total_unique_reads += unique_reads

    def rows(self) -> List[BarcodeCount]:
        return [BarcodeCount(*row) for row in zip(self.bc_seqs, self.n_reads, self.n_unique_reads)]

    def __len__(self):
        return len(self.bc_seqs)


class MultiRecordCollection:
    """Exact-match index of multi-records for one sequencing mode."""

    def __init__(self, mode: SequencingMode):
        self.mode = mode
        self._depth = 2 if mode == SequencingMode.SINGLE_END else 3
        self._multi_record_type = MULTI_RECORD_TYPES[mode]
        self.multi_records: List[MultiRecord] = []
        self.bc_map: Dict[str, dict] = {}

    def __len__(self):
        return len(self.multi_records)

    def __iter__(self) -> Iterator[MultiRecord]:
        return iter(self.multi_records)

    def __str__(self):
        return "\n".join(str(m) for m in self.multi_records)

    def get(self, idx: int) -> MultiRecord:
        assert 0 <= idx < len(self.multi_records), f"Multi-record position {idx} out of range"
        return self.multi_records[idx]

    def clear(self) -> None:
        self.multi_records = []
        self.bc_map = {}

    def _find_key(self, key: Tuple[str, ...]) -> int:
        assert len(key) == self._depth, f"Key {key} does not fit {self.mode.to_string()} data"
        node = self.bc_map
        for part in key:
            node = node.get(part)
            if node is None:
                return NO_MATCH
        return node

    def _map_key(self, key: Tuple[str, ...], idx: int) -> None:
        node = self.bc_map
        for part in key[:-1]:
            node = node.setdefault(part, {})
        assert key[-1] not in node, f"Key {key} is already mapped"
        node[key[-1]] = idx

    def _append(self, multi_record: MultiRecord) -> MultiRecord:
        assert multi_record.mode == self.mode
        self.multi_records.append(multi_record)
        self._map_key(multi_record.key(), len(self.multi_records) - 1)
        return multi_record

    def find_position(self, rec: SequenceRecord) -> int:
        """
        Position of the multi-record matching a record's barcode and sequences.

        Returns:
            The position in the collection, or NO_MATCH
        """
        return self._find_key(rec.key())

    def new_multi_record(self, rec: SequenceRecord) -> MultiRecord:
        """Create a multi-record holding a single read."""
        multi_record = self._multi_record_type(rec.bc_seq, *rec.sequences(), ids={rec.id})
        for track, qualities in zip(multi_record.quality_tracks(), rec.sequence_qualities()):
            update_mean_qualities(track, 0, qualities)
        return multi_record

    def _add_read(self, multi_record: MultiRecord, rec: SequenceRecord) -> None:
        old_size = multi_record.size
        multi_record.ids.add(rec.id)
        assert old_size < multi_record.size
        for track, qualities in zip(multi_record.quality_tracks(), rec.sequence_qualities()):
            update_mean_qualities(track, old_size, qualities)

    def _copy(self, multi_record: MultiRecord) -> MultiRecord:
        copied = self._multi_record_type(multi_record.bc_seq, *multi_record.sequences(), ids=multi_record.ids)
        for track, other in zip(copied.quality_tracks(), multi_record.quality_tracks()):
            track[:] = other
        return copied

    def find_or_insert(self, rec: SequenceRecord, insert: bool = False) -> Optional[MultiRecord]:
        """
        Find the multi-record containing a record, optionally adding it.

        Matching ignores the read id. With insert=True a read whose id is not yet
        part of the match is folded into it, and a record without a match starts
        a new multi-record. Reads already present are never counted twice.

        Returns:
            The matching (or new) multi-record, None if nothing matched and
            insert is False
        """
        idx = self.find_position(rec)
        if idx != NO_MATCH:
            multi_record = self.get(idx)
            if rec.id not in multi_record.ids and insert:
                self._add_read(multi_record, rec)
            return multi_record

        if not insert:
            return None
        return self._append(self.new_multi_record(rec))

    def merge(self, multi_record: MultiRecord) -> MultiRecord:
        """
        Merge a multi-record built elsewhere, e.g. from another batch.

        The incoming multi-record is never stored itself; an unmatched one is
        copied into this collection.

        Returns:
            The multi-record in this collection that now holds the reads
        """
        idx = self._find_key(multi_record.key())
        if idx == NO_MATCH:
            return self._append(self._copy(multi_record))

        existing = self.get(idx)
        for track, other in zip(existing.quality_tracks(), multi_record.quality_tracks()):
            combine_mean_qualities(track, existing.size, other, multi_record.size)
        existing.ids.update(multi_record.ids)
        return existing

    def merge_collection(self, other: 'MultiRecordCollection') -> None:
        for multi_record in other:
            self.merge(multi_record)

    def _positions(self, node) -> Iterator[int]:
        if isinstance(node, int):
            yield node
            return
        for child in node.values():
            yield from self._positions(child)

    def barcode_stats(self) -> BarcodeStats:
        """Count total and unique reads for every barcode with at least one read."""
        stats = BarcodeStats()
        for barcode, seq_map in self.bc_map.items():
            reads = 0
            unique_reads = 0
            for idx in self._positions(seq_map):
                size = self.get(idx).size
                reads += size
                if size > 0:
                    unique_reads += 1
            if reads > 0:
                stats.add(barcode, reads, unique_reads)
        return stats

    def format_tree(self) -> str:
        """Indented barcode / sequence / read id listing for debugging."""
        lines = []

        def _walk(node, depth):
            for part, child in node.items():
                lines.append("    " * depth + part)
                if isinstance(child, int):
                    for read_id in sorted(self.get(child).ids):
                        lines.append("    " * self._depth + read_id)
                else:
                    _walk(child, depth + 1)

        _walk(self.bc_map, 0)
        return "\n".join(lines)

    def log_tree(self) -> None:
        for line in self.format_tree().splitlines():
            logging.debug(line)


def get_barcode_stats(collection: MultiRecordCollection) -> BarcodeStats:
    return collection.barcode_stats()
