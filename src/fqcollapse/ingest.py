"""
Ingestion loop: read, split, filter and aggregate one batch of records.
"""

import logging
import sys
from collections import Counter
from typing import List, Optional, Protocol

from tqdm import tqdm

from .barcodes import split_barcode
from .collection import MultiRecordCollection
from .constants import PROGRESS_INTERVAL, RejectReason
from .fastq_io import SeqInputStreams
from .models import Options, RejectEvent
from .qc import quality_control


class ProgressReporter(Protocol):
    def update(self, n: int) -> None:
        ...

    def clear(self) -> None:
        ...


class TqdmProgress:
    """Progress bar over the (approximate) number of input bytes."""

    def __init__(self, total_bytes: int, desc: str = "Reading records"):
        self._pbar = tqdm(total=total_bytes, desc=desc, unit="B", unit_scale=True,
                          file=sys.stderr, leave=False)

    def update(self, n: int) -> None:
        self._pbar.update(n)

    def clear(self) -> None:
        self._pbar.clear()

    def close(self) -> None:
        self._pbar.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def read_records(collection: MultiRecordCollection,
                 reject_events: List[RejectEvent],
                 in_streams: SeqInputStreams,
                 options: Options,
                 count: int = 0,
                 progress: Optional[ProgressReporter] = None) -> bool:
    """
    Read all or at most `count` records, aggregating the ones that pass QC.

    The collection is cleared before reading. Rejected reads are appended to
    reject_events. Input errors propagate and abort the batch.

    Args:
        collection: Collection to fill
        reject_events: Reject log to append to
        in_streams: Open input streams
        options: Splitting and QC options
        count: Maximum number of records to read, 0 reads until the streams are exhausted
        progress: Optional reporter receiving byte counts

    Returns:
        True if the input streams are not yet exhausted, False otherwise
    """
    collection.clear()
    compl_count = 0
    block_bytes = 0
    n_rejected = 0

    while not in_streams.at_end():
        if count > 0 and compl_count == count:
            if progress is not None:
                progress.update(block_bytes)
                progress.clear()
            _log_batch(compl_count, n_rejected, collection)
            return not in_streams.at_end()

        rec = in_streams.read_record()
        too_short_for_barcode = False
        if options.barcode_length > 0:
            too_short_for_barcode = not split_barcode(rec, options.barcode_vdj_read, options.barcode_length)

        compl_count += 1
        block_bytes += rec.approx_size_in_bytes()
        if compl_count % PROGRESS_INTERVAL == 0 and progress is not None:
            progress.update(block_bytes)
            block_bytes = 0

        if too_short_for_barcode:
            reason = RejectReason.TOO_SHORT_FOR_BARCODE
        else:
            if options.truncate_length > 0:
                rec.truncate(options.truncate_length)
            reason = quality_control(rec, options)

        if reason == RejectReason.NONE:
            if options.sync_orientation:
                rec.sync_orientation(options.reverse)
            collection.find_or_insert(rec, insert=True)
        else:
            reject_events.append(RejectEvent(rec.id, reason))
            n_rejected += 1

    if progress is not None:
        progress.update(block_bytes)
        progress.clear()
    _log_batch(compl_count, n_rejected, collection)
    return False


def _log_batch(n_records: int, n_rejected: int, collection: MultiRecordCollection) -> None:
    logging.debug(f"Read {n_records:,} records, rejected {n_rejected:,}, "
                  f"{len(collection):,} distinct sequences")


def summarize_rejects(reject_events: List[RejectEvent]) -> Counter:
    """Count reject events by reason."""
    return Counter(event.reason for event in reject_events)
