"""
Report writers for aggregated records, barcode statistics and rejects.
"""

import csv
import logging
import os
from typing import List

from .collection import BarcodeStats, MultiRecordCollection
from .constants import PHRED_OFFSET, SequencingMode
from .models import MultiRecord, RejectEvent


def format_mean_qualities(qualities: List[float]) -> str:
    return ",".join(f"{q:.2f}" for q in qualities)


def quality_string(qualities: List[float]) -> str:
    return "".join(chr(int(round(q)) + PHRED_OFFSET) for q in qualities)


def write_multi_records(path: str, collection: MultiRecordCollection) -> None:
    """Write one tab separated line per multi-record with its mean qualities."""
    with open(path, 'w', newline='') as f:
        writer = csv.writer(f, delimiter='\t', lineterminator='\n')
        if collection.mode == SequencingMode.SINGLE_END:
            writer.writerow(['reads', 'barcode', 'sequence', 'mean_qualities'])
        else:
            writer.writerow(['reads', 'barcode', 'forward', 'reverse',
                             'forward_mean_qualities', 'reverse_mean_qualities'])
        for multi_record in collection:
            row = str(multi_record).split('\t')
            row.extend(format_mean_qualities(t) for t in multi_record.quality_tracks())
            writer.writerow(row)
    logging.info(f"Wrote {len(collection):,} aggregated records to {path}")


def _fastq_entry(multi_record: MultiRecord, seq: str, qualities: List[float]) -> str:
    first_id = min(multi_record.ids) if multi_record.ids else "unknown"
    header = f"{first_id} size={multi_record.size}"
    if multi_record.bc_seq:
        header += f" barcode={multi_record.bc_seq}"
    return f"@{header}\n{seq}\n+\n{quality_string(qualities)}\n"


def write_multi_records_fastq(prefix: str, collection: MultiRecordCollection) -> List[str]:
    """
    Write the aggregated records as FASTQ with rounded mean qualities.

    Paired end collections are written to <prefix>_R1.fastq and <prefix>_R2.fastq.

    Returns:
        The paths written
    """
    if collection.mode == SequencingMode.SINGLE_END:
        paths = [f"{prefix}.fastq"]
    else:
        paths = [f"{prefix}_R1.fastq", f"{prefix}_R2.fastq"]

    handles = [open(p, 'w') for p in paths]
    try:
        for multi_record in collection:
            for handle, seq, qualities in zip(handles, multi_record.sequences(),
                                              multi_record.quality_tracks()):
                handle.write(_fastq_entry(multi_record, seq, qualities))
    finally:
        for handle in handles:
            handle.close()
    return paths


def write_barcode_stats(path: str, stats: BarcodeStats) -> None:
    with open(path, 'w', newline='') as f:
        writer = csv.writer(f, delimiter='\t', lineterminator='\n')
        writer.writerow(['barcode', 'reads', 'unique_reads'])
        for row in stats.rows():
            writer.writerow(row)
        writer.writerow(['TOTAL', stats.n_total_reads, stats.n_total_unique_reads])


def write_reject_log(path: str, reject_events: List[RejectEvent]) -> None:
    with open(path, 'w', newline='') as f:
        writer = csv.writer(f, delimiter='\t', lineterminator='\n')
        writer.writerow(['read_id', 'reason'])
        for event in reject_events:
            writer.writerow([event.read_id, event.reason.to_string()])


def create_output_dir(output_dir: str) -> None:
    os.makedirs(output_dir, exist_ok=True)
