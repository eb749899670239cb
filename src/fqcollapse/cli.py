#!/usr/bin/env python3

"""
fqcollapse: collapse identical FASTQ reads into aggregated records.

Reads single end or paired end FASTQ files, optionally splits an inline
barcode, filters reads by quality and length, and reports one record per
distinct (barcode, sequence[, mate sequence]) with the number of reads and
their mean per-position qualities.
"""

import argparse
import logging
import os
import sys
import timeit

from .collection import MultiRecordCollection
from .exceptions import InputStreamError
from .fastq_io import SeqInputStreams
from .ingest import TqdmProgress, read_records, summarize_rejects
from .models import Options
from .output import (create_output_dir, write_barcode_stats, write_multi_records,
                     write_multi_records_fastq, write_reject_log)


def version():
    # 0.1 - single end and paired end aggregation with barcode splitting
    return "fqcollapse version 0.1.0"


def parse_args(argv):
    parser = argparse.ArgumentParser(description="fqcollapse: Collapse identical reads of barcoded FASTQ files.")

    parser.add_argument("sequence_file", help="FASTQ (or FASTA) file, gzipped or plain text; the forward reads for paired end data")
    parser.add_argument("mate_file", nargs='?', default=None, help="Reverse reads for paired end data")

    parser.add_argument("-b", "--barcode-length", type=int, default=0, help="Length of the inline barcode prefix (default: 0, no barcode)")
    parser.add_argument("--barcode-vdj-read", action="store_true", help="The barcode is on the reverse read (paired end only)")
    parser.add_argument("--bc-qmin", type=int, default=0, help="Minimum quality of every barcode base (default: 0, disabled)")
    parser.add_argument("-q", "--qmin", type=int, default=0, help="Minimum average read quality (default: 0, disabled)")
    parser.add_argument("-m", "--min-length", type=int, default=0, help="Minimum read length after barcode removal (default: 0)")
    parser.add_argument("-t", "--truncate", type=int, default=0, help="Truncate reads to at most this many bases after barcode removal (default: 0, disabled)")
    parser.add_argument("--single-end-fallback", action="store_true", help="Keep paired end records with an unusable forward read using only the reverse read")
    parser.add_argument("-r", "--reverse", action="store_true", help="Reads are in reverse orientation; affects --sync-orientation")
    parser.add_argument("--sync-orientation", action="store_true", help="Reverse complement reads into a common orientation before aggregation")
    parser.add_argument("-n", "--batch-size", type=int, default=0, help="Number of records aggregated per batch (default: 0, all at once)")
    parser.add_argument("-O", "--output-dir", default=".", help="Directory for output files (default: .)")
    parser.add_argument("-P", "--output-file-prefix", default="collapsed", help="Prefix for output files (default: collapsed)")
    parser.add_argument("-F", "--fastq", action="store_true", help="Also write aggregated records as FASTQ")
    parser.add_argument("-D", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("-v", "--version", action="version", version=version())

    args = parser.parse_args(argv[1:])

    if args.batch_size < 0:
        parser.error("--batch-size must not be negative")
    try:
        args.options = Options.from_args(args)
    except ValueError as e:
        parser.error(str(e))

    return args


def open_input(args) -> SeqInputStreams:
    if args.mate_file is None:
        return SeqInputStreams.single_end(args.sequence_file)
    return SeqInputStreams.paired_end(args.sequence_file, args.mate_file)


def fqcollapse(args):
    options = args.options
    if options.barcode_vdj_read and args.mate_file is None:
        logging.warning("--barcode-vdj-read has no effect on single end data")
    in_streams = open_input(args)
    logging.info(f"Reading {in_streams.mode.to_string().replace('_', ' ')} data from {', '.join(in_streams.paths)}")

    start_time = timeit.default_timer()
    collection = MultiRecordCollection(in_streams.mode)
    batch = MultiRecordCollection(in_streams.mode)
    reject_events = []

    with in_streams, TqdmProgress(in_streams.total_in_bytes) as progress:
        more = True
        n_batches = 0
        while more:
            more = read_records(batch, reject_events, in_streams, options,
                                count=args.batch_size, progress=progress)
            collection.merge_collection(batch)
            batch.clear()
            n_batches += 1
            logging.debug(f"Batch {n_batches}: {len(collection):,} distinct sequences so far")

    stats = collection.barcode_stats()
    total_processed = stats.n_total_reads + len(reject_events)
    logging.info(f"Processed {total_processed:,} reads, {stats.n_total_reads:,} aggregated into "
                 f"{len(collection):,} distinct sequences, {len(reject_events):,} rejected")
    for reason, n in sorted(summarize_rejects(reject_events).items(), key=lambda x: x[0].value):
        logging.info(f"  {reason.to_string()}: {n:,}")
    if args.debug:
        collection.log_tree()

    create_output_dir(args.output_dir)
    prefix = os.path.join(args.output_dir, args.output_file_prefix)
    write_multi_records(f"{prefix}.tsv", collection)
    write_barcode_stats(f"{prefix}_barcodes.tsv", stats)
    write_reject_log(f"{prefix}_rejects.tsv", reject_events)
    if args.fastq:
        for path in write_multi_records_fastq(prefix, collection):
            logging.info(f"Wrote {path}")

    elapsed = timeit.default_timer() - start_time
    logging.info(f"Elapsed time: {elapsed:.2f} seconds")
    return collection


def main(argv=None):
    if argv is None:
        argv = sys.argv
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        fqcollapse(args)
    except InputStreamError as e:
        logging.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main(sys.argv)
