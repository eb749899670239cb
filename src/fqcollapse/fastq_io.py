"""
Reading single end and paired end sequence files.

Character-level parsing is left to Biopython; this module turns SeqIO records
into pipeline records, pairs mates, and maps parser and I/O failures onto the
pipeline's fatal error types.
"""

import gzip
import logging
import os
import re
import subprocess
from typing import Optional, Tuple, Union

from Bio import SeqIO
from Bio.SeqRecord import SeqRecord

from .constants import DEFAULT_QUALITY, SequencingMode
from .exceptions import FastqIOError, FastqParseError
from .models import PairedEndRecord, SingleEndRecord

MATE_SUFFIX = re.compile(r"/[12]$")


def detect_file_format(filename: str) -> str:
    """
    Detect file format from filename, handling compressed files.

    Args:
        filename: Path to sequence file

    Returns:
        str: Detected format ('fastq' or 'fasta')
    """
    base_name = os.path.basename(filename)
    compression_exts = ['.gz', '.gzip']

    root, ext = os.path.splitext(base_name)
    while ext.lower() in compression_exts:
        base_name = root
        root, ext = os.path.splitext(base_name)

    if base_name.lower().endswith(('.fastq', '.fq')):
        return 'fastq'
    elif base_name.lower().endswith(('.fasta', '.fa', '.fna')):
        return 'fasta'

    # Fall back to the first character of the file
    try:
        with open_text(filename) as f:
            first_char = f.read(1)
    except (OSError, EOFError) as e:
        raise FastqIOError(str(e), filename)
    if first_char == '>':
        return 'fasta'
    return 'fastq'


def is_gzipped(filename: str) -> bool:
    return filename.endswith((".gz", ".gzip"))


def open_text(filename: str):
    if is_gzipped(filename):
        return gzip.open(filename, "rt")
    return open(filename, "rt")


def get_gzip_info(filename: str) -> Tuple[int, int]:
    """
    Get compressed and uncompressed file sizes using gzip -l

    Raises:
        subprocess.CalledProcessError: If gzip -l fails
        ValueError: If output parsing fails
    """
    result = subprocess.run(['gzip', '-l', filename],
                            capture_output=True,
                            text=True,
                            check=True)
    output = result.stdout.strip()

    # Format: compressed uncompressed ratio uncompressed_name
    match = re.search(r'(\d+)\s+(\d+)', output)
    if not match:
        raise ValueError(f"Failed to parse gzip output: {output}")
    return int(match.group(1)), int(match.group(2))


def estimate_input_bytes(filename: str) -> int:
    """Uncompressed size of an input file, estimated for gzip files."""
    if not is_gzipped(filename):
        return os.path.getsize(filename)
    try:
        compressed_size, uncompressed_size = get_gzip_info(filename)
        if uncompressed_size:
            return uncompressed_size
        logging.warning(f"Could not determine uncompressed size of {filename}")
    except (OSError, ValueError, subprocess.CalledProcessError) as e:
        logging.warning(f"Error getting gzip info for {filename}: {e}")
    # Assume 2.5x compression ratio as fallback
    return int(os.path.getsize(filename) * 2.5)


def get_quality_seq(record: SeqRecord):
    if "phred_quality" in record.letter_annotations:
        return list(record.letter_annotations["phred_quality"])
    else:
        return [DEFAULT_QUALITY] * len(record)


def read_id(record: SeqRecord) -> str:
    return MATE_SUFFIX.sub("", record.id)


class MateStream:
    """One sequence file read record by record with one record of lookahead."""

    def __init__(self, path: str):
        self.path = path
        self.file_format = detect_file_format(path)
        try:
            self._handle = open_text(path)
        except OSError as e:
            raise FastqIOError(str(e), path)
        self._records = SeqIO.parse(self._handle, self.file_format)
        self._next: Optional[SeqRecord] = None
        self._peeked = False

    def _peek(self) -> Optional[SeqRecord]:
        if not self._peeked:
            try:
                self._next = next(self._records, None)
            except ValueError as e:
                raise FastqParseError(self.path, str(e))
            except (OSError, EOFError) as e:
                raise FastqIOError(str(e), self.path)
            self._peeked = True
        return self._next

    def at_end(self) -> bool:
        return self._peek() is None

    def read(self) -> SeqRecord:
        record = self._peek()
        if record is None:
            raise FastqParseError(self.path, "unexpected end of file")
        self._peeked = False
        self._next = None
        return record

    def close(self):
        self._handle.close()


class SeqInputStreams:
    """
    Input streams for one sequencing run.

    Single end runs read one file. Paired end runs read the forward and reverse
    files in lockstep; the two files must hold the same number of records.
    """

    def __init__(self, mode: SequencingMode, *paths: str):
        expected = 1 if mode == SequencingMode.SINGLE_END else 2
        if len(paths) != expected:
            raise ValueError(f"{mode.to_string()} input needs {expected} file(s), got {len(paths)}")
        self.mode = mode
        self.paths = list(paths)
        self._streams = []
        try:
            for path in paths:
                self._streams.append(MateStream(path))
            self.total_in_bytes = sum(estimate_input_bytes(p) for p in paths)
        except Exception:
            self.close()
            raise

    @classmethod
    def single_end(cls, path: str) -> 'SeqInputStreams':
        return cls(SequencingMode.SINGLE_END, path)

    @classmethod
    def paired_end(cls, fw_path: str, rev_path: str) -> 'SeqInputStreams':
        return cls(SequencingMode.PAIRED_END, fw_path, rev_path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        for stream in self._streams:
            stream.close()

    def at_end(self) -> bool:
        return all(stream.at_end() for stream in self._streams)

    def read_record(self) -> Union[SingleEndRecord, PairedEndRecord]:
        if self.mode == SequencingMode.SINGLE_END:
            record = self._streams[0].read()
            return SingleEndRecord(id=read_id(record), seq=str(record.seq).upper(),
                                   qualities=get_quality_seq(record))

        fw_stream, rev_stream = self._streams
        if fw_stream.at_end() != rev_stream.at_end():
            shorter = fw_stream if fw_stream.at_end() else rev_stream
            raise FastqParseError(shorter.path, "file has fewer records than its mate file")
        rev = rev_stream.read()
        fw = fw_stream.read()
        return PairedEndRecord(id=read_id(fw),
                               fw_seq=str(fw.seq).upper(), rev_seq=str(rev.seq).upper(),
                               fw_qualities=get_quality_seq(fw),
                               rev_qualities=get_quality_seq(rev))
