"""
Shared fixtures: temporary directories, BAM files written with pysam, and
an in-memory record source for exercising the converter without a file.
"""

import tempfile
from pathlib import Path

import pysam
import pytest

from bam2fastq_pkg.logger import get_logger
from bam2fastq_pkg.exceptions import TruncatedInputError
from bam2fastq_pkg.pipeline.record_source import AlignmentRecord

# SAM flags used across the tests
PAIRED_R1 = 0x1 | 0x40
PAIRED_R2 = 0x1 | 0x80
UNMAPPED = 0x4
REVERSE = 0x10
QCFAIL = 0x200

HEADER = {
    'HD': {'VN': '1.6', 'SO': 'unsorted'},
    'SQ': [{'SN': 'chr1', 'LN': 10000}],
}


def write_bam(path: Path, reads) -> Path:
    """
    Write reads to a BAM file.

    Args:
        path: Output BAM path
        reads: Iterable of (name, flag, sequence, quality_string_or_None)
    """
    with pysam.AlignmentFile(str(path), "wb", header=HEADER) as out:
        for name, flag, sequence, quality in reads:
            segment = pysam.AlignedSegment(out.header)
            segment.query_name = name
            segment.flag = flag
            segment.query_sequence = sequence
            if flag & UNMAPPED:
                segment.reference_id = -1
                segment.reference_start = -1
                segment.mapping_quality = 0
            else:
                segment.reference_id = 0
                segment.reference_start = 100
                segment.mapping_quality = 60
                segment.cigartuples = [(0, len(sequence))]
            segment.next_reference_id = -1
            segment.next_reference_start = -1
            # Qualities must be set after the sequence
            if quality is not None:
                segment.query_qualities = pysam.qualitystring_to_array(quality)
            out.write(segment)
    return path


def make_record(name, flag, sequence, quality="") -> AlignmentRecord:
    """AlignmentRecord from letters and a Phred+33 string (defaults to all 'I')."""
    quality = quality or "I" * len(sequence)
    return AlignmentRecord.from_strings(name, flag, sequence, bytes(ord(c) - 33 for c in quality))


class ListRecordSource:
    """Record source over a list; optionally fails after a number of records."""

    def __init__(self, records, fail_after=None):
        self.records = list(records)
        self.fail_after = fail_after
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.closed = True
        return False

    def __iter__(self):
        for index, record in enumerate(self.records):
            if self.fail_after is not None and index == self.fail_after:
                raise TruncatedInputError("truncated file")
            yield record
        if self.fail_after is not None and self.fail_after >= len(self.records):
            raise TruncatedInputError("truncated file")


@pytest.fixture(autouse=True)
def quiet_logger():
    """Configure the singleton logger and isolate its issues per test."""
    logger = get_logger()
    logger.setup(console_level="WARNING")
    yield logger
    logger.clear_issues()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def paired_bam(temp_dir):
    """Two complete pairs (one arriving read-two first) and one unpaired read."""
    return write_bam(temp_dir / "paired.bam", [
        ("HWI:3:FC:1:11", PAIRED_R1 | UNMAPPED, "ACGTAC", "IIIIII"),
        ("HWI:3:FC:1:12", PAIRED_R2 | UNMAPPED, "GGGCCC", "HHHHHH"),
        ("HWI:3:FC:1:11", PAIRED_R2 | UNMAPPED, "TTTAAA", "GGGGGG"),
        ("HWI:3:FC:1:13", UNMAPPED, "NNACGT", "######"),
        ("HWI:3:FC:1:12", PAIRED_R1 | UNMAPPED, "CATCAT", "FFFFFF"),
    ])


@pytest.fixture
def truncated_bam(temp_dir):
    """
    Paired BAM with every read one before every read two, cut three quarters
    of the way through so the tail of the read-two half is lost.

    Keys repeat a digit after a letter, so convert it in strict mode.
    """
    pairs = 20000
    bases = "ACGT"
    reads = [
        (f"T:5:n{i}", flag, ''.join(bases[(i >> shift) & 3] for shift in range(0, 20, 2)), "IIIIIIIIII")
        for flag in (PAIRED_R1 | UNMAPPED, PAIRED_R2 | UNMAPPED)
        for i in range(pairs)
    ]
    full = write_bam(temp_dir / "full.bam", reads)
    data = full.read_bytes()
    full.unlink()

    cut = temp_dir / "cut.bam"
    cut.write_bytes(data[:len(data) * 3 // 4])
    return cut
