"""
Alignment record source backed by pysam.

Reads a BAM (or SAM) file one record at a time and hands the converter a
small immutable AlignmentRecord holding exactly the fields it needs: query
name, flag bits, 4-bit packed base codes and raw Phred qualities.

Classes:
    AlignmentRecord: One read as stored in the BAM file
    BamRecordSource: Context-managed, pull-based iterator over a BAM file
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

import pysam

from bam2fastq_pkg.exceptions import SourceOpenError, TruncatedInputError

# SAM flag bits
FLAG_PAIRED = 0x1
FLAG_UNMAPPED = 0x4
FLAG_REVERSE = 0x10
FLAG_READ1 = 0x40
FLAG_READ2 = 0x80
FLAG_QCFAIL = 0x200

# htslib seq_nt16_str: position is the 4-bit code
NT16_ALPHABET = "=ACMGRSVTWYHKDBN"
_NT16_CODES = {base: code for code, base in enumerate(NT16_ALPHABET)}

# BAM stores 0xFF for every base when qualities are absent
MISSING_QUALITY = 0xFF


def encode_bases(sequence: str) -> bytes:
    """
    Map base letters to their BAM 4-bit codes.

    pysam hands out decoded letters; the converter works on codes so the
    strand handling stays in one place.

    Characters outside the 16-letter BAM alphabet map to 0xFF, which the
    decoder rejects.
    """
    return bytes(_NT16_CODES.get(base, 0xFF) for base in sequence.upper())


@dataclass(frozen=True)
class AlignmentRecord:
    """One alignment record as read from the BAM file."""
    query_name: str
    flag: int
    sequence: bytes
    qualities: bytes
    length: int

    @property
    def is_paired(self) -> bool:
        return bool(self.flag & FLAG_PAIRED)

    @property
    def is_unmapped(self) -> bool:
        return bool(self.flag & FLAG_UNMAPPED)

    @property
    def is_reverse(self) -> bool:
        return bool(self.flag & FLAG_REVERSE)

    @property
    def is_read1(self) -> bool:
        return bool(self.flag & FLAG_READ1)

    @property
    def is_qcfail(self) -> bool:
        return bool(self.flag & FLAG_QCFAIL)

    @classmethod
    def from_strings(cls, query_name: str, flag: int, sequence: str,
                     qualities: Optional[bytes] = None) -> "AlignmentRecord":
        """
        Build a record from a letter sequence as stored in the BAM.

        Args:
            query_name: Read name
            flag: SAM flag
            sequence: Stored bases (already reverse-complemented for reverse-strand reads)
            qualities: Raw Phred values; None means absent (0xFF per base)
        """
        codes = encode_bases(sequence)
        if qualities is None:
            qualities = bytes([MISSING_QUALITY] * len(codes))
        return cls(
            query_name=query_name,
            flag=flag,
            sequence=codes,
            qualities=bytes(qualities),
            length=len(codes),
        )

    @classmethod
    def from_segment(cls, segment) -> "AlignmentRecord":
        """Build a record from a pysam.AlignedSegment."""
        sequence = segment.query_sequence or ""
        qualities = segment.query_qualities
        return cls.from_strings(
            segment.query_name or "",
            segment.flag,
            sequence,
            None if qualities is None else bytes(qualities),
        )


class BamRecordSource:
    """
    Pull-based source of AlignmentRecords from a BAM/SAM file.

    Usage:
        >>> with BamRecordSource("reads.bam") as source:
        ...     for record in source:
        ...         ...

    Raises:
        SourceOpenError: On open() when the file cannot be read as BAM/SAM
        TruncatedInputError: During iteration when a record cannot be read
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._handle = None

    def open(self) -> "BamRecordSource":
        if not self.path.exists():
            raise SourceOpenError(f"Could not open {self.path}: file not found")
        try:
            # check_sq=False: unaligned BAMs have no @SQ lines.
            # ignore_truncation: a missing EOF block surfaces during iteration
            self._handle = pysam.AlignmentFile(
                str(self.path), "rb", check_sq=False, ignore_truncation=True,
            )
        except (OSError, ValueError) as e:
            raise SourceOpenError(f"Could not open {self.path}: {e}") from e
        return self

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self):
        if self._handle is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __iter__(self) -> Iterator[AlignmentRecord]:
        if self._handle is None:
            raise SourceOpenError(f"{self.path} is not open")
        iterator = iter(self._handle)
        while True:
            try:
                segment = next(iterator)
            except StopIteration:
                return
            except (OSError, ValueError) as e:
                raise TruncatedInputError(
                    f"Error reading {self.path}: {e}"
                ) from e
            yield AlignmentRecord.from_segment(segment)


def open_record_source(path: Union[str, Path]) -> BamRecordSource:
    """Open a BAM file for reading; the default source factory of the converter."""
    return BamRecordSource(path).open()
