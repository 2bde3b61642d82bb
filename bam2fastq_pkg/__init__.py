"""
BAM to FASTQ Conversion Package
===============================

Extracts the reads of a BAM file as FASTQ, keeping mates together.

Paired reads are written to a read-one and a read-two file so that both
members of a pair sit at the same position of their files. Reads whose mate
is missing, and reads that are not paired at all, go to a third "merged"
file. Reads are written in the order they are read, except that the first
mate of a pair waits until its partner has been seen.

Features
--------
- Pair matching across unsorted input, with tolerant name matching
  (``read#0`` and ``read#1`` are mates unless strict mode is on)
- Lane-aware output names (``s_%#_sequence.txt`` -> ``s_7_1_sequence.txt``)
- Interleaved or flat output on stdout for piping into aligners
- Filtering of aligned, unaligned and QC-failed reads
- gzip/bzip2 output (pigz/pbzip2 when available)
- Structured logging and JSON conversion reports

Quick Start
-----------

>>> from bam2fastq_pkg import Bam2FastqConverter, convert_bam
>>> report = convert_bam("sample.bam")
>>> print(report.summary())
>>>
>>> settings = Bam2FastqConverter.Settings(output_template="sample#.fastq", save_filtered=False)
>>> report = convert_bam("sample.bam", settings)

Command line::

    bam2fastq [options] <bam file>

Error Handling
--------------
- Bam2FastqError: Base exception
    - ConfigurationError / TopologyConfigError: bad settings or output template
    - OutputConflictError: output file exists (use overwrite=True)
    - SourceOpenError / TruncatedInputError: unreadable BAM input
    - MalformedRecordError: read with unsupported bases/qualities (skipped and counted)
    - CompressionError: compressed output could not be written
"""

__version__ = "1.1.0"
__author__ = "Dominika Bohuslavova"
__license__ = "EUPL-1.2 license"

from typing import Optional

from bam2fastq_pkg.converter import Bam2FastqConverter
from bam2fastq_pkg.config_manager import ConfigManager
from bam2fastq_pkg.report import ConversionReport
from bam2fastq_pkg.logger import setup_logging, get_logger
from bam2fastq_pkg.exceptions import (
    Bam2FastqError,
    ConfigurationError,
    TopologyConfigError,
    OutputConflictError,
    SourceError,
    SourceOpenError,
    TruncatedInputError,
    MalformedRecordError,
    CompressionError,
)


def convert_bam(
    input_path,
    settings: Optional[Bam2FastqConverter.Settings] = None
) -> ConversionReport:
    """
    Convert a BAM file to FASTQ with optional custom settings.

    This is a simplified wrapper around Bam2FastqConverter.

    Args:
        input_path: BAM file to convert
        settings: Optional Bam2FastqConverter.Settings (uses defaults if None)

    Returns:
        ConversionReport: Counts and output paths of the run
    """
    return Bam2FastqConverter(input_path, settings).run()


__all__ = [
    'Bam2FastqConverter',
    'ConfigManager',
    'ConversionReport',
    'convert_bam',

    # Logging
    'setup_logging',
    'get_logger',

    # Exceptions
    'Bam2FastqError',
    'ConfigurationError',
    'TopologyConfigError',
    'OutputConflictError',
    'SourceError',
    'SourceOpenError',
    'TruncatedInputError',
    'MalformedRecordError',
    'CompressionError',

    # Version info
    '__version__',
    '__author__',
    '__license__',
]
