"""
Custom exceptions for the BAM to FASTQ conversion package.

Provides a hierarchical exception system for type-specific error handling:

Exception hierarchy:
    Bam2FastqError (base)
    ├── ConfigurationError (settings / config file issues)
    │   └── TopologyConfigError (output layout cannot be built)
    ├── OutputConflictError (output file exists, overwrite not allowed)
    ├── SourceError (BAM input problems)
    │   ├── SourceOpenError (BAM cannot be opened)
    │   └── TruncatedInputError (read failure in the middle of the stream)
    ├── MalformedRecordError (record fields cannot be decoded)
    └── CompressionError (compressed output failures)

Usage:
    Catch Bam2FastqError to handle all package-specific errors:

    try:
        convert_bam("reads.bam")
    except Bam2FastqError as e:
        print(f"Conversion failed: {e}")
"""


class Bam2FastqError(Exception):
    """
    Base exception for all conversion errors.

    All custom exceptions in this package inherit from this.
    """
    pass


class ConfigurationError(Bam2FastqError):
    """
    Raised when settings or the configuration file are invalid.

    Examples:
    - Both stdout output modes requested
    - Unknown option in config file
    - Malformed JSON
    """
    pass


class TopologyConfigError(ConfigurationError):
    """
    Raised when the output layout cannot be built from the template.

    Examples:
    - Template contains the lane placeholder (%) but the lane is unknown
    - Paired data but the template has no read placeholder (#)
    """
    pass


class OutputConflictError(Bam2FastqError):
    """
    Raised when an output file already exists and overwriting is not allowed.
    """

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class SourceError(Bam2FastqError):
    """
    Base exception for problems reading the BAM input.
    """
    pass


class SourceOpenError(SourceError):
    """
    Raised when the BAM file cannot be opened.

    Examples:
    - File does not exist
    - File is not BAM/SAM
    - Missing or corrupt header
    """
    pass


class TruncatedInputError(SourceError):
    """
    Raised when reading fails part way through the record stream.

    Records read before the failure are still valid.
    """
    pass


class MalformedRecordError(Bam2FastqError):
    """
    Raised when a record's sequence or quality cannot be decoded.

    Examples:
    - Base code outside A/C/G/T/N (IUPAC ambiguity codes, '=')
    - Quality value above 93
    - Quality and sequence lengths differ
    """

    def __init__(self, message: str, query_name=None):
        super().__init__(message)
        self.query_name = query_name


class CompressionError(Bam2FastqError):
    """
    Raised when a compressed output stream cannot be written.

    Examples:
    - External compressor (pigz/pbzip2) exits with an error
    """
    pass
