"""
Compression type and output mode enumerations.

Provides enums for:
    - CodingType: Output compression formats (GZIP, BZIP2, NONE)
    - OutputMode: How converted reads are laid out (files, stdout, stdout-flat)

Each enum supports flexible input via _missing_ methods, allowing
extensions, filenames, and format names as input.
"""

from enum import Enum
from pathlib import Path


class CodingType(Enum):
    """
    Supported compression types for FASTQ output files.

    Supported formats:
    - GZIP: .gz files (gzip compression)
    - BZIP2: .bz2 files (bzip2 compression)
    - NONE: Uncompressed files
    """
    GZIP = "gzip"
    BZIP2 = "bzip2"
    NONE = "none"

    @property
    def extension(self) -> str:
        """File suffix appended to outputs written with this coding."""
        return {
            CodingType.GZIP: '.gz',
            CodingType.BZIP2: '.bz2',
            CodingType.NONE: '',
        }[self]

    @classmethod
    def _missing_(cls, value):
        """
        Called when enum lookup fails. Allows flexible input formats.

        Supports:
        - CodingType('gz') or CodingType('.gz') → GZIP
        - CodingType('bz2') or CodingType('.bz2') → BZIP2
        - CodingType('reads_1.fastq.gz') → GZIP (extracts from filename)
        - CodingType('') or invalid → NONE
        """
        value_lower = str(value).lower().strip()

        if value_lower.startswith('.'):
            value_lower = value_lower[1:]

        extension_map = {
            'gz': cls.GZIP,
            'gzip': cls.GZIP,
            'bz2': cls.BZIP2,
            'bzip2': cls.BZIP2,
        }

        if value_lower in extension_map:
            return extension_map[value_lower]

        # Filename with extension
        if '.' in value_lower:
            ext = Path(value_lower).suffix
            if ext:
                return cls._missing_(ext)

        return cls.NONE


class OutputMode(Enum):
    """
    Output layout requested by the user.

    - FILES: one file per mate slot plus a merged file (or one file for
      single-end data), named from the output template
    - STDOUT: both mates interleaved on standard output, unpaired reads to file
    - STDOUT_FLAT: every read on standard output in input order
    """
    FILES = "files"
    STDOUT = "stdout"
    STDOUT_FLAT = "stdout-flat"

    @classmethod
    def _missing_(cls, value):
        """
        Handle OutputMode('interleaved'), OutputMode('FLAT'), OutputMode('stdout_flat')
        """
        value_lower = str(value).lower().strip().replace('_', '-')

        aliases = {
            'file': cls.FILES,
            'files': cls.FILES,
            'paired': cls.FILES,
            'stdout': cls.STDOUT,
            'interleaved': cls.STDOUT,
            'stdout-interleaved': cls.STDOUT,
            'flat': cls.STDOUT_FLAT,
            'stdout-flat': cls.STDOUT_FLAT,
        }

        if value_lower in aliases:
            return aliases[value_lower]

        raise ValueError(f"'{value}' is not a valid {cls.__name__}")
