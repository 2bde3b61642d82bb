"""
Utility modules for bam2fastq_pkg.

Provides:
    - file_handler: Compressed output writers, tool detection, path helpers
    - formats: Compression type and output mode enums
    - settings: Base settings class with immutable update pattern
"""

from .file_handler import (
    open_compressed_writer,
    check_compression_tool_available,
    get_incremented_path,
)

__all__ = [
    'open_compressed_writer',
    'check_compression_tool_available',
    'get_incremented_path',
]
