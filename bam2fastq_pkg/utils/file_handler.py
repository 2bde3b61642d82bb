"""
Utility functions for writing FASTQ output with compression support.

Provides unified utilities for:
- Compression tool detection (pigz/pbzip2 preferred over gzip/bzip2)
- Opening text writers that compress on the fly
- Auxiliary-file naming without clobbering (logs, reports)
"""

import gzip
import bz2
import re
import shutil
import subprocess
from pathlib import Path
from typing import Union

from bam2fastq_pkg.utils.formats import CodingType
from bam2fastq_pkg.exceptions import CompressionError


# Cache for tool availability checks to avoid repeated lookups
_TOOL_CACHE = {}

# Format: coding_type -> (parallel_tool, standard_tool)
_COMPRESSION_TOOLS = {
    CodingType.GZIP: ('pigz', 'gzip'),
    CodingType.BZIP2: ('pbzip2', 'bzip2'),
}

# Format: tool_name -> args_generator_function
_COMPRESS_ARGS = {
    'pigz': lambda threads: ['-c', '-p', str(threads)],
    'gzip': lambda threads: ['-c'],
    'pbzip2': lambda threads: ['-c', '-p' + str(threads)],
    'bzip2': lambda threads: ['-c'],
}


def check_compression_tool_available(tool_name: str) -> bool:
    """
    Check if a compression tool is available on the system.

    Results are cached to avoid repeated lookups.

    Args:
        tool_name: Name of the tool to check ('pigz', 'pbzip2', 'gzip', 'bzip2')

    Returns:
        True if tool is available, False otherwise
    """
    if tool_name in _TOOL_CACHE:
        return _TOOL_CACHE[tool_name]

    available = shutil.which(tool_name) is not None
    _TOOL_CACHE[tool_name] = available

    return available


def get_compression_command(coding_type: CodingType, threads: int = None) -> tuple:
    """
    Get the compression command for the given coding type.

    The parallel tool is only chosen for threads > 1; with a single thread
    the standard tool is faster.

    Args:
        coding_type: CodingType enum (GZIP or BZIP2)
        threads: Number of threads to use (None = 1)

    Returns:
        Tuple of (command_name, [args]) for subprocess

    Raises:
        ValueError: If coding_type is NONE

    Example:
        >>> get_compression_command(CodingType.GZIP, threads=4)
        ('pigz', ['-c', '-p', '4'])   # if pigz is installed
    """
    if coding_type not in _COMPRESSION_TOOLS:
        raise ValueError(f"No compression command for {coding_type}")

    threads = threads or 1
    parallel_tool, standard_tool = _COMPRESSION_TOOLS[coding_type]

    if threads > 1 and check_compression_tool_available(parallel_tool):
        tool_name = parallel_tool
    else:
        tool_name = standard_tool

    return (tool_name, _COMPRESS_ARGS[tool_name](threads))


class SubprocessWriter:
    """Text writer that pipes into an external compressor."""

    def __init__(self, proc, filepath: Path):
        self.proc = proc
        self.stdin = proc.stdin
        self.filepath = filepath

    def write(self, text: str):
        self.stdin.write(text.encode('utf-8'))

    def flush(self):
        self.stdin.flush()

    def close(self):
        if self.stdin.closed:
            return
        self.stdin.close()
        self.proc.wait()
        stdout = self.proc.stdout
        if stdout is not None:
            stdout.close()
        if self.proc.returncode != 0:
            stderr_output = self.proc.stderr.read().decode('utf-8', errors='replace')
            raise CompressionError(
                f"Compression of {self.filepath} failed with return code "
                f"{self.proc.returncode}: {stderr_output}"
            )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def open_compressed_writer(
    filepath: Union[str, Path],
    coding_type: CodingType,
    use_parallel: bool = True,
    threads: int = None
):
    """
    Open a text-mode handle that writes (optionally compressed) data.

    Prefers parallel compression tools (pigz/pbzip2) when use_parallel=True,
    threads > 1 and the tool is installed. Falls back to the Python gzip/bz2
    libraries otherwise.

    Args:
        filepath: Path to output file
        coding_type: CodingType enum (GZIP, BZIP2, or NONE)
        use_parallel: If True, use parallel tools when available
        threads: Number of compression threads

    Returns:
        File-like object with write()/close(), usable as a context manager

    Example:
        >>> with open_compressed_writer('reads_1.fastq.gz', CodingType.GZIP) as f:
        ...     f.write("@read/1\\nACGT\\n+\\nIIII\\n")
    """
    filepath = Path(filepath)

    if use_parallel and threads and threads > 1 and coding_type in _COMPRESSION_TOOLS:
        command, args = get_compression_command(coding_type, threads)
        if command == _COMPRESSION_TOOLS[coding_type][0]:
            out_handle = open(filepath, 'wb')
            try:
                process = subprocess.Popen(
                    [command] + args,
                    stdin=subprocess.PIPE,
                    stdout=out_handle,
                    stderr=subprocess.PIPE,
                )
            finally:
                # The child holds its own descriptor
                out_handle.close()
            return SubprocessWriter(process, filepath)

    if coding_type == CodingType.GZIP:
        return gzip.open(filepath, 'wt', encoding='ascii')
    elif coding_type == CodingType.BZIP2:
        return bz2.open(filepath, 'wt', encoding='ascii')
    else:
        return open(filepath, 'w', encoding='ascii', newline='\n')


def get_incremented_path(path: Path, separator: str = "_") -> Path:
    """
    Get next available filename by auto-incrementing if file exists.

    If the file doesn't exist, returns the original path.
    If it exists, adds _001, _002, etc. before the extension.

    Examples:
        >>> get_incremented_path(Path("report.json"))       # doesn't exist
        Path("report.json")
        >>> get_incremented_path(Path("report.json"))       # exists
        Path("report_001.json")
    """
    path = Path(path)

    if not path.exists():
        return path

    stem = path.stem
    suffix = path.suffix
    parent = path.parent

    # Stem already carries an increment (report_001)
    match = re.match(r'^(.+)_(\d+)$', stem)
    if match:
        base_stem = match.group(1)
        counter = int(match.group(2)) + 1
    else:
        base_stem = stem
        counter = 1

    while True:
        new_path = parent / f"{base_stem}{separator}{counter:03d}{suffix}"
        if not new_path.exists():
            return new_path
        counter += 1

        if counter > 9999:
            raise RuntimeError(f"Too many incremented files for {path}. Maximum is 9999.")
