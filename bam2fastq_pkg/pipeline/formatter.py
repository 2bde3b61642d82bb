"""FASTQ text formatting."""

from bam2fastq_pkg.pipeline.identity import read_name


def format_record(record, decoded_seq: str, decoded_qual: str) -> str:
    """Render one four-line FASTQ record, newline-terminated."""
    return f"@{read_name(record)}\n{decoded_seq}\n+\n{decoded_qual}\n"
