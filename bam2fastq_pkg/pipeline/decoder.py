"""
Base and quality decoding for alignment records.

BAM stores reverse-strand reads reverse-complemented. Both decoders undo
that for reads with the reverse flag, so FASTQ output is always in
sequencing order and position i of the sequence matches position i of the
quality string.
"""

from bam2fastq_pkg.exceptions import MalformedRecordError
from bam2fastq_pkg.pipeline.record_source import MISSING_QUALITY

# Offset added to a base code to select its complement
COMPLEMENT_OFFSET = 16

PHRED_OFFSET = 33
# Highest Phred value that still renders as printable ASCII ('~')
MAX_PHRED = 126 - PHRED_OFFSET
# Written for every base of a read stored without qualities (Phred 0)
ABSENT_QUALITY_CHAR = chr(PHRED_OFFSET)

BASES = {
    1: 'A',
    2: 'C',
    4: 'G',
    8: 'T',
    15: 'N',
    # complements
    1 + COMPLEMENT_OFFSET: 'T',
    2 + COMPLEMENT_OFFSET: 'G',
    4 + COMPLEMENT_OFFSET: 'C',
    8 + COMPLEMENT_OFFSET: 'A',
    15 + COMPLEMENT_OFFSET: 'N',
}


def decode_sequence(record) -> str:
    """
    Decode the 4-bit base codes of a record into letters.

    Reverse-strand records are complemented base by base and then reversed.

    Raises:
        MalformedRecordError: If a code is not one of A, C, G, T, N
    """
    offset = COMPLEMENT_OFFSET if record.is_reverse else 0
    letters = []
    for position, code in enumerate(record.sequence):
        try:
            letters.append(BASES[code + offset])
        except KeyError:
            raise MalformedRecordError(
                f"Read '{record.query_name}' has unsupported base code {code} at position {position}",
                query_name=record.query_name,
            ) from None
    sequence = ''.join(letters)
    if offset:
        sequence = sequence[::-1]
    return sequence


def decode_quality(record) -> str:
    """
    Decode raw Phred values into a Phred+33 string.

    Reversed for reverse-strand records, matching decode_sequence().
    A read stored without qualities (first value 0xFF) gets
    ABSENT_QUALITY_CHAR for every base.

    Raises:
        MalformedRecordError: If a value is not printable, or the number of
            values differs from the number of bases
    """
    if len(record.qualities) != len(record.sequence):
        raise MalformedRecordError(
            f"Read '{record.query_name}' has {len(record.qualities)} quality values "
            f"for {len(record.sequence)} bases",
            query_name=record.query_name,
        )

    if record.qualities and record.qualities[0] == MISSING_QUALITY:
        return ABSENT_QUALITY_CHAR * len(record.qualities)

    for position, value in enumerate(record.qualities):
        if value > MAX_PHRED:
            raise MalformedRecordError(
                f"Read '{record.query_name}' has invalid quality value {value} at position {position}",
                query_name=record.query_name,
            )

    quality = ''.join(chr(value + PHRED_OFFSET) for value in record.qualities)
    if record.is_reverse:
        quality = quality[::-1]
    return quality
