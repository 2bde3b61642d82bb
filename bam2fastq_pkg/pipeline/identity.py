"""
Read identity helpers: pair name, mate index, FASTQ read name, lane and pair key.
"""

import re
import string

READ_SUFFIXES = ("/1", "/2")

# Leading integer of a lane field, the way a stream extraction reads it
_LEADING_INT = re.compile(r'[ \t\n\r\f\v]*([+-]?[0-9]+)')

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1


def pair_name(record) -> str:
    """The record's query name, unmodified."""
    return record.query_name


def read_index(record) -> int:
    """
    Return 0 for read one and 1 for anything else.

    Inverted relative to the flag so the result indexes a two-element
    array of mate slots directly.
    """
    return 0 if record.is_read1 else 1


def read_name(record) -> str:
    """Pair name with /1 or /2 appended for paired reads."""
    name = pair_name(record)
    if record.is_paired:
        name += READ_SUFFIXES[read_index(record)]
    return name


def lane_id(record_or_name) -> int:
    """
    Parse the lane number from an Illumina-style read name.

    The lane is the field between the first and second colon
    (``INSTRUMENT:LANE:...``). Returns 0 when there are fewer than two
    colons, the field is empty, it does not start with an integer, or the
    integer does not fit in 32 bits.

    Examples:
        >>> lane_id("HWI-ST1234:7:1101:1234:5678")
        7
        >>> lane_id("read42")
        0
        >>> lane_id("A::B")
        0
    """
    name = record_or_name if isinstance(record_or_name, str) else pair_name(record_or_name)

    start = name.find(':')
    if start == -1:
        return 0
    start += 1
    stop = name.find(':', start)
    if stop == -1 or stop == start:
        return 0

    match = _LEADING_INT.match(name[start:stop])
    if not match:
        return 0
    lane = int(match.group(1))
    if not INT32_MIN <= lane <= INT32_MAX:
        return 0
    return lane


def normalize_key(name: str, strict: bool = False) -> str:
    """
    Return the key used to match a read with its mate.

    Outside strict mode, a two-character suffix such as ``#0`` or ``/1`` is
    stripped when the last character is a digit and the one before it is
    not. Names shorter than three characters are left alone.

    Examples:
        >>> normalize_key("readA#0")
        'readA'
        >>> normalize_key("readA#0", strict=True)
        'readA#0'
        >>> normalize_key("read12")
        'read12'
    """
    if strict or len(name) < 3:
        return name
    if name[-1] in string.digits and name[-2] not in string.digits:
        return name[:-2]
    return name
