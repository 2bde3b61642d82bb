"""
Tests for read identity helpers and FASTQ formatting.
"""

import pytest

from bam2fastq_pkg.pipeline.identity import (
    pair_name,
    read_index,
    read_name,
    lane_id,
    normalize_key,
)
from bam2fastq_pkg.pipeline.formatter import format_record

from conftest import PAIRED_R1, PAIRED_R2, make_record


class TestReadNames:
    """Tests for pair_name, read_index and read_name."""

    def test_pair_name_is_raw_query_name(self):
        record = make_record("readA#0", PAIRED_R1, "ACGT")
        assert pair_name(record) == "readA#0"

    def test_read_index_inverted_from_flag(self):
        assert read_index(make_record("r", PAIRED_R1, "A")) == 0
        assert read_index(make_record("r", PAIRED_R2, "A")) == 1
        # No read-one flag at all counts as read two
        assert read_index(make_record("r", 0x1, "A")) == 1

    def test_read_name_paired(self):
        assert read_name(make_record("M:1:X", PAIRED_R1, "A")) == "M:1:X/1"
        assert read_name(make_record("M:1:X", PAIRED_R2, "A")) == "M:1:X/2"

    def test_read_name_unpaired_has_no_suffix(self):
        # Read-one bit without the paired bit still gets no suffix
        assert read_name(make_record("single", 0x40, "A")) == "single"


class TestLaneId:
    """Tests for lane_id."""

    @pytest.mark.parametrize("name, lane", [
        ("INST:7:FLOWCELL:1:2", 7),
        ("HWI-ST1234:12:C0ABC:1:1101", 12),
        ("noColons", 0),
        ("one:colon", 0),
        ("A::B", 0),
        ("A:x7:B", 0),
        ("A:7abc:B", 7),
        ("A: 5:B", 5),
        ("A:\u0667:B", 0),
        ("A:2147483647:B", 2147483647),
        ("A:2147483648:B", 0),
        ("A:99999999999999999999:B", 0),
    ])
    def test_lane_parsing(self, name, lane):
        assert lane_id(name) == lane

    def test_lane_from_record(self):
        assert lane_id(make_record("SEQ:4:FC:1", PAIRED_R1, "A")) == 4


class TestNormalizeKey:
    """Tests for normalize_key."""

    def test_strips_trailing_suffix(self):
        assert normalize_key("readA#0") == "readA"
        assert normalize_key("readA/1") == "readA"

    def test_strict_mode_keeps_name(self):
        assert normalize_key("readA#0", strict=True) == "readA#0"

    def test_two_trailing_digits_unchanged(self):
        assert normalize_key("read12") == "read12"

    def test_trailing_letter_unchanged(self):
        assert normalize_key("readAB") == "readAB"

    def test_short_names_unchanged(self):
        assert normalize_key("a1") == "a1"
        assert normalize_key("") == ""

    def test_three_characters(self):
        assert normalize_key("x#1") == "x"

    def test_non_ascii_digit_is_not_a_suffix(self):
        assert normalize_key("readA#\u0661") == "readA#\u0661"
        assert normalize_key("read\u06611") == "read"


class TestFormatRecord:
    """Tests for format_record."""

    def test_four_lines(self):
        record = make_record("M:1:X", PAIRED_R1, "ACGT")
        text = format_record(record, "ACGT", "IIII")
        assert text == "@M:1:X/1\nACGT\n+\nIIII\n"

    def test_uses_unnormalized_name(self):
        record = make_record("readA#0", PAIRED_R2, "A")
        assert format_record(record, "A", "I").startswith("@readA#0/2\n")
