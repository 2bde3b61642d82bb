"""
Tests for base and quality decoding.

Tests cover:
- Forward and reverse-strand sequence decoding
- Phred+33 quality decoding and reversal
- Rejection of unsupported base codes and quality values
"""

import pytest
from Bio.Seq import reverse_complement

from bam2fastq_pkg.exceptions import MalformedRecordError
from bam2fastq_pkg.pipeline.decoder import BASES, decode_sequence, decode_quality
from bam2fastq_pkg.pipeline.record_source import AlignmentRecord

from conftest import REVERSE, make_record


class TestDecodeSequence:
    """Tests for decode_sequence."""

    def test_forward_read(self):
        record = make_record("r", 0, "ACGTN")
        assert decode_sequence(record) == "ACGTN"

    def test_reverse_read_is_reverse_complemented(self):
        """Stored CGTT on the reverse strand was sequenced as AACG."""
        record = make_record("r", REVERSE, "CGTT")
        assert decode_sequence(record) == "AACG"

    def test_reverse_and_forward_are_reverse_complements(self):
        stored = "ACCGTTTGNA"
        forward = decode_sequence(make_record("r", 0, stored))
        reverse = decode_sequence(make_record("r", REVERSE, stored))
        assert reverse == reverse_complement(forward)

    def test_complement_table_is_self_inverse(self):
        forward_codes = (1, 2, 4, 8, 15)
        for code in forward_codes:
            base = BASES[code]
            complement = BASES[code + 16]
            back = next(c for c in forward_codes if BASES[c] == complement)
            assert BASES[back + 16] == base

    def test_exactly_ten_codes_supported(self):
        assert sorted(BASES) == [1, 2, 4, 8, 15, 17, 18, 20, 24, 31]

    def test_empty_sequence(self):
        record = make_record("r", REVERSE, "")
        assert decode_sequence(record) == ""

    @pytest.mark.parametrize("letter", ["=", "R", "Y", "M"])
    def test_ambiguity_codes_rejected(self, letter):
        record = make_record("amb", 0, f"AC{letter}T")
        with pytest.raises(MalformedRecordError) as exc_info:
            decode_sequence(record)
        assert exc_info.value.query_name == "amb"
        assert "position 2" in str(exc_info.value)

    def test_raw_code_out_of_range_rejected(self):
        record = AlignmentRecord("raw", 0, bytes([1, 2, 0xFF]), bytes([30, 30, 30]), 3)
        with pytest.raises(MalformedRecordError):
            decode_sequence(record)


class TestDecodeQuality:
    """Tests for decode_quality."""

    def test_phred33(self):
        record = AlignmentRecord("r", 0, bytes([1, 2, 4]), bytes([0, 40, 93]), 3)
        assert decode_quality(record) == "!I~"

    def test_reverse_read_quality_reversed(self):
        record = make_record("r", REVERSE, "CGTT", "ABCD")
        assert decode_quality(record) == "DCBA"

    def test_reversal_consistent_with_sequence(self):
        """Position i of the sequence keeps its own quality after reversal."""
        stored_seq, stored_qual = "ACGTA", "!+5?I"
        forward = make_record("r", 0, stored_seq, stored_qual)
        reverse = make_record("r", REVERSE, stored_seq, stored_qual)

        fwd_pairs = list(zip(decode_sequence(forward), decode_quality(forward)))
        rev_pairs = list(zip(decode_sequence(reverse), decode_quality(reverse)))

        complement = {'A': 'T', 'C': 'G', 'G': 'C', 'T': 'A', 'N': 'N'}
        assert rev_pairs == [(complement[b], q) for b, q in reversed(fwd_pairs)]

    def test_absent_qualities_become_phred_zero(self):
        record = AlignmentRecord.from_strings("noqual", 0, "ACGT", None)
        assert decode_quality(record) == "!!!!"

    def test_absent_qualities_reverse_strand(self):
        record = AlignmentRecord.from_strings("noqual", REVERSE, "ACG", None)
        assert decode_quality(record) == "!!!"

    def test_stray_ff_value_rejected(self):
        record = AlignmentRecord("r", 0, bytes([1, 2]), bytes([30, 0xFF]), 2)
        with pytest.raises(MalformedRecordError, match="invalid quality value 255"):
            decode_quality(record)

    def test_length_mismatch_rejected(self):
        record = AlignmentRecord("r", 0, bytes([1, 2]), bytes([30]), 2)
        with pytest.raises(MalformedRecordError, match="1 quality values for 2 bases"):
            decode_quality(record)
