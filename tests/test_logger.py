"""
Basic tests for the logging functionality.
Tests core features without over-testing Python's logging module.
"""

import json
import time

import pytest
import tempfile
from pathlib import Path

from bam2fastq_pkg.logger import ConversionLogger, setup_logging, get_logger


class TestLogger:
    """Test suite for ConversionLogger."""

    def test_logger_singleton(self):
        """Test that logger follows singleton pattern."""
        assert get_logger() is get_logger()
        assert ConversionLogger() is get_logger()

    def test_setup_logging_creates_log_file(self):
        """Test that setup_logging creates a JSON-lines log file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "conversion.log"

            logger = setup_logging(log_file=log_file)
            logger.info("Test message", file_context="reads.bam")

            assert log_file.exists()
            entries = [json.loads(line) for line in log_file.read_text().splitlines()]
            assert any(e['event'] == "Test message" for e in entries)

    def test_log_file_directory_creation(self):
        """Test that log file parent directories are created."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "nested" / "dir" / "test.log"

            logger = setup_logging(log_file=log_file)
            logger.info("Test")

            assert log_file.exists()

    def test_console_output_goes_to_stderr(self, capsys):
        """stdout is reserved for FASTQ output."""
        logger = setup_logging(console_level="INFO")
        logger.info("to stderr")

        captured = capsys.readouterr()
        assert "to stderr" not in captured.out

    def test_add_issue_stores_issue(self):
        """Test that structured issues are stored correctly."""
        logger = get_logger()
        logger.add_issue(
            level='ERROR',
            category='source',
            message='Input ended unexpectedly',
            details={'file': 'reads.bam'}
        )

        issues = logger.structured_issues()
        assert len(issues) == 1
        issue = issues[0]
        assert issue['level'] == 'ERROR'
        assert issue['category'] == 'source'
        assert issue['message'] == 'Input ended unexpectedly'
        assert issue['details']['file'] == 'reads.bam'
        assert 'timestamp' in issue

    def test_structured_issues_filter_by_level(self):
        logger = get_logger()
        logger.add_issue('ERROR', 'source', 'Error 1')
        logger.add_issue('WARNING', 'pairing', 'Warning 1')
        logger.add_issue('WARNING', 'record', 'Warning 2')

        assert len(logger.structured_issues()) == 3
        assert [i['message'] for i in logger.structured_issues('WARNING')] == ['Warning 1', 'Warning 2']

    def test_warning_recorded_as_plain_issue(self):
        logger = get_logger()
        logger.warning("plain warning")

        assert ('WARNING', "plain warning") in logger.issues
        assert logger.structured_issues() == []

    def test_clear_issues(self):
        """Test that clear_issues removes all issues."""
        logger = get_logger()
        logger.add_issue('ERROR', 'source', 'Error 1')
        logger.error("Error 2")
        assert len(logger.issues) == 2

        logger.clear_issues()
        assert len(logger.issues) == 0

    def test_setup_clears_previous_issues(self):
        logger = get_logger()
        logger.add_issue('WARNING', 'pairing', 'old')

        logger.setup(console_level="WARNING", clear_previous_issues=False)
        assert len(logger.issues) == 1

        logger.setup(console_level="WARNING")
        assert len(logger.issues) == 0

    def test_context_manager_clears_issues_on_entry(self):
        logger = get_logger()
        logger.add_issue('WARNING', 'pairing', 'before')

        with logger as log:
            assert log.issues == []
            log.add_issue('WARNING', 'pairing', 'inside')

        assert len(logger.issues) == 1


class TestTimingMethods:
    """Test suite for timing functionality."""

    def test_start_stop_timer_basic(self):
        """Test basic timer functionality."""
        logger = get_logger()

        logger.start_timer("test_operation")
        time.sleep(0.1)
        elapsed = logger.stop_timer("test_operation")

        assert 0.09 < elapsed < 0.5, f"Expected ~0.1s, got {elapsed}s"

    def test_stop_timer_without_start_raises_error(self):
        """Test that stopping a non-existent timer raises KeyError."""
        logger = get_logger()

        with pytest.raises(KeyError, match="Timer 'nonexistent' was never started"):
            logger.stop_timer("nonexistent")

    def test_timer_cannot_be_stopped_twice(self):
        logger = get_logger()
        logger.start_timer("once")
        logger.stop_timer("once")

        with pytest.raises(KeyError):
            logger.stop_timer("once")


class TestFileAutoIncrement:
    """Test suite for log file auto-increment functionality."""

    def test_log_file_auto_increment(self):
        """Test that log files auto-increment instead of overwriting."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "conversion.log"

            logger = get_logger()
            logger.setup(log_file=log_file)
            logger.info("First run")
            assert "First run" in log_file.read_text()

            logger.setup(log_file=log_file)
            logger.info("Second run")

            log_file_001 = Path(tmpdir) / "conversion_001.log"
            assert logger.log_file == log_file_001
            assert "Second run" in log_file_001.read_text()
            assert "Second run" not in log_file.read_text()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
