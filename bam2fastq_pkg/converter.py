"""
BAM to FASTQ converter.

Drives one conversion run: pulls records from the BAM source, applies the
inclusion filter, decodes and formats each read, pairs mates and routes the
results to the output files (or stdout).

Classes:
    Bam2FastqConverter: The converter
    Bam2FastqConverter.Settings: Immutable run configuration
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, TextIO, Union

from bam2fastq_pkg.logger import get_logger
from bam2fastq_pkg.report import ConversionReport
from bam2fastq_pkg.exceptions import (
    ConfigurationError,
    MalformedRecordError,
    TruncatedInputError,
)
from bam2fastq_pkg.utils.settings import BaseSettings
from bam2fastq_pkg.utils.formats import CodingType, OutputMode
from bam2fastq_pkg.pipeline.record_source import open_record_source
from bam2fastq_pkg.pipeline.decoder import decode_sequence, decode_quality
from bam2fastq_pkg.pipeline.formatter import format_record
from bam2fastq_pkg.pipeline.reconciler import MateReconciler
from bam2fastq_pkg.pipeline.router import DEFAULT_TEMPLATE, OutputRouter, TopologyKind, plan_topology

PROGRESS_INTERVAL = 1_000_000

# Read names listed in the malformed-record warning
MAX_REPORTED_NAMES = 5


class Bam2FastqConverter:
    """
    Converts the reads of a BAM file to FASTQ.

    Workflow:
        Open source → Read first record → Plan outputs → Convert records → Flush unmatched mates

    Nothing is written when the source cannot be opened or the outputs cannot
    be planned (missing placeholder, unknown lane, existing files).

    Example:
        >>> settings = Bam2FastqConverter.Settings(output_template="sample#.fastq", overwrite=True)
        >>> report = Bam2FastqConverter("sample.bam", settings).run()
        >>> report.records_exported
        2000
    """

    @dataclass(frozen=True)
    class Settings(BaseSettings):
        """
        Settings for a conversion run.

        Attributes:
            output_template: Output filename; '%' becomes the lane, '#' becomes _1/_2/_M
            save_aligned: Export reads that are aligned
            save_unaligned: Export reads that are not aligned
            save_filtered: Export reads flagged as failing QC
            overwrite: Replace existing output files instead of aborting
            quiet: Suppress informational messages
            strict: Use query names as pair keys unchanged (no suffix stripping)
            stdout_interleaved: Write both mates to stdout, unpaired reads to the _M file
            stdout_flat: Write every read to stdout in input order, ignoring pairing
            coding_type: Output compression ('gz', 'bz2' or None)
            threads: Compression threads (pigz/pbzip2 are used when > 1)
        """
        output_template: str = DEFAULT_TEMPLATE
        save_aligned: bool = True
        save_unaligned: bool = True
        save_filtered: bool = True
        overwrite: bool = False
        quiet: bool = False
        strict: bool = False
        stdout_interleaved: bool = False
        stdout_flat: bool = False
        coding_type: Optional[str] = None
        threads: Optional[int] = None

        def __post_init__(self):
            if self.stdout_interleaved and self.stdout_flat:
                raise ConfigurationError(
                    "stdout_interleaved and stdout_flat cannot both be set"
                )
            if not self.output_template:
                raise ConfigurationError("output_template must not be empty")
            if (self.coding_type is not None
                    and CodingType(self.coding_type) == CodingType.NONE
                    and str(self.coding_type).lower() != 'none'):
                raise ConfigurationError(
                    f"Unknown coding_type '{self.coding_type}'. Use 'gz', 'bz2' or null"
                )
            if self.threads is not None and (not isinstance(self.threads, int) or self.threads <= 0):
                raise ConfigurationError(f"'threads' must be a positive integer, got {self.threads!r}")

        @property
        def output_mode(self) -> OutputMode:
            if self.stdout_flat:
                return OutputMode.STDOUT_FLAT
            if self.stdout_interleaved:
                return OutputMode.STDOUT
            return OutputMode.FILES

    def __init__(
        self,
        input_path: Union[str, Path],
        settings: Optional[Settings] = None,
        source_factory: Callable = open_record_source,
        stream: Optional[TextIO] = None,
    ) -> None:
        """
        Args:
            input_path: BAM file to convert
            settings: Run settings (defaults if None)
            source_factory: Callable opening the record source for input_path
            stream: Stream used for stdout output modes (sys.stdout if None)
        """
        self.logger = get_logger()
        self.input_path = Path(input_path)
        self.settings = settings if settings is not None else self.Settings()
        self.source_factory = source_factory
        self.stream = stream

    def _info(self, message: str, **kwargs) -> None:
        if not self.settings.quiet:
            self.logger.info(message, **kwargs)

    def _include(self, record) -> bool:
        """Inclusion filter: aligned / unaligned / QC-failed."""
        if not self.settings.save_aligned and not record.is_unmapped:
            return False
        if not self.settings.save_unaligned and record.is_unmapped:
            return False
        if not self.settings.save_filtered and record.is_qcfail:
            return False
        return True

    def run(self) -> ConversionReport:
        """
        Convert the whole input.

        Returns:
            ConversionReport with counts and output paths

        Raises:
            SourceOpenError: If the BAM cannot be opened
            TopologyConfigError: If the output template cannot be used
            OutputConflictError: If an output exists and overwrite is off
        """
        settings = self.settings
        report = ConversionReport(input_file=str(self.input_path), settings=settings.to_dict())

        self.logger.start_timer("conversion")
        self._info(f"Converting {self.input_path}", file_context=self.input_path.name)

        with self.source_factory(self.input_path) as source:
            records = iter(source)
            try:
                first = next(records, None)
            except TruncatedInputError as e:
                self._report_truncation(report, e)
                first = None

            if first is None:
                if not report.truncated:
                    self.logger.add_issue(
                        level='WARNING',
                        category='source',
                        message=f"No reads found in {self.input_path}",
                        details={'file': str(self.input_path)},
                    )
                report.elapsed_time = self.logger.stop_timer("conversion")
                return report

            topology = plan_topology(settings, first)
            report.topology = topology.kind.value
            report.lane = topology.lane
            report.output_files = [str(p) for p in topology.file_paths]
            self._announce(topology)

            malformed_names = []
            with OutputRouter(topology, settings.coding_type, self.stream, settings.threads) as router:
                reconciler = MateReconciler(router, strict=settings.strict)

                record = first
                while record is not None:
                    report.records_seen += 1
                    if report.records_seen % PROGRESS_INTERVAL == 0:
                        self.logger.debug(f"Progress: {report.records_seen:,} reads processed...")

                    if not self._include(record):
                        report.records_filtered += 1
                    else:
                        try:
                            text = format_record(record, decode_sequence(record), decode_quality(record))
                        except MalformedRecordError as e:
                            report.records_malformed += 1
                            if len(malformed_names) < MAX_REPORTED_NAMES:
                                malformed_names.append(e.query_name)
                            self.logger.debug(str(e))
                        else:
                            reconciler.accept(record, text)
                            report.records_exported += 1

                    try:
                        record = next(records, None)
                    except TruncatedInputError as e:
                        self._report_truncation(report, e)
                        record = None

                report.unmatched_mates = reconciler.flush()
                report.pairs_written = reconciler.pairs_written
                report.unpaired_written = reconciler.unpaired_written

            report.slot_writes = {slot.name: count for slot, count in router.writes.items()}

        self._report_warnings(report, malformed_names)
        report.elapsed_time = self.logger.stop_timer("conversion")

        self._info(f"{report.records_seen:,} sequences in the BAM file")
        self._info(f"{report.records_exported:,} sequences exported")
        return report

    def _announce(self, topology) -> None:
        paths = {slot.name: str(path) for slot, path in topology.paths.items() if path is not None}
        if topology.kind == TopologyKind.PAIRED_FILES:
            self._info(
                f"This looks like paired data from lane {topology.lane}.",
                read_one=paths['READ_ONE'],
                read_two=paths['READ_TWO'],
                unpaired=paths['UNPAIRED'],
            )
        else:
            self._info(f"Output layout: {topology.kind.value}", **paths)

    def _report_truncation(self, report: ConversionReport, error: Exception) -> None:
        report.truncated = True
        self.logger.add_issue(
            level='ERROR',
            category='source',
            message=f"Input ended unexpectedly after {report.records_seen:,} reads: {error}",
            details={'file': str(self.input_path)},
        )

    def _report_warnings(self, report: ConversionReport, malformed_names) -> None:
        if report.unmatched_mates:
            self.logger.add_issue(
                level='WARNING',
                category='pairing',
                message=(
                    f"{report.unmatched_mates:,} reads could not be matched to a mate "
                    f"and were written to the unpaired output"
                ),
                details={'count': report.unmatched_mates},
            )
        if report.records_malformed:
            self.logger.add_issue(
                level='WARNING',
                category='record',
                message=(
                    f"{report.records_malformed:,} reads with unsupported bases or "
                    f"qualities were skipped"
                ),
                details={'count': report.records_malformed, 'examples': malformed_names},
            )
