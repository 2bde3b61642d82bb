"""
Command-line interface for the BAM to FASTQ converter.

Usage:
    python -m bam2fastq_pkg reads.bam
    python -m bam2fastq_pkg -o "sample_#.fastq" --no-filtered reads.bam
    python -m bam2fastq_pkg --stdout -o "unpaired#.fastq" reads.bam | bwa mem -p ref.fa -
"""

import sys
import argparse
from pathlib import Path

from bam2fastq_pkg import __version__
from bam2fastq_pkg.converter import Bam2FastqConverter
from bam2fastq_pkg.config_manager import ConfigManager
from bam2fastq_pkg.exceptions import Bam2FastqError
from bam2fastq_pkg.logger import setup_logging, get_logger
from bam2fastq_pkg.pipeline.router import DEFAULT_TEMPLATE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bam2fastq",
        description=f"bam2fastq v{__version__} - extract sequences from a BAM file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Paired reads to s_<lane>_1_sequence.txt, s_<lane>_2_sequence.txt, s_<lane>_M_sequence.txt
  bam2fastq reads.bam

  # Custom names, gzip output, skip QC-failed reads
  bam2fastq -o "sample#.fastq" --compress gz --no-filtered reads.bam

  # Interleaved pairs on stdout
  bam2fastq --stdout -o "sample#.fastq" reads.bam > interleaved.fastq
        """
    )

    parser.add_argument('bam', type=str, help='BAM file to convert')
    parser.add_argument(
        '-o', '--output',
        type=str,
        default=None,
        help="Name of the FASTQ file(s). May contain %% (replaced with the lane number) "
             "and # (replaced with _1/_2 for paired reads, _M for unpaired reads, "
             f"removed for single-end data) [default: {DEFAULT_TEMPLATE.replace('%', '%%')}]"
    )
    parser.add_argument(
        '-f', '--force', '--overwrite',
        dest='overwrite',
        action='store_true',
        default=None,
        help='Overwrite existing output files [default: exit instead]'
    )
    for name, what in (
        ('aligned', 'Reads that are aligned'),
        ('unaligned', 'Reads that are not aligned'),
        ('filtered', 'Reads marked as failing QC checks'),
    ):
        group = parser.add_mutually_exclusive_group()
        group.add_argument(
            f'--{name}', dest=f'save_{name}', action='store_true', default=None,
            help=f'{what} will be extracted [default]'
        )
        group.add_argument(
            f'--no-{name}', dest=f'save_{name}', action='store_false',
            help=f'{what} will not be extracted'
        )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        default=None,
        help='Suppress informational messages'
    )
    parser.add_argument(
        '-s', '--strict',
        action='store_true',
        default=None,
        help='Use read names unchanged to match mates (no suffix stripping)'
    )
    stdout_group = parser.add_mutually_exclusive_group()
    stdout_group.add_argument(
        '--stdout',
        dest='stdout_interleaved',
        action='store_true',
        default=None,
        help='Write paired reads interleaved to stdout; unpaired reads go to the _M file'
    )
    stdout_group.add_argument(
        '--stdout-flat',
        dest='stdout_flat',
        action='store_true',
        default=None,
        help='Write every read to stdout in input order, ignoring pairing'
    )
    parser.add_argument(
        '--compress',
        dest='coding_type',
        choices=['gz', 'bz2'],
        default=None,
        help='Compress output files'
    )
    parser.add_argument('--threads', type=int, default=None, help='Compression threads')
    parser.add_argument('--config', type=str, help='JSON file with default options')
    parser.add_argument('--report', type=str, help='Write a JSON conversion report')
    parser.add_argument('--log-file', type=str, help='Write a detailed JSON log')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('-v', '--version', action='version', version=f'bam2fastq v{__version__}')
    return parser


# CLI attribute -> Settings field
_OVERRIDES = (
    'overwrite', 'save_aligned', 'save_unaligned', 'save_filtered', 'quiet',
    'strict', 'stdout_interleaved', 'stdout_flat', 'coding_type', 'threads',
)


def build_settings(args) -> Bam2FastqConverter.Settings:
    """Settings from the config file (if any) overridden by explicit flags."""
    if args.config:
        settings = ConfigManager.load(args.config)
    else:
        settings = Bam2FastqConverter.Settings()

    overrides = {name: getattr(args, name) for name in _OVERRIDES if getattr(args, name) is not None}
    if args.output is not None:
        overrides['output_template'] = args.output
    # One stdout mode on the command line replaces the other from the config
    if overrides.get('stdout_interleaved'):
        overrides.setdefault('stdout_flat', False)
    if overrides.get('stdout_flat'):
        overrides.setdefault('stdout_interleaved', False)
    return settings.update(**overrides)


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    console_level = 'DEBUG' if args.verbose else ('WARNING' if args.quiet else 'INFO')
    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(console_level=console_level, log_file=log_file)
    logger = get_logger()

    try:
        settings = build_settings(args)
        if settings.quiet and not args.verbose:
            logger.reconfigure_level('WARNING')

        report = Bam2FastqConverter(args.bam, settings).run()

        if args.report:
            report_path = report.write_json(Path(args.report))
            logger.debug(f"Report written to {report_path}")
        if not settings.quiet:
            print(report.summary(), file=sys.stderr)

        return 0 if report.passed else 1

    except Bam2FastqError as e:
        logger.error(f"ERROR: {e}")
        return 1
    except OSError as e:
        logger.error(f"ERROR: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
