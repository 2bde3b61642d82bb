"""
Output routing for converted reads.

The router maps a logical output slot (read one, read two, unpaired, flat)
to a physical destination. Which destinations exist is decided once per run
by plan_topology(), from the settings and the first record of the input:

    PAIRED_FILES        <template>_1, <template>_2 and <template>_M files
    STDOUT_INTERLEAVED  both mates on stdout, unpaired reads to the _M file
    STDOUT_FLAT         every read on stdout, in input order
    SINGLE_FILE         every read in one file, in input order (single-end data)

Filename templates use two placeholders: '%' is replaced with the lane
number and '#' with '_1', '_2' or '_M' (removed in SINGLE_FILE mode).
"""

import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, TextIO

from bam2fastq_pkg.exceptions import OutputConflictError, TopologyConfigError
from bam2fastq_pkg.logger import get_logger
from bam2fastq_pkg.pipeline.identity import lane_id
from bam2fastq_pkg.utils.file_handler import open_compressed_writer
from bam2fastq_pkg.utils.formats import CodingType, OutputMode

LANE_PLACEHOLDER = '%'
MATE_PLACEHOLDER = '#'

DEFAULT_TEMPLATE = "s_%#_sequence.txt"


class OutputSlot(Enum):
    READ_ONE = "_1"
    READ_TWO = "_2"
    UNPAIRED = "_M"
    FLAT = ""

    @classmethod
    def for_index(cls, index: int) -> "OutputSlot":
        """Mate slot for a read index (0 = read one, 1 = read two)."""
        return (cls.READ_ONE, cls.READ_TWO)[index]

    @property
    def token(self) -> str:
        """Text substituted for the mate placeholder."""
        return self.value


class TopologyKind(Enum):
    PAIRED_FILES = "paired-files"
    STDOUT_INTERLEAVED = "stdout-interleaved"
    STDOUT_FLAT = "stdout-flat"
    SINGLE_FILE = "single-file"


@dataclass(frozen=True)
class OutputTopology:
    """
    Physical layout of one run's output.

    Attributes:
        kind: Which layout is in use
        lane: Lane number taken from the first read (0 if unknown)
        paths: Slot -> file path; None means the shared standard output stream
    """
    kind: TopologyKind
    lane: int = 0
    paths: Dict[OutputSlot, Optional[Path]] = field(default_factory=dict)

    @property
    def is_flat(self) -> bool:
        return self.kind in (TopologyKind.STDOUT_FLAT, TopologyKind.SINGLE_FILE)

    @property
    def is_order_preserving(self) -> bool:
        """Both mate slots share one stream, so mates must be written read one first."""
        return self.kind == TopologyKind.STDOUT_INTERLEAVED

    @property
    def file_paths(self) -> list:
        """Distinct file destinations, in slot order."""
        seen = []
        for path in self.paths.values():
            if path is not None and path not in seen:
                seen.append(path)
        return seen


def _substitute_lane(template: str, lane: int) -> str:
    if LANE_PLACEHOLDER not in template:
        return template
    if lane == 0:
        raise TopologyConfigError(
            "The lane could not be determined from the reads. Specify output files "
            "(using --output) that do not include the lane number (%)"
        )
    return template.replace(LANE_PLACEHOLDER, str(lane), 1)


def render_filename(template: str, lane: int, token: str) -> str:
    """
    Fill in the lane and mate placeholders of a filename template.

    Only the first occurrence of each placeholder is replaced.

    Args:
        template: Filename template, e.g. "s_%#_sequence.txt"
        lane: Lane number substituted for '%'
        token: Text substituted for '#' ("_1", "_2", "_M" or "")

    Raises:
        TopologyConfigError: If the template contains '%' and lane is 0

    Example:
        >>> render_filename("s_%#_sequence.txt", 3, "_1")
        's_3_1_sequence.txt'
    """
    return _substitute_lane(template, lane).replace(MATE_PLACEHOLDER, token, 1)


def _with_coding(path: Path, coding: CodingType) -> Path:
    extension = coding.extension
    if extension and not path.name.endswith(extension):
        return path.with_name(path.name + extension)
    return path


def _paired_paths(template: str, lane: int, slots, coding: CodingType) -> Dict[OutputSlot, Path]:
    if MATE_PLACEHOLDER not in template:
        raise TopologyConfigError(
            "The sequences in the BAM file are marked as paired, but a single output "
            "file is specified. Ensure that the output filename (--output) includes "
            "a # symbol to be replaced with the read number"
        )
    return {
        slot: _with_coding(Path(render_filename(template, lane, slot.token)), coding)
        for slot in slots
    }


def plan_topology(settings, first_record) -> OutputTopology:
    """
    Choose the output layout for a run.

    An unpaired first record selects SINGLE_FILE, so single-end input gets
    one file with the mate placeholder removed instead of empty _1/_2 files.

    Args:
        settings: Bam2FastqConverter.Settings
        first_record: First AlignmentRecord of the input; provides the lane and
            whether the data is paired

    Returns:
        OutputTopology with every destination path resolved

    Raises:
        TopologyConfigError: If the template cannot be filled in
        OutputConflictError: If a target file exists and overwrite is off
    """
    logger = get_logger()
    lane = lane_id(first_record)
    coding = CodingType(settings.coding_type) if settings.coding_type else CodingType.NONE
    template = settings.output_template
    mode = settings.output_mode

    if mode == OutputMode.STDOUT_FLAT:
        topology = OutputTopology(
            kind=TopologyKind.STDOUT_FLAT,
            lane=lane,
            paths={OutputSlot.FLAT: None},
        )
    elif mode == OutputMode.STDOUT:
        paths = _paired_paths(template, lane, (OutputSlot.UNPAIRED,), coding)
        paths[OutputSlot.READ_ONE] = None
        paths[OutputSlot.READ_TWO] = None
        topology = OutputTopology(kind=TopologyKind.STDOUT_INTERLEAVED, lane=lane, paths=paths)
    elif not first_record.is_paired:
        path = _with_coding(Path(render_filename(template, lane, "")), coding)
        topology = OutputTopology(
            kind=TopologyKind.SINGLE_FILE,
            lane=lane,
            paths={OutputSlot.FLAT: path},
        )
    else:
        paths = _paired_paths(
            template, lane,
            (OutputSlot.READ_ONE, OutputSlot.READ_TWO, OutputSlot.UNPAIRED),
            coding,
        )
        topology = OutputTopology(kind=TopologyKind.PAIRED_FILES, lane=lane, paths=paths)

    if not settings.overwrite:
        for path in topology.file_paths:
            if path.exists():
                raise OutputConflictError(
                    f"{path} already exists. Specify --force to overwrite",
                    path=path,
                )

    logger.debug(
        f"Output topology: {topology.kind.value}",
        lane=lane,
        files=[str(p) for p in topology.file_paths],
    )
    return topology


class OwnedFileWriter:
    """A file the router opened and must close."""

    def __init__(self, path: Path, coding: CodingType, threads: Optional[int] = None):
        self.path = path
        self._handle = open_compressed_writer(path, coding, threads=threads)

    def write(self, text: str) -> None:
        self._handle.write(text)

    def close(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            handle.close()


class SharedStreamWriter:
    """A stream owned by someone else (stdout); flushed but never closed."""

    path = None

    def __init__(self, stream: TextIO):
        self._stream = stream

    def write(self, text: str) -> None:
        self._stream.write(text)

    def close(self) -> None:
        self._stream.flush()


class OutputRouter:
    """
    Owns the physical destinations of a run and writes records to them.

    Use as a context manager: destinations are opened on entry and released
    on exit, whether the run finished or failed.

    Example:
        >>> with OutputRouter(topology) as router:
        ...     router.emit(OutputSlot.READ_ONE, text)
    """

    def __init__(
        self,
        topology: OutputTopology,
        coding_type: Optional[str] = None,
        stream: Optional[TextIO] = None,
        threads: Optional[int] = None,
    ):
        self.topology = topology
        self.coding = CodingType(coding_type) if coding_type else CodingType.NONE
        self.threads = threads
        self._stream = stream
        self._writers: Dict[OutputSlot, object] = {}
        self._owned = []
        self.writes: Dict[OutputSlot, int] = {slot: 0 for slot in topology.paths}

    @property
    def is_flat(self) -> bool:
        return self.topology.is_flat

    @property
    def is_order_preserving(self) -> bool:
        return self.topology.is_order_preserving

    @property
    def paths(self) -> list:
        return self.topology.file_paths

    def open(self) -> "OutputRouter":
        shared = None
        by_path = {}
        try:
            for slot, path in self.topology.paths.items():
                if path is None:
                    if shared is None:
                        shared = SharedStreamWriter(self._stream or sys.stdout)
                    self._writers[slot] = shared
                elif path in by_path:
                    self._writers[slot] = by_path[path]
                else:
                    writer = OwnedFileWriter(path, self.coding, threads=self.threads)
                    self._owned.append(writer)
                    by_path[path] = writer
                    self._writers[slot] = writer
        except OSError:
            self.close()
            raise
        return self

    def emit(self, slot: OutputSlot, text: str) -> None:
        """Write one formatted record to the destination bound to slot."""
        try:
            writer = self._writers[slot]
        except KeyError:
            raise ValueError(
                f"Slot {slot.name} is not part of the {self.topology.kind.value} topology"
            ) from None
        writer.write(text)
        self.writes[slot] += 1

    def close(self) -> None:
        """Close owned files and flush shared streams; the first error is re-raised."""
        error = None
        shared = {id(w): w for w in self._writers.values() if isinstance(w, SharedStreamWriter)}
        for writer in list(self._owned) + list(shared.values()):
            try:
                writer.close()
            except Exception as e:
                if error is None:
                    error = e
        self._owned = []
        self._writers = {}
        if error is not None:
            raise error

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.close()
        else:
            try:
                self.close()
            except Exception:
                get_logger().debug("Error while closing outputs after a failure", exc_info=True)
        return False
