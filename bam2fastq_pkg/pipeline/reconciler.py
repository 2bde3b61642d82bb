"""
Mate reconciliation.

Both members of a pair must land at the same position of the read-one and
read-two outputs. Reads arrive in any order, so the first mate seen is held
as formatted text until its partner shows up, and then both are written
together. Mates that never show up are written to the unpaired output when
the input ends.
"""

from typing import Dict, List

from bam2fastq_pkg.pipeline.identity import normalize_key, pair_name, read_index
from bam2fastq_pkg.pipeline.router import OutputSlot


class MateReconciler:
    """
    Pairs up mates and hands completed records to an OutputRouter.

    At most one record is pending per pair key. The second record seen for a
    key always completes the pair; a third record with the same key starts a
    new pending entry.

    Attributes:
        router: OutputRouter receiving the records
        strict: If True, pair keys are the raw query names
        pairs_written: Number of completed pairs emitted
        unpaired_written: Records emitted to the unpaired slot (including flushed ones)
    """

    def __init__(self, router, strict: bool = False):
        self.router = router
        self.strict = strict
        self._pending: Dict[str, str] = {}
        self.pairs_written = 0
        self.unpaired_written = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def pending_keys(self) -> List[str]:
        """Keys still waiting for a mate, in the order they were first seen."""
        return list(self._pending)

    def accept(self, record, text: str) -> None:
        """
        Route one formatted record, holding it back if its mate is still to come.

        Args:
            record: AlignmentRecord the text was formatted from
            text: Four-line FASTQ text of the record
        """
        if self.router.is_flat:
            self.router.emit(OutputSlot.FLAT, text)
            return

        if not record.is_paired:
            self.router.emit(OutputSlot.UNPAIRED, text)
            self.unpaired_written += 1
            return

        key = normalize_key(pair_name(record), self.strict)
        stored = self._pending.pop(key, None)
        if stored is None:
            self._pending[key] = text
            return

        index = read_index(record)
        if self.router.is_order_preserving:
            # Shared stream: read one goes first whatever the arrival order
            if index == 0:
                self.router.emit(OutputSlot.READ_ONE, text)
                self.router.emit(OutputSlot.READ_TWO, stored)
            else:
                self.router.emit(OutputSlot.READ_ONE, stored)
                self.router.emit(OutputSlot.READ_TWO, text)
        else:
            self.router.emit(OutputSlot.for_index(index), text)
            self.router.emit(OutputSlot.for_index(1 - index), stored)
        self.pairs_written += 1

    def flush(self) -> int:
        """
        Write every pending record to the unpaired slot.

        Returns:
            Number of records whose mate never arrived
        """
        unmatched = len(self._pending)
        for text in self._pending.values():
            self.router.emit(OutputSlot.UNPAIRED, text)
        self.unpaired_written += unmatched
        self._pending.clear()
        return unmatched
