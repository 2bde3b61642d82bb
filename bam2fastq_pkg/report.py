"""
Conversion report.

Collects the counters of one conversion run and renders them as text
(for the console) or JSON (for pipelines).
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any


@dataclass
class ConversionReport:
    """Outcome of converting one BAM file."""
    input_file: str
    topology: Optional[str] = None
    lane: int = 0
    records_seen: int = 0
    records_exported: int = 0
    records_filtered: int = 0
    records_malformed: int = 0
    pairs_written: int = 0
    unpaired_written: int = 0
    unmatched_mates: int = 0
    slot_writes: Dict[str, int] = field(default_factory=dict)
    output_files: List[str] = field(default_factory=list)
    truncated: bool = False
    elapsed_time: float = 0.0
    settings: Optional[Dict[str, Any]] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def passed(self) -> bool:
        """False when the input ended with a read error."""
        return not self.truncated

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['passed'] = self.passed
        return data

    def summary(self) -> str:
        """Human-readable summary of the run."""
        lines = [
            "=" * 60,
            "BAM TO FASTQ CONVERSION SUMMARY",
            "=" * 60,
            f"Input file:          {self.input_file}",
            f"Output layout:       {self.topology or 'none'}",
        ]
        if self.lane:
            lines.append(f"Lane:                {self.lane}")
        lines.extend([
            f"Sequences in BAM:    {self.records_seen:,}",
            f"Sequences exported:  {self.records_exported:,}",
        ])
        if self.records_filtered:
            lines.append(f"Filtered out:        {self.records_filtered:,}")
        if self.pairs_written:
            lines.append(f"Pairs written:       {self.pairs_written:,}")
        if self.unpaired_written:
            lines.append(f"Unpaired written:    {self.unpaired_written:,}")
        if self.unmatched_mates:
            lines.append(f"Unmatched mates:     {self.unmatched_mates:,}")
        if self.records_malformed:
            lines.append(f"Malformed (skipped): {self.records_malformed:,}")
        for path in self.output_files:
            lines.append(f"  -> {path}")
        lines.append(f"Elapsed:             {self.elapsed_time:.2f}s")
        lines.append(f"Status:              {'OK' if self.passed else 'TRUNCATED INPUT'}")
        lines.append("=" * 60)
        return '\n'.join(lines)

    def write_json(self, report_path: Path) -> Path:
        """
        Write the report as JSON, never overwriting an existing report.

        Returns:
            Path the report was written to
        """
        from bam2fastq_pkg.utils.file_handler import get_incremented_path

        report_path = Path(report_path)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path = get_incremented_path(report_path)

        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)
        return report_path
