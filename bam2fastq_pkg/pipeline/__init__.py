"""
Record pipeline: source -> decode -> identify -> format -> reconcile -> route.
"""

from .record_source import AlignmentRecord, BamRecordSource, open_record_source
from .decoder import decode_sequence, decode_quality
from .identity import pair_name, read_index, read_name, lane_id, normalize_key
from .formatter import format_record
from .router import OutputSlot, OutputTopology, TopologyKind, OutputRouter, plan_topology, render_filename
from .reconciler import MateReconciler

__all__ = [
    'AlignmentRecord',
    'BamRecordSource',
    'open_record_source',
    'decode_sequence',
    'decode_quality',
    'pair_name',
    'read_index',
    'read_name',
    'lane_id',
    'normalize_key',
    'format_record',
    'OutputSlot',
    'OutputTopology',
    'TopologyKind',
    'OutputRouter',
    'plan_topology',
    'render_filename',
    'MateReconciler',
]
