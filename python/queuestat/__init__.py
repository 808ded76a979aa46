"""Queue protocol traffic statistics from packet captures."""

from .analysis import analyze_capture, analyze_packets, compile_content_filter
from .captured_packet import CapturedPacket
from .capture import CaptureOptions, CaptureRunner, TerminalCredentialProvider
from .classifier import (
    ClassificationResult,
    CommandMatch,
    Operation,
    SetCommand,
    UNMATCHED,
    classify,
    match_command,
    parse_set_size,
)
from .errors import QueueStatError
from .packet_reader import PacketReader
from .percentiles import compute_percentiles, normalize_percentiles, percentile_value
from .report import ReportOptions, format_report
from .run_stats import RunStats
from .tally import TallyBucket, TotalsBucket

__all__ = [
    "CapturedPacket",
    "PacketReader",
    "Operation",
    "CommandMatch",
    "UNMATCHED",
    "SetCommand",
    "ClassificationResult",
    "match_command",
    "parse_set_size",
    "classify",
    "TallyBucket",
    "TotalsBucket",
    "RunStats",
    "analyze_packets",
    "analyze_capture",
    "compile_content_filter",
    "percentile_value",
    "normalize_percentiles",
    "compute_percentiles",
    "ReportOptions",
    "format_report",
    "CaptureOptions",
    "CaptureRunner",
    "TerminalCredentialProvider",
    "QueueStatError",
]
