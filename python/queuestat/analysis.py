"""Single-pass analysis of a capture into a RunStats accumulator."""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Optional

from .captured_packet import CapturedPacket
from .classifier import classify
from .errors import InvalidFilterError
from .packet_reader import PacketReader
from .run_stats import RunStats

logger = logging.getLogger(__name__)

ContentFilter = Callable[[bytes], bool]


def compile_content_filter(pattern: Optional[str]) -> Optional[ContentFilter]:
    """Build a payload predicate from a regular expression, or ``None``."""
    if pattern is None:
        return None
    try:
        compiled = re.compile(pattern.encode("utf-8"))
    except re.error as exc:
        raise InvalidFilterError(f"Invalid filter pattern {pattern!r}: {exc}") from exc
    return lambda payload: compiled.search(payload) is not None


def analyze_packets(
    packets: Iterable[CapturedPacket],
    stats: RunStats,
    content_filter: Optional[ContentFilter] = None,
) -> RunStats:
    for packet in packets:
        stats.record_packet(packet.timestamp)
        if not packet.has_tcp_payload:
            continue

        matched = content_filter is None or content_filter(packet.payload)
        stats.record_data_packet(
            classify(packet.payload),
            packet.src_host,
            matched,
            timestamp=packet.timestamp,
            payload=packet.payload,
        )
    return stats


def analyze_capture(
    path,
    host: str,
    *,
    track_sizes: bool = False,
    content_filter: Optional[ContentFilter] = None,
) -> RunStats:
    stats = RunStats(host=host, track_sizes=track_sizes)
    with PacketReader(path) as reader:
        analyze_packets(reader, stats, content_filter)
    logger.info(
        "Analyzed %s: packets=%d, with data=%d, matched=%d",
        path,
        stats.count_total,
        stats.count_with_data,
        stats.count_matched,
    )
    return stats


__all__ = ["ContentFilter", "compile_content_filter", "analyze_packets", "analyze_capture"]
