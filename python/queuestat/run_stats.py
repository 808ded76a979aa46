"""Mutable accumulator for one capture's protocol statistics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .classifier import ClassificationResult, Operation, parse_set_size
from .percentiles import is_small_sample
from .tally import TallyBucket, TotalsBucket

logger = logging.getLogger(__name__)


@dataclass
class TimeBounds:
    first: Optional[int] = None
    last: Optional[int] = None

    def observe(self, timestamp: int) -> None:
        if self.first is None:
            self.first = timestamp
        self.last = timestamp


@dataclass
class RunStats:
    """Statistics for a single host's capture, built in packet order."""

    host: str
    track_sizes: bool = False
    count_total: int = 0
    count_with_data: int = 0
    count_filtered: int = 0
    count_matched: int = 0
    seen: TimeBounds = field(default_factory=TimeBounds)
    matched_seen: TimeBounds = field(default_factory=TimeBounds)
    totals: TotalsBucket = field(default_factory=TotalsBucket)
    by_host: TallyBucket = field(default_factory=TallyBucket)
    by_queue: TallyBucket = field(default_factory=TallyBucket)
    sizes: Dict[str, List[int]] = field(default_factory=dict)
    parse_failures: Set[str] = field(default_factory=set)

    def record_packet(self, timestamp: int) -> None:
        self.count_total += 1
        self.seen.observe(timestamp)

    def record_data_packet(
        self,
        classification: ClassificationResult,
        source_host: str,
        matched: bool,
        *,
        timestamp: int,
        payload: bytes = b"",
    ) -> None:
        operation = classification.operation
        self.count_with_data += 1
        self.totals.record(operation, matched)

        if not matched:
            self.count_filtered += 1
            return

        self.count_matched += 1
        self.matched_seen.observe(timestamp)
        self.by_host.increment(source_host, operation)

        queue = classification.queue
        if queue is None:
            return
        self.by_queue.increment(queue, operation)

        if self.track_sizes and operation is Operation.SET:
            self._record_set_size(queue, payload)

    def _record_set_size(self, queue: str, payload: bytes) -> None:
        command = parse_set_size(payload)
        if command is None:
            logger.debug("Could not parse set size for queue %s", queue)
            self.parse_failures.add(queue)
            return
        self.sizes.setdefault(queue, []).append(command.size)

    # ------------------------------------------------------------------
    def small_sample_queues(self) -> List[str]:
        return sorted(queue for queue, samples in self.sizes.items() if is_small_sample(samples))

    def sorted_parse_failures(self) -> List[str]:
        return sorted(self.parse_failures)


__all__ = ["TimeBounds", "RunStats"]
