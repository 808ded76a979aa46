"""Utility helpers for address and timestamp rendering."""

from __future__ import annotations

import ipaddress
import logging
import socket
import threading
from datetime import datetime
from typing import Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)

MICROS_PER_SECOND = 1_000_000
DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_ip(value: Union[bytes, bytearray, str]) -> str:
    """Convert a raw IP buffer into a printable string."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) == 4:
            return ".".join(str(b & 0xFF) for b in value)
        if len(value) == 16:
            return str(ipaddress.IPv6Address(bytes(value)))
    return str(value)


def address_sort_key(value: str) -> Tuple[int, int, str]:
    """Order IPv4 before IPv6, numerically, with non-addresses last."""
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return (99, 0, value)
    return (address.version, int(address), value)


def format_timestamp(micros: Optional[int], fmt: Optional[str] = None) -> str:
    """Render epoch microseconds as local time with millisecond precision."""
    if micros is None:
        return "-"
    dt = datetime.fromtimestamp(micros / MICROS_PER_SECOND)
    return f"{dt.strftime(fmt or DEFAULT_TIMESTAMP_FORMAT)}.{dt.microsecond // 1000:03d}"


def format_duration(first: Optional[int], last: Optional[int]) -> str:
    if first is None or last is None:
        return "0.000s"
    return f"{(last - first) / MICROS_PER_SECOND:.3f}s"


class HostResolver:
    """Caches reverse DNS lookups used for display names."""

    def __init__(self, lookup=socket.gethostbyaddr) -> None:
        self._lookup = lookup
        self._cache: Dict[str, str] = {}
        self._lock = threading.Lock()

    def resolve(self, address: str) -> str:
        with self._lock:
            cached = self._cache.get(address)
        if cached is not None:
            return cached

        try:
            name = self._lookup(address)[0]
        except (OSError, UnicodeError):
            logger.debug("Reverse lookup failed for %s", address, exc_info=True)
            name = address

        with self._lock:
            self._cache[address] = name
        return name

    __call__ = resolve


__all__ = [
    "MICROS_PER_SECOND",
    "format_ip",
    "address_sort_key",
    "format_timestamp",
    "format_duration",
    "HostResolver",
]
