"""Decoded packet record handed from the packet source to the analysis pass."""

from __future__ import annotations

from dataclasses import dataclass

from .utils import format_ip

IP_PROTO_TCP = 6


@dataclass(frozen=True)
class CapturedPacket:
    timestamp: int
    src: bytes
    dst: bytes
    src_port: int
    dst_port: int
    protocol: int
    payload: bytes = b""

    @property
    def src_host(self) -> str:
        return format_ip(self.src)

    @property
    def dst_host(self) -> str:
        return format_ip(self.dst)

    @property
    def has_tcp_payload(self) -> bool:
        return self.protocol == IP_PROTO_TCP and len(self.payload) > 0


__all__ = ["CapturedPacket", "IP_PROTO_TCP"]
