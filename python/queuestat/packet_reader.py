"""PCAP ingestion layer yielding CapturedPacket records in capture order."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Iterator, Optional, Tuple, Union

import dpkt
from dpkt.ethernet import VLANtag8021Q

from .captured_packet import CapturedPacket
from .errors import CaptureFileMissingError, InvalidCaptureFileError
from .utils import MICROS_PER_SECOND

logger = logging.getLogger(__name__)

DLT_NULL = 0
DLT_EN10MB = 1
DLT_RAW = 101
DLT_LOOP = 108
DLT_LINUX_SLL = 113
DLT_RAW_ALT = 12


class PacketReader:
    """Iterates over CapturedPacket instances decoded from a PCAP capture."""

    def __init__(self, pcap_path: Union[str, Path]) -> None:
        path = Path(pcap_path)
        if not path.is_file():
            raise CaptureFileMissingError(f"Capture file does not exist: {path}")

        self.path = path

        self._file: Optional[IO[bytes]] = None
        self._pcap: Optional[dpkt.pcap.Reader] = None
        self._packet_iter: Optional[Iterator[Tuple[float, bytes]]] = None
        self._datalink = DLT_EN10MB

    # ------------------------------------------------------------------
    def __enter__(self) -> "PacketReader":
        self._open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    # ------------------------------------------------------------------
    def close(self) -> None:
        if self._pcap is not None:
            self._pcap = None
        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                logger.debug("Failed to close capture file", exc_info=True)
            finally:
                self._file = None
        self._packet_iter = None

    # ------------------------------------------------------------------
    def __iter__(self) -> Iterator[CapturedPacket]:
        while True:
            packet = self.next_packet()
            if packet is None:
                break
            yield packet

    def next_packet(self) -> Optional[CapturedPacket]:
        self._ensure_iter()
        assert self._packet_iter is not None

        while True:
            try:
                ts, buf = next(self._packet_iter)
            except StopIteration:
                return None
            except (dpkt.NeedData, dpkt.UnpackError, ValueError):
                logger.warning("Capture %s ends with a truncated record", self.path)
                return None
            packet = self._decode_packet(ts, buf)
            if packet is not None:
                return packet

    # ------------------------------------------------------------------
    def _ensure_iter(self) -> None:
        if self._pcap is None or self._packet_iter is None:
            self._open()
            assert self._pcap is not None
            self._packet_iter = iter(self._pcap)

    def _open(self) -> None:
        if self._pcap is not None:
            return
        try:
            self._file = self.path.open("rb")
            self._pcap = dpkt.pcap.Reader(self._file)
        except (OSError, ValueError, dpkt.NeedData, dpkt.UnpackError) as exc:
            self.close()
            raise InvalidCaptureFileError(f"Failed to open capture file: {self.path}") from exc
        self._datalink = self._pcap.datalink()
        logger.debug("Opened %s (link type %d)", self.path, self._datalink)

    # ------------------------------------------------------------------
    def _decode_packet(self, timestamp: float, frame: bytes) -> Optional[CapturedPacket]:
        try:
            network = self._network_layer(frame)
        except (dpkt.UnpackError, dpkt.NeedData, ValueError):
            logger.debug("Skipping undecodable frame", exc_info=True)
            return None

        if isinstance(network, dpkt.ip.IP):
            return self._build_packet(timestamp, network.src, network.dst, network.p, network.data)
        if isinstance(network, dpkt.ip6.IP6):
            return self._build_packet(timestamp, network.src, network.dst, network.nxt, network.data)
        return None

    def _network_layer(self, frame: bytes):
        if self._datalink == DLT_EN10MB:
            payload = dpkt.ethernet.Ethernet(frame).data
            if isinstance(payload, VLANtag8021Q):
                payload = payload.data
            return payload
        if self._datalink == DLT_LINUX_SLL:
            return dpkt.sll.SLL(frame).data
        if self._datalink in (DLT_NULL, DLT_LOOP):
            return dpkt.loopback.Loopback(frame).data
        if self._datalink in (DLT_RAW, DLT_RAW_ALT):
            if frame and frame[0] >> 4 == 6:
                return dpkt.ip6.IP6(frame)
            return dpkt.ip.IP(frame)
        logger.debug("Unsupported link type %d", self._datalink)
        return None

    def _build_packet(
        self,
        timestamp: float,
        src: bytes,
        dst: bytes,
        protocol: int,
        transport,
    ) -> CapturedPacket:
        if isinstance(transport, (dpkt.tcp.TCP, dpkt.udp.UDP)):
            src_port = transport.sport
            dst_port = transport.dport
            payload = bytes(transport.data)
        else:
            src_port = dst_port = 0
            payload = b""

        return CapturedPacket(
            timestamp=int(round(timestamp * MICROS_PER_SECOND)),
            src=bytes(src),
            dst=bytes(dst),
            src_port=src_port,
            dst_port=dst_port,
            protocol=protocol,
            payload=payload,
        )


__all__ = ["PacketReader"]
