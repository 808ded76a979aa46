"""Capture acquisition by driving tcpdump locally or over ssh."""

from __future__ import annotations

import getpass
import logging
import os
import re
import shlex
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, TextIO

from .errors import (
    CaptureCommandError,
    CaptureFileMissingError,
    CaptureToolMissingError,
    CredentialError,
    RemoteExecutionError,
    RemoteTransportMissingError,
)

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127
DEFAULT_PORT = 22133

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


@dataclass
class CaptureOptions:
    interface: str = "any"
    snaplen: int = 1500
    packet_count: int = 10_000
    port: int = DEFAULT_PORT
    remote: bool = False
    sudo: bool = False
    remote_dir: str = "/tmp"
    dry_run: bool = False


class CredentialProvider(Protocol):
    def get_password(self, prompt: str) -> str:  # pragma: no cover - protocol definition
        ...


class TerminalCredentialProvider:
    """Prompts once for the sudo password and reuses it for every host."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._password: Optional[str] = None
        self._lock = threading.Lock()

    def get_password(self, prompt: str) -> str:
        with self._lock:
            if self._password is not None:
                return self._password
            if self._stream is None or not self._stream.isatty():
                raise CredentialError("A terminal is required to prompt for the sudo password")
            self._password = getpass.getpass(prompt)
            return self._password


def _safe_name(host: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", host)


class CaptureRunner:
    """Produce a local pcap file for a target host."""

    def __init__(
        self,
        options: CaptureOptions,
        output_dir: Path,
        *,
        credential_provider: Optional[CredentialProvider] = None,
        runner: Optional[Runner] = None,
        which: Optional[Callable[[str], Optional[str]]] = None,
        status_handler: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.options = options
        self.output_dir = Path(output_dir)
        self.credential_provider = credential_provider
        self.status_handler = status_handler
        self._run = runner or subprocess.run
        self._which = which or shutil.which

    # ------------------------------------------------------------------
    def tcpdump_command(self, output_path: str) -> List[str]:
        opts = self.options
        command = [
            "tcpdump",
            "-i",
            opts.interface,
            "-s",
            str(opts.snaplen),
            "-c",
            str(opts.packet_count),
            "-w",
            output_path,
            f"tcp dst port {opts.port}",
        ]
        if opts.sudo:
            command = ["sudo", "-S", "-p", ""] + command
        return command

    def local_path(self, host: str) -> Path:
        return self.output_dir / f"{_safe_name(host)}.pcap"

    def remote_path(self, host: str) -> str:
        return f"{self.options.remote_dir.rstrip('/')}/queuestat-{_safe_name(host)}-{os.getpid()}.pcap"

    # ------------------------------------------------------------------
    def capture(self, host: str) -> Optional[Path]:
        """Run the capture for ``host``; returns ``None`` on a dry run."""
        if self.options.remote:
            return self._capture_remote(host)
        return self._capture_local(host)

    def _capture_local(self, host: str) -> Optional[Path]:
        self._require_local_tools()
        path = self.local_path(host)
        command = self.tcpdump_command(str(path))

        if self.options.dry_run:
            self._notify(f"dry-run: {shlex.join(command)}")
            return None

        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Capturing %d packets on %s for %s", self.options.packet_count, self.options.interface, host)
        result = self._execute(command, password=self._password(host))
        if result.returncode != 0:
            raise CaptureCommandError(
                f"tcpdump failed for {host} (exit {result.returncode}): {result.stderr.strip()}"
            )
        return self._verify(path)

    def _capture_remote(self, host: str) -> Optional[Path]:
        self._require_transport()
        remote = self.remote_path(host)
        path = self.local_path(host)
        capture_cmd = ["ssh", host, shlex.join(self.tcpdump_command(remote))]
        copy_cmd = ["scp", "-q", f"{host}:{remote}", str(path)]
        cleanup_cmd = ["ssh", host, shlex.join(["rm", "-f", remote])]

        if self.options.dry_run:
            for command in (capture_cmd, copy_cmd, cleanup_cmd):
                self._notify(f"dry-run: {shlex.join(command)}")
            return None

        self.output_dir.mkdir(parents=True, exist_ok=True)
        try:
            logger.info("Capturing %d packets on %s:%s", self.options.packet_count, host, self.options.interface)
            result = self._execute(capture_cmd, password=self._password(host))
            if result.returncode == COMMAND_NOT_FOUND:
                raise CaptureToolMissingError(f"tcpdump is not installed on {host}")
            if result.returncode != 0:
                raise RemoteExecutionError(
                    f"Remote capture on {host} failed (exit {result.returncode}): {result.stderr.strip()}"
                )

            logger.info("Copying %s:%s to %s", host, remote, path)
            result = self._execute(copy_cmd)
            if result.returncode != 0:
                raise RemoteExecutionError(
                    f"Copying capture from {host} failed (exit {result.returncode}): {result.stderr.strip()}"
                )
        finally:
            self._cleanup(host, cleanup_cmd)

        return self._verify(path)

    # ------------------------------------------------------------------
    def _require_local_tools(self) -> None:
        if self._which("tcpdump") is None:
            raise CaptureToolMissingError("tcpdump was not found on PATH")
        if self.options.sudo and self._which("sudo") is None:
            raise CaptureToolMissingError("sudo was not found on PATH")

    def _require_transport(self) -> None:
        for tool in ("ssh", "scp"):
            if self._which(tool) is None:
                raise RemoteTransportMissingError(f"{tool} was not found on PATH")

    def _password(self, host: str) -> Optional[str]:
        if not self.options.sudo or self.credential_provider is None:
            return None
        return self.credential_provider.get_password(f"[sudo] password for capture on {host}: ")

    def _execute(self, command: Sequence[str], password: Optional[str] = None):
        logger.debug("Running %s", shlex.join(command))
        try:
            result = self._run(
                list(command),
                input=None if password is None else password + "\n",
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CaptureToolMissingError(f"{command[0]} could not be executed") from exc
        if result.stderr:
            logger.debug("%s: %s", command[0], result.stderr.strip())
        return result

    def _cleanup(self, host: str, command: Sequence[str]) -> None:
        try:
            result = self._execute(command)
        except CaptureToolMissingError:
            logger.warning("Could not remove remote capture on %s", host)
            return
        if result.returncode != 0:
            logger.warning("Could not remove remote capture on %s: %s", host, result.stderr.strip())

    def _verify(self, path: Path) -> Path:
        if not path.is_file():
            raise CaptureFileMissingError(f"Capture file missing after acquisition: {path}")
        return path

    def _notify(self, message: str) -> None:
        if self.status_handler is not None:
            self.status_handler(message)
        else:
            logger.info(message)


__all__ = [
    "DEFAULT_PORT",
    "CaptureOptions",
    "CredentialProvider",
    "TerminalCredentialProvider",
    "CaptureRunner",
]
