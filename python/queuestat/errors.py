"""Exception hierarchy shared by capture acquisition and analysis."""

from __future__ import annotations


class QueueStatError(RuntimeError):
    """Base class for failures that abort processing of one target."""

    exit_code = 1


class CaptureToolMissingError(QueueStatError):
    """Raised when tcpdump cannot be found locally or on the remote host."""

    exit_code = 3


class RemoteTransportMissingError(QueueStatError):
    """Raised when ssh or scp is not available for remote capture."""

    exit_code = 4


class CaptureCommandError(QueueStatError):
    """Raised when a capture command exits unsuccessfully."""

    exit_code = 12


class RemoteExecutionError(CaptureCommandError):
    """Raised when a remote capture or copy command exits unsuccessfully."""

    exit_code = 5


class CaptureFileMissingError(QueueStatError):
    """Raised when the capture file is absent after acquisition or on reprocess."""

    exit_code = 6


class NoTargetsError(QueueStatError):
    exit_code = 7


class InvalidCaptureFileError(QueueStatError):
    """Raised when a capture file cannot be opened or is not a pcap."""

    exit_code = 8


class InvalidFilterError(QueueStatError, ValueError):
    exit_code = 9


class CredentialError(QueueStatError):
    """Raised when an elevated-capture password cannot be obtained."""

    exit_code = 10


class ConfigError(QueueStatError):
    exit_code = 11


__all__ = [
    "QueueStatError",
    "CaptureToolMissingError",
    "RemoteTransportMissingError",
    "CaptureCommandError",
    "RemoteExecutionError",
    "CaptureFileMissingError",
    "NoTargetsError",
    "InvalidCaptureFileError",
    "InvalidFilterError",
    "CredentialError",
    "ConfigError",
]
