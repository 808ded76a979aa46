"""Text command classification for the queue protocol.

Classification happens in two stages. :func:`match_command` recognises the
general command shape (a verb, a single space, then a queue token followed by
a space or slash) and yields a tagged :class:`CommandMatch` or ``UNMATCHED``.
An unrecognised verb only matches when its first line is terminated, so plain
text such as ``garbage data here`` never yields a queue name.
:func:`parse_set_size` recognises a complete ``set`` header and extracts the
byte count announced by the client. Neither stage raises for malformed input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, unique
from typing import Optional, Union


@unique
class Operation(Enum):
    SET = "set"
    GET = "get"
    MONITOR = "monitor"
    DELETE = "delete"
    FLUSH = "flush"
    OTHER = "other"

    @classmethod
    def from_verb(cls, verb: str) -> "Operation":
        try:
            operation = cls(verb)
        except ValueError:
            return cls.OTHER
        return operation


OPERATIONS = tuple(Operation)

_QUEUE_TOKEN = rb"[A-Za-z0-9\-_$%+:]+"
_COMMAND_RE = re.compile(rb"([A-Za-z]+) (" + _QUEUE_TOKEN + rb")[ /]")
_LINE_REST_RE = re.compile(rb"[^\r\n]*\r?\n")
_SET_RE = re.compile(rb"set (" + _QUEUE_TOKEN + rb") (\d+) (\d+) (\d+)\r?\n")


@dataclass(frozen=True)
class CommandMatch:
    verb: str
    queue: str


class _Unmatched:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNMATCHED"

    def __bool__(self) -> bool:
        return False


UNMATCHED = _Unmatched()

CommandShape = Union[CommandMatch, _Unmatched]


@dataclass(frozen=True)
class SetCommand:
    queue: str
    flags: int
    expiry: int
    size: int


@dataclass(frozen=True)
class ClassificationResult:
    operation: Operation
    queue: Optional[str] = None


def match_command(payload: bytes) -> CommandShape:
    """Match the command shape at the start of ``payload``.

    Unknown verbs only count when the whole first line is present; known verbs
    are accepted without a terminator so snaplen-truncated commands still
    classify.
    """
    match = _COMMAND_RE.match(payload)
    if match is None:
        return UNMATCHED
    verb = match.group(1).decode("ascii")
    if Operation.from_verb(verb) is Operation.OTHER and _LINE_REST_RE.match(payload, match.end()) is None:
        return UNMATCHED
    return CommandMatch(verb=verb, queue=match.group(2).decode("ascii"))


def parse_set_size(payload: bytes) -> Optional[SetCommand]:
    """Return the parsed ``set`` header, or ``None`` when it is incomplete."""
    match = _SET_RE.match(payload)
    if match is None:
        return None
    return SetCommand(
        queue=match.group(1).decode("ascii"),
        flags=int(match.group(2)),
        expiry=int(match.group(3)),
        size=int(match.group(4)),
    )


def classify(payload: bytes) -> ClassificationResult:
    shape = match_command(payload)
    if isinstance(shape, CommandMatch):
        return ClassificationResult(Operation.from_verb(shape.verb), shape.queue)
    return ClassificationResult(Operation.OTHER)


__all__ = [
    "Operation",
    "OPERATIONS",
    "CommandMatch",
    "UNMATCHED",
    "SetCommand",
    "ClassificationResult",
    "match_command",
    "parse_set_size",
    "classify",
]
