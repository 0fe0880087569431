"""Domain models for the tape/cell projection of a transaction.

The short field names (``op``, ``ops``, ``b``, ``s``, ``ii``, ``i`` ...) are the
JSON keys consumed by downstream indexers, so the dataclasses keep them
verbatim. Every ``to_dict`` drops optional fields that are unset instead of
emitting ``null``; bytes render as standard base64.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, List, Optional

if TYPE_CHECKING:
    from .script import ScriptToken


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


class Include(Enum):
    """Where a matched delimiter lands relative to the split it creates.

    ``LEFT`` closes the current tape with the delimiter as its last cell,
    ``RIGHT`` opens the next tape with it, and ``CENTER`` gives the delimiter
    a tape of its own.
    """

    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"


@dataclass(frozen=True)
class Token:
    """Delimiter matcher; a token matches when any set field is equal."""

    op: int | None = None
    ops: str | None = None
    b: bytes | None = None
    s: str | None = None

    def __post_init__(self) -> None:
        if self.op is None and self.ops is None and self.b is None and self.s is None:
            raise ValueError("Token matcher needs at least one of op, ops, b or s")

    def matches_opcode(self, op: int, ops: str) -> bool:
        return (self.op is not None and self.op == op) or (
            self.ops is not None and self.ops == ops
        )

    def matches_push(self, data: bytes, text: str) -> bool:
        return (self.b is not None and self.b == data) or (
            self.s is not None and self.s == text
        )


@dataclass(frozen=True)
class SplitConfig:
    token: Token
    include: Include = Include.LEFT


@dataclass
class Cell:
    """One token of a script as stored in a tape.

    ``ii`` is the position in the flattened script, ``i`` the position inside
    the tape when the cell was created. ``h``, ``f`` and the ``l*`` fields are
    reserved for linked-data enrichment and are never set here.
    """

    ii: int
    i: int
    op: int | None = None
    ops: str | None = None
    b: bytes | None = None
    s: str | None = None
    h: str | None = None
    f: str | None = None
    ls: str | None = None
    lh: str | None = None
    lf: str | None = None
    lb: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "op": self.op,
                "ops": self.ops,
                "b": _b64(self.b) if self.b is not None else None,
                "s": self.s,
                "ii": self.ii,
                "i": self.i,
                "h": self.h,
                "f": self.f,
                "ls": self.ls,
                "lh": self.lh,
                "lf": self.lf,
                "lb": self.lb,
            }
        )


CellTransform = Callable[[Cell, "ScriptToken"], Cell]


@dataclass
class ParseConfig:
    """Ordered delimiter rules plus an optional per-cell transform."""

    split: List[SplitConfig] = field(default_factory=list)
    transform: Optional[CellTransform] = None


@dataclass
class Tape:
    cell: List[Cell]
    i: int

    def to_dict(self) -> dict[str, Any]:
        return {"cell": [cell.to_dict() for cell in self.cell], "i": self.i}


@dataclass
class SendRecv:
    """Sender (input) or receiver (output) details attached to an IO."""

    i: int
    h: str | None = None
    v: int | None = None
    a: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({"h": self.h, "i": self.i, "v": self.v, "a": self.a})


@dataclass
class IO:
    """A transaction input or output projected into tapes."""

    i: int
    tape: List[Tape] = field(default_factory=list)
    e: SendRecv | None = None
    seq: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "i": self.i,
                "tape": [tape.to_dict() for tape in self.tape],
                "e": self.e.to_dict() if self.e is not None else None,
                "seq": self.seq,
            }
        )


@dataclass
class IndexCounter:
    """Running positions for one input/output pass."""

    tape_index: int = 0
    cell_index: int = 0
    chunk_index: int = 0


@dataclass
class Tx:
    h: str | None = None
    r: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({"h": self.h, "r": self.r})


@dataclass
class BPU:
    """Projection of one transaction: ordered inputs and outputs of tapes."""

    tx: Tx
    inputs: List[IO] = field(default_factory=list)
    outputs: List[IO] = field(default_factory=list)
    lock: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "in": [io.to_dict() for io in self.inputs],
                "out": [io.to_dict() for io in self.outputs],
                "tx": self.tx.to_dict(),
                "lock": self.lock,
            }
        )

    def to_json(self, *, indent: int | None = None) -> str:
        separators = (",", ":") if indent is None else None
        return json.dumps(self.to_dict(), indent=indent, separators=separators)

    def __str__(self) -> str:
        return self.to_json()
