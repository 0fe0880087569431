"""Script token model, byte codec and conditional-branch flattening.

A parsed script is a list of tokens. Opcodes and data pushes are leaves;
``OP_IF``/``OP_NOTIF`` blocks are kept as :class:`Conditional` nodes holding
their branches so envelope detection can look at a block as a whole.
:func:`flatten_script` turns such a tree back into one linear stream with the
branch structure spelled out as ``OP_ELSE``/``OP_ENDIF`` markers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from .errors import BPUError
from .opcodes import (
    MAX_DIRECT_PUSH,
    OP_ELSE,
    OP_ENDIF,
    OP_IF,
    OP_NOTIF,
    OP_PUSHDATA1,
    OP_PUSHDATA2,
    OP_PUSHDATA4,
    opcode_name,
)

MAX_CONDITIONAL_DEPTH = 100


class ScriptDecodeError(BPUError):
    """Raised when script bytes cannot be tokenized."""

    stage = "decode"


@dataclass(frozen=True)
class OpCode:
    """A single operation code."""

    code: int

    @property
    def name(self) -> str:
        return opcode_name(self.code)


@dataclass(frozen=True)
class Push:
    """Literal data pushed onto the stack."""

    data: bytes


@dataclass(frozen=True)
class Conditional:
    """An ``OP_IF``/``OP_NOTIF`` block with an optional else branch."""

    condition: int
    then_branch: List["ScriptToken"]
    else_branch: Optional[List["ScriptToken"]] = None


ScriptToken = Union[OpCode, Push, Conditional]


@dataclass
class _Frame:
    condition: int
    then_branch: list
    else_branch: list | None = None

    @property
    def active(self) -> list:
        return self.then_branch if self.else_branch is None else self.else_branch


def _read_length(raw: bytes, offset: int, size: int) -> tuple[int, int]:
    end = offset + size
    if end > len(raw):
        raise ScriptDecodeError(f"truncated push length at offset {offset}")
    return int.from_bytes(raw[offset:end], "little"), end


def parse_script(raw: bytes, *, max_depth: int = MAX_CONDITIONAL_DEPTH) -> list[ScriptToken]:
    """Tokenize script bytes into a token tree.

    ``OP_ELSE`` and ``OP_ENDIF`` outside any open conditional are kept as
    plain opcodes. A conditional still open at the end of the script, or
    nesting deeper than ``max_depth``, raises :class:`ScriptDecodeError`.
    """

    root: list[ScriptToken] = []
    frames: list[_Frame] = []
    current = root
    offset = 0

    while offset < len(raw):
        start = offset
        code = raw[offset]
        offset += 1

        length: int | None = None
        if 0 < code <= MAX_DIRECT_PUSH:
            length = code
        elif code == OP_PUSHDATA1:
            length, offset = _read_length(raw, offset, 1)
        elif code == OP_PUSHDATA2:
            length, offset = _read_length(raw, offset, 2)
        elif code == OP_PUSHDATA4:
            length, offset = _read_length(raw, offset, 4)

        if length is not None:
            end = offset + length
            if end > len(raw):
                raise ScriptDecodeError(
                    f"push of {length} bytes at offset {start} runs past end of script"
                )
            current.append(Push(bytes(raw[offset:end])))
            offset = end
            continue

        if code in (OP_IF, OP_NOTIF):
            if len(frames) >= max_depth:
                raise ScriptDecodeError(f"conditional nesting exceeds {max_depth} levels")
            frame = _Frame(condition=code, then_branch=[])
            frames.append(frame)
            current = frame.active
        elif code == OP_ELSE and frames and frames[-1].else_branch is None:
            frames[-1].else_branch = []
            current = frames[-1].active
        elif code == OP_ENDIF and frames:
            frame = frames.pop()
            current = frames[-1].active if frames else root
            current.append(
                Conditional(
                    condition=frame.condition,
                    then_branch=frame.then_branch,
                    else_branch=frame.else_branch,
                )
            )
        else:
            current.append(OpCode(code))

    if frames:
        raise ScriptDecodeError(f"{len(frames)} conditional block(s) left open at end of script")
    return root


def parse_script_hex(value: str) -> list[ScriptToken]:
    try:
        raw = bytes.fromhex(value)
    except ValueError as exc:
        raise ScriptDecodeError(f"script is not valid hex: {value!r}") from exc
    return parse_script(raw)


def _push_data(data: bytes) -> bytes:
    length = len(data)
    if 0 < length <= MAX_DIRECT_PUSH:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, "little") + data
    return bytes([OP_PUSHDATA4]) + length.to_bytes(4, "little") + data


def serialize_token(token: ScriptToken) -> bytes:
    """Return the wire encoding of a single token (conditionals included)."""

    if isinstance(token, OpCode):
        return bytes([token.code])
    if isinstance(token, Push):
        return _push_data(token.data)
    if isinstance(token, Conditional):
        body = bytes([token.condition]) + serialize_script(token.then_branch)
        if token.else_branch is not None:
            body += bytes([OP_ELSE]) + serialize_script(token.else_branch)
        return body + bytes([OP_ENDIF])
    raise TypeError(f"Unsupported script token: {token!r}")


def serialize_script(tokens: Iterable[ScriptToken]) -> bytes:
    return b"".join(serialize_token(token) for token in tokens)


def flatten_script(tokens: Iterable[ScriptToken]) -> list[ScriptToken]:
    """Linearize a token tree.

    Each :class:`Conditional` becomes ``OpCode(condition)``, its flattened
    then-branch, ``OpCode(OP_ELSE)`` plus the flattened else-branch when one
    exists, and a closing ``OpCode(OP_ENDIF)``. Other tokens pass through.
    """

    flat: list[ScriptToken] = []
    _flatten_into(tokens, flat)
    return flat


def _flatten_into(tokens: Iterable[ScriptToken], flat: list[ScriptToken]) -> None:
    for token in tokens:
        if isinstance(token, Conditional):
            flat.append(OpCode(token.condition))
            _flatten_into(token.then_branch, flat)
            if token.else_branch is not None:
                flat.append(OpCode(OP_ELSE))
                _flatten_into(token.else_branch, flat)
            flat.append(OpCode(OP_ENDIF))
        else:
            flat.append(token)
