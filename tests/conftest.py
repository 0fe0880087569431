from __future__ import annotations

import struct
from typing import Callable, Sequence

import pytest


def _varint(n: int) -> bytes:
    if n < 0xFD:
        return bytes([n])
    if n <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", n)
    return b"\xfe" + struct.pack("<I", n)


def build_raw_tx(
    inputs: Sequence[tuple[str, int, bytes, int]],
    outputs: Sequence[tuple[int, bytes]],
    *,
    version: int = 1,
    locktime: int = 0,
) -> bytes:
    raw = struct.pack("<I", version) + _varint(len(inputs))
    for prev_txid, vout, script, sequence in inputs:
        raw += bytes.fromhex(prev_txid)[::-1] + struct.pack("<I", vout)
        raw += _varint(len(script)) + script + struct.pack("<I", sequence)
    raw += _varint(len(outputs))
    for value, script in outputs:
        raw += struct.pack("<Q", value) + _varint(len(script)) + script
    return raw + struct.pack("<I", locktime)


@pytest.fixture
def raw_tx_builder() -> Callable[..., bytes]:
    return build_raw_tx
