"""Raw transaction decoding.

Turns the legacy (non-segwit) wire format into :class:`DecodedTransaction`
with every script already tokenized by :func:`bpu.script.parse_script`.
Coinbase scriptSigs are arbitrary bytes rather than a script, so they are
kept whole as a single push.
"""

from __future__ import annotations

import hashlib
import logging
import struct
from dataclasses import dataclass, field
from typing import List

from .errors import BPUError
from .script import Push, ScriptDecodeError, ScriptToken, parse_script

logger = logging.getLogger(__name__)

NULL_PREV_TXID = "00" * 32
NULL_PREV_VOUT = 0xFFFFFFFF


class TransactionDecodeError(BPUError):
    """Raised when raw transaction bytes are malformed."""

    stage = "decode"


@dataclass
class TxInput:
    """One spent outpoint and its unlocking script.

    The decoder only sees the wire bytes and never sets ``finalized_script``;
    callers that can resolve the finalized unlocking script (for example from
    a signing workflow) supply it, and :attr:`script` then prefers it.
    """

    prev_txid: str
    prev_vout: int
    unlocking_script: List[ScriptToken]
    sequence: int
    finalized_script: List[ScriptToken] | None = None

    @property
    def script(self) -> List[ScriptToken]:
        """The finalized unlocking script when present, else the raw one."""

        if self.finalized_script is not None:
            return self.finalized_script
        return self.unlocking_script


@dataclass
class TxOutput:
    value: int
    locking_script: List[ScriptToken]


@dataclass
class DecodedTransaction:
    txid: str
    inputs: List[TxInput] = field(default_factory=list)
    outputs: List[TxOutput] = field(default_factory=list)
    locktime: int = 0


class _Reader:
    def __init__(self, raw: bytes) -> None:
        self.raw = raw
        self.pos = 0

    def read(self, size: int) -> bytes:
        end = self.pos + size
        if end > len(self.raw):
            raise TransactionDecodeError(
                f"unexpected end of transaction at byte {self.pos} (wanted {size} more)"
            )
        chunk = self.raw[self.pos : end]
        self.pos = end
        return chunk

    def uint32(self) -> int:
        return struct.unpack("<I", self.read(4))[0]

    def uint64(self) -> int:
        return struct.unpack("<Q", self.read(8))[0]

    def varint(self) -> int:
        prefix = self.read(1)[0]
        if prefix < 0xFD:
            return prefix
        if prefix == 0xFD:
            return struct.unpack("<H", self.read(2))[0]
        if prefix == 0xFE:
            return self.uint32()
        return self.uint64()

    def varbytes(self) -> bytes:
        return self.read(self.varint())

    @property
    def remaining(self) -> int:
        return len(self.raw) - self.pos


def txid_from_raw(raw: bytes) -> str:
    """Return the display (byte-reversed) double-SHA256 id of ``raw``."""

    return hashlib.sha256(hashlib.sha256(raw).digest()).digest()[::-1].hex()


def _parse(script: bytes, where: str) -> List[ScriptToken]:
    try:
        return parse_script(script)
    except ScriptDecodeError as exc:
        raise TransactionDecodeError(f"{where}: {exc.args[0]}") from exc


def decode_raw_transaction(raw_tx: str | bytes) -> DecodedTransaction:
    """Decode a raw transaction given as hex or bytes."""

    if isinstance(raw_tx, str):
        try:
            raw = bytes.fromhex(raw_tx.strip())
        except ValueError as exc:
            raise TransactionDecodeError("transaction is not valid hex") from exc
    else:
        raw = bytes(raw_tx)

    reader = _Reader(raw)
    reader.uint32()  # version

    inputs: List[TxInput] = []
    for index in range(reader.varint()):
        prev_hash = reader.read(32)
        prev_vout = reader.uint32()
        script_bytes = reader.varbytes()
        sequence = reader.uint32()
        prev_txid = prev_hash[::-1].hex()
        if prev_txid == NULL_PREV_TXID and prev_vout == NULL_PREV_VOUT:
            unlocking_script: List[ScriptToken] = [Push(script_bytes)]
        else:
            unlocking_script = _parse(script_bytes, f"input {index} unlocking script")
        inputs.append(
            TxInput(
                prev_txid=prev_txid,
                prev_vout=prev_vout,
                unlocking_script=unlocking_script,
                sequence=sequence,
            )
        )

    outputs: List[TxOutput] = []
    for index in range(reader.varint()):
        value = reader.uint64()
        script_bytes = reader.varbytes()
        outputs.append(
            TxOutput(
                value=value,
                locking_script=_parse(script_bytes, f"output {index} locking script"),
            )
        )

    locktime = reader.uint32()
    if reader.remaining:
        raise TransactionDecodeError(f"{reader.remaining} trailing bytes after locktime")

    txid = txid_from_raw(raw)
    logger.debug("Decoded tx %s: %d inputs, %d outputs", txid, len(inputs), len(outputs))
    return DecodedTransaction(
        txid=txid,
        inputs=inputs,
        outputs=outputs,
        locktime=locktime,
    )
