"""Project a decoded transaction into the tape/cell (BPU) structure.

Each input and output script is flattened and split independently; inputs
and outputs keep their transaction order. Address recovery is best effort:
anything that cannot be derived is recorded as :data:`ADDRESS_SENTINEL`.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from .address import (
    COMPRESSED_PUBKEY_LENGTH,
    PUBKEY_HASH_LENGTH,
    AddressDerivationError,
    p2pkh_address_from_hash,
    p2pkh_address_from_pubkey,
)
from .model import BPU, IO, ParseConfig, SendRecv, Tx
from .script import Push, ScriptToken, flatten_script
from .splitter import TapeSplitter
from .transaction import DecodedTransaction, TxInput, TxOutput, decode_raw_transaction

logger = logging.getLogger(__name__)

ADDRESS_SENTINEL = "false"

# Script element holding the key material: <sig> <pubkey> for unlocking
# scripts, OP_DUP OP_HASH160 <hash> for P2PKH locking scripts.
INPUT_KEY_SLOT = 1
OUTPUT_HASH_SLOT = 2


def input_address(script: Sequence[ScriptToken]) -> str | None:
    """Recover the spender's address from an unlocking script, if possible."""

    if len(script) <= INPUT_KEY_SLOT:
        return None
    element = script[INPUT_KEY_SLOT]
    if not isinstance(element, Push):
        return None

    data = element.data
    try:
        if len(data) == COMPRESSED_PUBKEY_LENGTH and data[0] in (2, 3):
            return p2pkh_address_from_pubkey(data)
        if len(data) == PUBKEY_HASH_LENGTH:
            return p2pkh_address_from_hash(data)
    except AddressDerivationError as exc:
        logger.debug("Input address derivation failed: %s", exc)
    return None


def output_address(script: Sequence[ScriptToken]) -> str | None:
    """Recover the receiving address from a P2PKH-shaped locking script."""

    if len(script) <= OUTPUT_HASH_SLOT:
        return None
    element = script[OUTPUT_HASH_SLOT]
    if not isinstance(element, Push):
        return None
    try:
        return p2pkh_address_from_hash(element.data)
    except AddressDerivationError as exc:
        logger.debug("Output address derivation failed: %s", exc)
        return None


def _project_script(index: int, script: Sequence[ScriptToken], splitter: TapeSplitter) -> IO:
    tapes, _ = splitter.split(flatten_script(script))
    return IO(i=index, tape=tapes)


def project_input(index: int, tx_input: TxInput, splitter: TapeSplitter) -> IO:
    script = tx_input.script
    io = _project_script(index, script, splitter)
    io.e = SendRecv(
        h=tx_input.prev_txid,
        i=tx_input.prev_vout,
        a=input_address(script) or ADDRESS_SENTINEL,
    )
    io.seq = tx_input.sequence
    return io


def project_output(index: int, tx_output: TxOutput, splitter: TapeSplitter) -> IO:
    script = tx_output.locking_script
    io = _project_script(index, script, splitter)
    io.e = SendRecv(
        i=index,
        a=output_address(script) or ADDRESS_SENTINEL,
        v=tx_output.value,
    )
    return io


def collect(tx: DecodedTransaction, parse_config: ParseConfig | None = None) -> BPU:
    """Build the BPU structure for an already decoded transaction."""

    parse_config = parse_config or ParseConfig()
    splitter = TapeSplitter(parse_config.split, parse_config.transform)

    inputs: List[IO] = [
        project_input(index, tx_input, splitter) for index, tx_input in enumerate(tx.inputs)
    ]
    outputs: List[IO] = [
        project_output(index, tx_output, splitter) for index, tx_output in enumerate(tx.outputs)
    ]

    return BPU(tx=Tx(h=tx.txid), inputs=inputs, outputs=outputs, lock=tx.locktime)


def from_raw_tx(raw_tx: str | bytes, parse_config: ParseConfig | None = None) -> BPU:
    """Decode ``raw_tx`` (hex or bytes) and project it."""

    return collect(decode_raw_transaction(raw_tx), parse_config)
