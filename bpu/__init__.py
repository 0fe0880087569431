"""Tape/cell projection of transaction scripts (BPU)."""

from .address import AddressDerivationError
from .errors import BPUError
from .model import (
    BPU,
    IO,
    Cell,
    Include,
    IndexCounter,
    ParseConfig,
    SendRecv,
    SplitConfig,
    Tape,
    Token,
    Tx,
)
from .projector import ADDRESS_SENTINEL, collect, from_raw_tx
from .protocols import BOB, Bitcom, Ord
from .script import (
    Conditional,
    OpCode,
    Push,
    ScriptDecodeError,
    flatten_script,
    parse_script,
    serialize_script,
)
from .splitter import TapeSplitter, split_tapes
from .transaction import DecodedTransaction, TransactionDecodeError, decode_raw_transaction

__all__ = [
    "ADDRESS_SENTINEL",
    "AddressDerivationError",
    "BOB",
    "BPU",
    "BPUError",
    "Bitcom",
    "Cell",
    "Conditional",
    "DecodedTransaction",
    "IO",
    "Include",
    "IndexCounter",
    "OpCode",
    "Ord",
    "ParseConfig",
    "Push",
    "ScriptDecodeError",
    "SendRecv",
    "SplitConfig",
    "Tape",
    "TapeSplitter",
    "Token",
    "TransactionDecodeError",
    "Tx",
    "collect",
    "decode_raw_transaction",
    "flatten_script",
    "from_raw_tx",
    "parse_script",
    "serialize_script",
    "split_tapes",
]
