"""Protocol presets: fixed split rules handed to the projector.

B://, BOB and 1Sat ``ord`` transactions all separate protocol fields with a
``|`` push and start the data section at ``OP_RETURN``; both delimiters close
the tape they end.
"""

from __future__ import annotations

from typing import Dict, List, Type

from .model import BPU, Include, ParseConfig, SplitConfig, Token
from .opcodes import OP_RETURN
from .ordinals.inscriptions import InscriptionCollection, handler
from .projector import from_raw_tx
from .transaction import DecodedTransaction

PIPE_DELIMITER = "|"


def pipe_and_return_rules() -> List[SplitConfig]:
    return [
        SplitConfig(token=Token(s=PIPE_DELIMITER), include=Include.LEFT),
        SplitConfig(token=Token(op=OP_RETURN), include=Include.LEFT),
    ]


class BOB:
    """Bitcoin OP_RETURN Bytecode tapes."""

    @classmethod
    def parse_config(cls) -> ParseConfig:
        return ParseConfig(split=pipe_and_return_rules())

    @classmethod
    def from_raw_tx(cls, raw_tx: str | bytes) -> BPU:
        return from_raw_tx(raw_tx, cls.parse_config())


class Bitcom(BOB):
    """Bitcom command transactions (``su``, ``echo``, ``route``, ``useradd``)."""


class Ord(BOB):
    """1Sat ordinal transactions; adds the inscription envelope handler."""

    @staticmethod
    def handler(tx: DecodedTransaction, collection: InscriptionCollection) -> None:
        handler(tx, collection)


PRESETS: Dict[str, Type[BOB]] = {
    "bob": BOB,
    "bitcom": Bitcom,
    "ord": Ord,
}
