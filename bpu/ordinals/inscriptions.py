"""Detection and extraction of ``ord`` inscription envelopes.

An envelope is a locking-script fragment of the form::

    OP_0 OP_IF "ord" OP_1 <content-type> OP_0 <payload> OP_ENDIF

usually appended to a regular P2PKH script. Only the first top-level
conditional of each output is considered; the payload bytes are returned as
is and never interpreted.
"""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from ..errors import BPUError
from ..opcodes import OP_0, OP_1
from ..script import Conditional, OpCode, Push, ScriptToken, serialize_token
from ..transaction import DecodedTransaction, decode_raw_transaction

logger = logging.getLogger(__name__)

ORD_TAG = b"ord"
ENVELOPE_FALSE_MARKER = OpCode(OP_0)
CONTENT_TYPE_MARKER = OpCode(OP_1)
DATA_MARKER = OpCode(OP_0)


class InscriptionNotFoundError(BPUError):
    """Raised when no output of a transaction carries an envelope."""

    stage = "envelope"


@dataclass
class OrdData:
    """A single extracted inscription."""

    content_type: str
    data: bytes
    vout: int | None = None

    @property
    def decoded_text(self) -> Optional[str]:
        """The payload as text when it is valid UTF-8, else ``None``."""

        try:
            return self.data.decode("utf-8")
        except UnicodeDecodeError:
            return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": base64.b64encode(self.data).decode("ascii"),
            "content_type": self.content_type,
        }


@dataclass
class InscriptionCollection:
    """Ordered accumulator shared by every envelope found in a pass."""

    timestamp: int = field(default_factory=lambda: int(time.time()))
    ord: List[OrdData] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "ord": [item.to_dict() for item in self.ord]}


def _first_conditional(script: Sequence[ScriptToken]) -> tuple[int, Conditional] | None:
    for index, token in enumerate(script):
        if isinstance(token, Conditional):
            return index, token
    return None


def _envelope(script: Sequence[ScriptToken]) -> Conditional | None:
    located = _first_conditional(script)
    if located is None:
        return None
    index, conditional = located
    if index == 0 or script[index - 1] != ENVELOPE_FALSE_MARKER:
        return None

    raw = serialize_token(conditional)
    if len(raw) >= 5 and raw[1] == len(ORD_TAG) and raw[2:5] == ORD_TAG:
        return conditional
    return None


def script_checker(script: Sequence[ScriptToken]) -> bool:
    """Return True when ``script`` carries an ``OP_0 OP_IF "ord" ...`` envelope."""

    return _envelope(script) is not None


def locate_envelope(tx: DecodedTransaction) -> tuple[int, Conditional]:
    """Return ``(vout, conditional)`` for the first output carrying an envelope."""

    for vout, output in enumerate(tx.outputs):
        conditional = _envelope(output.locking_script)
        if conditional is not None:
            return vout, conditional
    raise InscriptionNotFoundError(f"Invalid Ord tx {tx.txid}. Script not found.")


def extract_inscription(conditional: Conditional, vout: int | None = None) -> OrdData | None:
    """Pull the content type and payload out of an envelope's then-branch.

    Each marker takes the push right after it; a repeated marker overwrites
    the earlier value until both fields are known. Returns ``None`` when
    either field is missing.
    """

    content_type: str | None = None
    data: bytes | None = None
    branch = conditional.then_branch

    for position, token in enumerate(branch[:-1]):
        following = branch[position + 1]
        if not isinstance(following, Push):
            continue
        if token == CONTENT_TYPE_MARKER:
            content_type = following.data.decode("utf-8", errors="replace")
        elif token == DATA_MARKER:
            data = following.data
        else:
            continue
        if content_type is not None and data is not None:
            break

    if content_type is None or data is None:
        logger.debug("Partial envelope at vout %s skipped", vout)
        return None
    return OrdData(content_type=content_type, data=data, vout=vout)


def handler(tx: DecodedTransaction, collection: InscriptionCollection) -> None:
    """Append the first envelope of ``tx`` to ``collection``.

    Raises :class:`InscriptionNotFoundError` when no output qualifies; an
    envelope missing its content type or payload adds nothing.
    """

    vout, conditional = locate_envelope(tx)
    record = extract_inscription(conditional, vout)
    if record is not None:
        collection.ord.append(record)


def find_inscriptions(tx: DecodedTransaction) -> List[OrdData]:
    """Extract one record from every qualifying output, in output order."""

    records: List[OrdData] = []
    qualifying = 0
    for vout, output in enumerate(tx.outputs):
        conditional = _envelope(output.locking_script)
        if conditional is None:
            continue
        qualifying += 1
        record = extract_inscription(conditional, vout)
        if record is not None:
            records.append(record)

    if not qualifying:
        raise InscriptionNotFoundError(f"Invalid Ord tx {tx.txid}. Script not found.")
    return records


class OrdinalInscriptionDecoder:
    """Fetch transactions over RPC and extract their inscriptions."""

    def __init__(self, rpc_client) -> None:
        self.rpc_client = rpc_client

    def decode_from_tx(self, txid: str) -> List[OrdData]:
        raw_hex = self.rpc_client.get_raw_transaction(txid)
        return find_inscriptions(decode_raw_transaction(raw_hex))

    def decode_from_location(self, txid: str, vout: int) -> Optional[OrdData]:
        for record in self.decode_from_tx(txid):
            if record.vout == vout:
                return record
        return None
