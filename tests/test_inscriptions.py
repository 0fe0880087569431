from __future__ import annotations

from dataclasses import dataclass

import pytest

from bpu.opcodes import OP_1, OP_CHECKSIG, OP_DUP, OP_EQUALVERIFY, OP_HASH160, OP_IF
from bpu.ordinals import (
    InscriptionCollection,
    InscriptionNotFoundError,
    OrdData,
    OrdinalInscriptionDecoder,
    extract_inscription,
    find_inscriptions,
    handler,
    locate_envelope,
    script_checker,
)
from bpu.protocols import Ord
from bpu.script import Conditional, OpCode, Push, serialize_script
from bpu.transaction import DecodedTransaction, TxOutput

P2PKH = [
    OpCode(OP_DUP),
    OpCode(OP_HASH160),
    Push(b"\x01" * 20),
    OpCode(OP_EQUALVERIFY),
    OpCode(OP_CHECKSIG),
]


def _envelope(*body) -> Conditional:
    return Conditional(OP_IF, [Push(b"ord"), *body])


def _tx(*scripts) -> DecodedTransaction:
    return DecodedTransaction(
        txid="ef" * 32,
        outputs=[TxOutput(value=1, locking_script=list(script)) for script in scripts],
    )


def test_extracts_content_type_and_payload() -> None:
    script = [
        OpCode(0),
        _envelope(OpCode(OP_1), Push(b"text/plain"), OpCode(0), Push(b"hello")),
    ]
    collection = InscriptionCollection()

    handler(_tx(script), collection)

    assert collection.ord == [OrdData(content_type="text/plain", data=b"hello", vout=0)]
    assert collection.ord[0].decoded_text == "hello"


def test_envelope_after_p2pkh_prefix() -> None:
    envelope = _envelope(OpCode(0), Push(b"\x89PNG"), OpCode(OP_1), Push(b"image/png"))
    tx = _tx([OpCode(0x6A)], P2PKH + [OpCode(0), envelope])

    vout, conditional = locate_envelope(tx)

    assert vout == 1
    assert conditional is envelope
    record = extract_inscription(conditional, vout)
    assert record.content_type == "image/png"
    assert record.data == b"\x89PNG"
    assert record.decoded_text is None


def test_repeated_marker_overwrites_until_both_found() -> None:
    envelope = _envelope(
        OpCode(OP_1), Push(b"text/plain"), OpCode(OP_1), Push(b"text/html"), OpCode(0), Push(b"<p>")
    )

    record = extract_inscription(envelope)

    assert record.content_type == "text/html"


def test_no_qualifying_output_raises_envelope_error() -> None:
    tx = _tx(P2PKH, [OpCode(0x6A), Push(b"ord")])

    with pytest.raises(InscriptionNotFoundError) as excinfo:
        handler(tx, InscriptionCollection())

    assert excinfo.value.stage == "envelope"
    assert "Script not found" in str(excinfo.value)


def test_envelope_requires_false_marker_before_conditional() -> None:
    body = (OpCode(OP_1), Push(b"text/plain"), OpCode(0), Push(b"hi"))

    assert not script_checker([OpCode(0x51), _envelope(*body)])
    assert not script_checker([_envelope(*body)])
    assert script_checker([OpCode(0), _envelope(*body)])


def test_envelope_requires_ord_tag() -> None:
    wrong_tag = Conditional(OP_IF, [Push(b"orx"), OpCode(OP_1), Push(b"text/plain")])
    long_tag = Conditional(OP_IF, [Push(b"ordinal")])

    assert not script_checker([OpCode(0), wrong_tag])
    assert not script_checker([OpCode(0), long_tag])


def test_only_first_conditional_is_considered() -> None:
    decoy = Conditional(OP_IF, [Push(b"nope")])
    script = [OpCode(0), decoy, OpCode(0), _envelope(OpCode(OP_1), Push(b"a"), OpCode(0), Push(b"b"))]

    assert not script_checker(script)


def test_partial_envelope_is_skipped_silently() -> None:
    tx = _tx([OpCode(0), _envelope(OpCode(OP_1), Push(b"text/plain"))])
    collection = InscriptionCollection()

    handler(tx, collection)

    assert collection.ord == []


def test_find_inscriptions_collects_every_output() -> None:
    first = [OpCode(0), _envelope(OpCode(OP_1), Push(b"text/plain"), OpCode(0), Push(b"one"))]
    partial = [OpCode(0), _envelope(OpCode(0), Push(b"orphan"))]
    second = P2PKH + [OpCode(0), _envelope(OpCode(0), Push(b"two"), OpCode(OP_1), Push(b"text/plain"))]

    records = find_inscriptions(_tx(first, P2PKH, partial, second))

    assert [(record.vout, record.data) for record in records] == [(0, b"one"), (3, b"two")]


def test_ord_preset_handler_and_json_shape() -> None:
    tx = _tx([OpCode(0), _envelope(OpCode(OP_1), Push(b"text/plain"), OpCode(0), Push(b"hello"))])
    collection = InscriptionCollection(timestamp=1700000000)

    Ord.handler(tx, collection)

    assert collection.to_dict() == {
        "timestamp": 1700000000,
        "ord": [{"data": "aGVsbG8=", "content_type": "text/plain"}],
    }


@dataclass
class MockRPC:
    raw_hex: str

    def get_raw_transaction(self, txid: str) -> str:
        assert txid == "feed"
        return self.raw_hex


def test_decoder_fetches_over_rpc(raw_tx_builder) -> None:
    script = P2PKH + [OpCode(0), _envelope(OpCode(OP_1), Push(b"text/plain"), OpCode(0), Push(b"gm"))]
    raw = raw_tx_builder([], [(1, serialize_script(script))])
    decoder = OrdinalInscriptionDecoder(MockRPC(raw.hex()))

    record = decoder.decode_from_location("feed", 0)

    assert record is not None
    assert record.content_type == "text/plain"
    assert record.data == b"gm"
    assert decoder.decode_from_location("feed", 1) is None
