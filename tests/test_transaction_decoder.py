import hashlib

import pytest

from bpu.script import OpCode, Push
from bpu.transaction import TransactionDecodeError, decode_raw_transaction

PREV_TXID = "aa" * 31 + "01"
COINBASE_TXID = "00" * 32
COINBASE_SCRIPT_SIG = b"\x03\xa0\xbb\x0d" + b"/taal.com/"


def test_decode_round_trips_fields(raw_tx_builder) -> None:
    unlocking = b"\x02\x30\x01" + b"\x03abc"
    locking = b"\x00\x6a" + b"\x05hello"
    raw = raw_tx_builder(
        [(PREV_TXID, 3, unlocking, 0xFFFFFFFE)],
        [(1234, locking), (0, b"")],
        version=2,
        locktime=700000,
    )

    tx = decode_raw_transaction(raw.hex())

    assert tx.locktime == 700000
    assert tx.txid == hashlib.sha256(hashlib.sha256(raw).digest()).digest()[::-1].hex()

    (tx_input,) = tx.inputs
    assert tx_input.prev_txid == PREV_TXID
    assert tx_input.prev_vout == 3
    assert tx_input.sequence == 0xFFFFFFFE
    assert tx_input.unlocking_script == [Push(b"\x30\x01"), Push(b"abc")]
    assert tx_input.script is tx_input.unlocking_script

    assert [output.value for output in tx.outputs] == [1234, 0]
    assert tx.outputs[0].locking_script == [OpCode(0), OpCode(0x6A), Push(b"hello")]
    assert tx.outputs[1].locking_script == []


def test_decode_handles_multibyte_varint_scripts(raw_tx_builder) -> None:
    payload = b"x" * 300
    locking = b"\x4d" + len(payload).to_bytes(2, "little") + payload
    raw = raw_tx_builder([], [(1, locking)])

    tx = decode_raw_transaction(raw)

    assert tx.outputs[0].locking_script == [Push(payload)]


def test_invalid_hex_is_a_decode_error() -> None:
    with pytest.raises(TransactionDecodeError) as excinfo:
        decode_raw_transaction("zz")

    assert excinfo.value.stage == "decode"


def test_truncated_transaction_is_rejected(raw_tx_builder) -> None:
    raw = raw_tx_builder([(PREV_TXID, 0, b"", 0)], [(5, b"\x51")])

    with pytest.raises(TransactionDecodeError):
        decode_raw_transaction(raw[:-2])


def test_trailing_bytes_are_rejected(raw_tx_builder) -> None:
    raw = raw_tx_builder([], [(5, b"\x51")]) + b"\x00"

    with pytest.raises(TransactionDecodeError) as excinfo:
        decode_raw_transaction(raw)

    assert "trailing" in str(excinfo.value)


def test_bad_script_names_its_location(raw_tx_builder) -> None:
    raw = raw_tx_builder([], [(5, b"\x51"), (6, b"\x09abc")])

    with pytest.raises(TransactionDecodeError) as excinfo:
        decode_raw_transaction(raw)

    assert "output 1 locking script" in str(excinfo.value)


def test_coinbase_script_sig_is_kept_as_one_push(raw_tx_builder) -> None:
    raw = raw_tx_builder(
        [(COINBASE_TXID, 0xFFFFFFFF, COINBASE_SCRIPT_SIG, 0xFFFFFFFF)],
        [(625000000, b"\x76\xa9\x14" + b"\x01" * 20 + b"\x88\xac")],
    )

    tx = decode_raw_transaction(raw)

    (tx_input,) = tx.inputs
    assert tx_input.prev_txid == COINBASE_TXID
    assert tx_input.unlocking_script == [Push(COINBASE_SCRIPT_SIG)]


def test_null_txid_with_real_vout_is_still_parsed(raw_tx_builder) -> None:
    raw = raw_tx_builder([(COINBASE_TXID, 0, COINBASE_SCRIPT_SIG, 0)], [(1, b"\x51")])

    with pytest.raises(TransactionDecodeError) as excinfo:
        decode_raw_transaction(raw)

    assert "input 0 unlocking script" in str(excinfo.value)
