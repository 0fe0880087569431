import pytest

from bpu.opcodes import OP_CHECKSIG, OP_DUP, OP_ELSE, OP_ENDIF, OP_EQUALVERIFY, OP_HASH160, OP_IF, OP_NOTIF
from bpu.script import (
    Conditional,
    OpCode,
    Push,
    ScriptDecodeError,
    flatten_script,
    parse_script,
    serialize_script,
)


def test_parse_p2pkh_locking_script() -> None:
    pubkey_hash = bytes(range(20))
    raw = bytes([OP_DUP, OP_HASH160, 20]) + pubkey_hash + bytes([OP_EQUALVERIFY, OP_CHECKSIG])

    assert parse_script(raw) == [
        OpCode(OP_DUP),
        OpCode(OP_HASH160),
        Push(pubkey_hash),
        OpCode(OP_EQUALVERIFY),
        OpCode(OP_CHECKSIG),
    ]


def test_parse_pushdata_variants() -> None:
    raw = b"\x4c\x03abc" + b"\x4d\x02\x00hi" + b"\x4e\x01\x00\x00\x00z"

    assert parse_script(raw) == [Push(b"abc"), Push(b"hi"), Push(b"z")]


def test_parse_nests_conditionals() -> None:
    raw = bytes([OP_IF, 0x51, OP_NOTIF, 0x52, OP_ENDIF, OP_ELSE, 0x53, OP_ENDIF, 0x6A])

    assert parse_script(raw) == [
        Conditional(
            OP_IF,
            [OpCode(0x51), Conditional(OP_NOTIF, [OpCode(0x52)])],
            [OpCode(0x53)],
        ),
        OpCode(0x6A),
    ]


def test_stray_branch_markers_are_plain_opcodes() -> None:
    assert parse_script(bytes([OP_ENDIF, OP_ELSE])) == [OpCode(OP_ENDIF), OpCode(OP_ELSE)]


def test_truncated_push_is_a_decode_error() -> None:
    with pytest.raises(ScriptDecodeError) as excinfo:
        parse_script(b"\x05abc")

    assert excinfo.value.stage == "decode"
    assert "runs past end of script" in str(excinfo.value)


def test_unterminated_conditional_is_rejected() -> None:
    with pytest.raises(ScriptDecodeError):
        parse_script(bytes([OP_IF, 0x51]))


def test_nesting_ceiling() -> None:
    raw = bytes([OP_IF] * 3 + [OP_ENDIF] * 3)

    assert len(parse_script(raw, max_depth=3)) == 1
    with pytest.raises(ScriptDecodeError):
        parse_script(raw, max_depth=2)


def test_flatten_is_identity_without_conditionals() -> None:
    tokens = [Push(b"a"), OpCode(0x6A), Push(b""), OpCode(OP_ELSE)]

    assert flatten_script(tokens) == tokens


def test_flatten_spells_out_branch_markers() -> None:
    tree = [
        OpCode(0x00),
        Conditional(
            OP_IF,
            [Push(b"x"), Conditional(OP_NOTIF, [Push(b"y")])],
            [Push(b"z")],
        ),
        Push(b"tail"),
    ]

    assert flatten_script(tree) == [
        OpCode(0x00),
        OpCode(OP_IF),
        Push(b"x"),
        OpCode(OP_NOTIF),
        Push(b"y"),
        OpCode(OP_ENDIF),
        OpCode(OP_ELSE),
        Push(b"z"),
        OpCode(OP_ENDIF),
        Push(b"tail"),
    ]


def test_flatten_omits_else_marker_without_else_branch() -> None:
    flat = flatten_script([Conditional(OP_IF, [])])

    assert flat == [OpCode(OP_IF), OpCode(OP_ENDIF)]


def test_flattened_markers_rebuild_branch_structure() -> None:
    tree = [
        Push(b"ord"),
        Conditional(OP_IF, [Conditional(OP_IF, [Push(b"a")], [Push(b"b")])], [OpCode(0x51)]),
    ]

    rebuilt = parse_script(serialize_script(flatten_script(tree)))

    assert rebuilt == tree
