"""Opcode constants and name lookups for Bitcoin (BSV) scripts.

Names follow the BSV node conventions, so the re-enabled splice opcodes
appear as ``OP_SPLIT``, ``OP_NUM2BIN`` and ``OP_BIN2NUM``.
"""

from __future__ import annotations

# push value
OP_0 = 0x00
OP_FALSE = OP_0
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_RESERVED = 0x50
OP_1 = 0x51
OP_TRUE = OP_1

# control
OP_NOP = 0x61
OP_VER = 0x62
OP_IF = 0x63
OP_NOTIF = 0x64
OP_VERIF = 0x65
OP_VERNOTIF = 0x66
OP_ELSE = 0x67
OP_ENDIF = 0x68
OP_VERIFY = 0x69
OP_RETURN = 0x6A

# crypto
OP_HASH160 = 0xA9
OP_CHECKSIG = 0xAC

OP_DUP = 0x76
OP_EQUALVERIFY = 0x88

OP_INVALIDOPCODE = 0xFF

MAX_DIRECT_PUSH = 0x4B

_NAMED_OPCODES = [
    ("OP_0", OP_0),
    ("OP_PUSHDATA1", OP_PUSHDATA1),
    ("OP_PUSHDATA2", OP_PUSHDATA2),
    ("OP_PUSHDATA4", OP_PUSHDATA4),
    ("OP_1NEGATE", OP_1NEGATE),
    ("OP_RESERVED", OP_RESERVED),
]
_NAMED_OPCODES += [(f"OP_{n}", 0x50 + n) for n in range(1, 17)]
_NAMED_OPCODES += [
    ("OP_NOP", OP_NOP),
    ("OP_VER", OP_VER),
    ("OP_IF", OP_IF),
    ("OP_NOTIF", OP_NOTIF),
    ("OP_VERIF", OP_VERIF),
    ("OP_VERNOTIF", OP_VERNOTIF),
    ("OP_ELSE", OP_ELSE),
    ("OP_ENDIF", OP_ENDIF),
    ("OP_VERIFY", OP_VERIFY),
    ("OP_RETURN", OP_RETURN),
    # stack ops
    ("OP_TOALTSTACK", 0x6B),
    ("OP_FROMALTSTACK", 0x6C),
    ("OP_2DROP", 0x6D),
    ("OP_2DUP", 0x6E),
    ("OP_3DUP", 0x6F),
    ("OP_2OVER", 0x70),
    ("OP_2ROT", 0x71),
    ("OP_2SWAP", 0x72),
    ("OP_IFDUP", 0x73),
    ("OP_DEPTH", 0x74),
    ("OP_DROP", 0x75),
    ("OP_DUP", OP_DUP),
    ("OP_NIP", 0x77),
    ("OP_OVER", 0x78),
    ("OP_PICK", 0x79),
    ("OP_ROLL", 0x7A),
    ("OP_ROT", 0x7B),
    ("OP_SWAP", 0x7C),
    ("OP_TUCK", 0x7D),
    # splice ops
    ("OP_CAT", 0x7E),
    ("OP_SPLIT", 0x7F),
    ("OP_NUM2BIN", 0x80),
    ("OP_BIN2NUM", 0x81),
    ("OP_SIZE", 0x82),
    # bit logic
    ("OP_INVERT", 0x83),
    ("OP_AND", 0x84),
    ("OP_OR", 0x85),
    ("OP_XOR", 0x86),
    ("OP_EQUAL", 0x87),
    ("OP_EQUALVERIFY", OP_EQUALVERIFY),
    ("OP_RESERVED1", 0x89),
    ("OP_RESERVED2", 0x8A),
    # numeric
    ("OP_1ADD", 0x8B),
    ("OP_1SUB", 0x8C),
    ("OP_2MUL", 0x8D),
    ("OP_2DIV", 0x8E),
    ("OP_NEGATE", 0x8F),
    ("OP_ABS", 0x90),
    ("OP_NOT", 0x91),
    ("OP_0NOTEQUAL", 0x92),
    ("OP_ADD", 0x93),
    ("OP_SUB", 0x94),
    ("OP_MUL", 0x95),
    ("OP_DIV", 0x96),
    ("OP_MOD", 0x97),
    ("OP_LSHIFT", 0x98),
    ("OP_RSHIFT", 0x99),
    ("OP_BOOLAND", 0x9A),
    ("OP_BOOLOR", 0x9B),
    ("OP_NUMEQUAL", 0x9C),
    ("OP_NUMEQUALVERIFY", 0x9D),
    ("OP_NUMNOTEQUAL", 0x9E),
    ("OP_LESSTHAN", 0x9F),
    ("OP_GREATERTHAN", 0xA0),
    ("OP_LESSTHANOREQUAL", 0xA1),
    ("OP_GREATERTHANOREQUAL", 0xA2),
    ("OP_MIN", 0xA3),
    ("OP_MAX", 0xA4),
    ("OP_WITHIN", 0xA5),
    # crypto
    ("OP_RIPEMD160", 0xA6),
    ("OP_SHA1", 0xA7),
    ("OP_SHA256", 0xA8),
    ("OP_HASH160", OP_HASH160),
    ("OP_HASH256", 0xAA),
    ("OP_CODESEPARATOR", 0xAB),
    ("OP_CHECKSIG", OP_CHECKSIG),
    ("OP_CHECKSIGVERIFY", 0xAD),
    ("OP_CHECKMULTISIG", 0xAE),
    ("OP_CHECKMULTISIGVERIFY", 0xAF),
]
_NAMED_OPCODES += [(f"OP_NOP{n}", 0xAF + n) for n in range(1, 11)]
_NAMED_OPCODES += [
    ("OP_INVALIDOPCODE", OP_INVALIDOPCODE),
]

opcode_map_fwd: dict[str, int] = dict(_NAMED_OPCODES)
opcode_map_fwd.update({"OP_FALSE": OP_FALSE, "OP_TRUE": OP_TRUE})
opcode_map_rev: dict[int, str] = {}
for _name, _value in _NAMED_OPCODES:
    opcode_map_rev.setdefault(_value, _name)


def opcode_name(code: int) -> str:
    """Return the canonical ``OP_*`` name for ``code``."""

    name = opcode_map_rev.get(code)
    if name is not None:
        return name
    return f"OP_UNKNOWN{code}"


def opcode_from_name(name: str) -> int:
    """Return the byte value for an ``OP_*`` name (the prefix is optional)."""

    normalized = name.strip().upper()
    if not normalized.startswith("OP_"):
        normalized = "OP_" + normalized
    try:
        return opcode_map_fwd[normalized]
    except KeyError as exc:
        raise ValueError(f"Unknown opcode name: {name}") from exc
