"""Pay-to-public-key-hash address derivation.

Addresses are Base58Check strings over ``version || hash160``. Public keys
are validated as secp256k1 points before hashing so garbage pushes that
merely have the right length do not produce an address.
"""

from __future__ import annotations

import binascii
import hashlib
from typing import List

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from .errors import BPUError

b58_digits = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

P2PKH_VERSION = b"\x00"
PUBKEY_HASH_LENGTH = 20
COMPRESSED_PUBKEY_LENGTH = 33


class AddressDerivationError(BPUError):
    """Raised when key material cannot be turned into an address."""

    stage = "derivation"


def _double_sha256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """Return ``RIPEMD160(SHA256(data))``."""

    try:
        digest = hashes.Hash(hashes.RIPEMD160())
    except UnsupportedAlgorithm as exc:  # pragma: no cover - depends on OpenSSL build
        raise AddressDerivationError("RIPEMD160 is not available in this OpenSSL build") from exc
    digest.update(hashlib.sha256(data).digest())
    return digest.finalize()


def base58_check_encode(payload: bytes, version: bytes) -> str:
    """Encode bytes into a Base58Check string with the provided version byte."""
    data = version + payload
    checksum = _double_sha256(data)[:4]
    address_bytes = data + checksum

    value = int("0x0" + binascii.hexlify(address_bytes).decode("utf8"), 16)

    output: List[str] = []
    while value > 0:
        value, remainder = divmod(value, 58)
        output.append(b58_digits[remainder])
    encoded = "".join(output[::-1])

    leading_zero_count = 0
    for byte in address_bytes:
        if byte == 0:
            leading_zero_count += 1
        else:
            break

    return b58_digits[0] * leading_zero_count + encoded


def p2pkh_address_from_hash(pubkey_hash: bytes, version: bytes = P2PKH_VERSION) -> str:
    if len(pubkey_hash) != PUBKEY_HASH_LENGTH:
        raise AddressDerivationError(
            f"public key hash must be {PUBKEY_HASH_LENGTH} bytes, got {len(pubkey_hash)}"
        )
    return base58_check_encode(pubkey_hash, version)


def p2pkh_address_from_pubkey(pubkey: bytes, version: bytes = P2PKH_VERSION) -> str:
    """Derive the P2PKH address of a SEC-encoded secp256k1 public key."""

    try:
        ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), pubkey)
    except ValueError as exc:
        raise AddressDerivationError(f"invalid secp256k1 public key: {pubkey.hex()}") from exc
    return p2pkh_address_from_hash(hash160(pubkey), version)
