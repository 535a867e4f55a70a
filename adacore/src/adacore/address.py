"""
Cardano Shelley address encoding (CIP-19).

An address is a header byte (high nibble: address type, low nibble: network id)
followed by one or two 28-byte credentials, rendered as bech32 with the ``addr`` /
``addr_test`` prefix.

The bech32 reference implementation rejects strings longer than 90 characters, which
base addresses exceed, so the string-level encode/decode is done here on top of the
package's checksum and bit-conversion primitives.
"""

from __future__ import annotations

import string
from enum import IntEnum

import bech32

from adacore.constants import KEY_HASH_SIZE

MAINNET_NETWORK_ID = 1
TESTNET_NETWORK_ID = 0

CHECKSUM_LENGTH = 6


class AddressError(ValueError):
    """Invalid or unsupported address."""

    pass


class AddressType(IntEnum):
    BASE_KEY_KEY = 0
    BASE_SCRIPT_KEY = 1
    BASE_KEY_SCRIPT = 2
    BASE_SCRIPT_SCRIPT = 3
    POINTER_KEY = 4
    POINTER_SCRIPT = 5
    ENTERPRISE_KEY = 6
    ENTERPRISE_SCRIPT = 7
    BYRON = 8
    REWARD_KEY = 14
    REWARD_SCRIPT = 15


# Address types whose payment credential is a key hash
KEY_PAYMENT_TYPES = {
    AddressType.BASE_KEY_KEY,
    AddressType.BASE_KEY_SCRIPT,
    AddressType.POINTER_KEY,
    AddressType.ENTERPRISE_KEY,
}

PAYMENT_TYPES = {
    AddressType.BASE_KEY_KEY,
    AddressType.BASE_SCRIPT_KEY,
    AddressType.BASE_KEY_SCRIPT,
    AddressType.BASE_SCRIPT_SCRIPT,
    AddressType.POINTER_KEY,
    AddressType.POINTER_SCRIPT,
    AddressType.ENTERPRISE_KEY,
    AddressType.ENTERPRISE_SCRIPT,
}

REWARD_TYPES = {AddressType.REWARD_KEY, AddressType.REWARD_SCRIPT}


def bech32_encode_long(hrp: str, data: list[int]) -> str:
    """Encode 5-bit groups as bech32 without the 90 character limit."""
    values = bech32.bech32_hrp_expand(hrp) + data
    polymod = bech32.bech32_polymod(values + [0] * CHECKSUM_LENGTH) ^ 1
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(CHECKSUM_LENGTH)]
    return hrp + "1" + "".join(bech32.CHARSET[d] for d in data + checksum)


def bech32_decode_long(bech: str) -> tuple[str, list[int]]:
    """Decode a bech32 string without the 90 character limit. Returns (hrp, data)."""
    if any(ord(x) < 33 or ord(x) > 126 for x in bech):
        raise AddressError("Invalid character in address")
    if bech.lower() != bech and bech.upper() != bech:
        raise AddressError("Mixed case address")

    bech = bech.lower()
    pos = bech.rfind("1")
    if pos < 1 or pos + CHECKSUM_LENGTH + 1 > len(bech):
        raise AddressError("Invalid bech32 separator position")
    if not all(x in bech32.CHARSET for x in bech[pos + 1 :]):
        raise AddressError("Invalid bech32 character")

    hrp = bech[:pos]
    data = [bech32.CHARSET.find(x) for x in bech[pos + 1 :]]
    if bech32.bech32_polymod(bech32.bech32_hrp_expand(hrp) + data) != 1:
        raise AddressError("Invalid bech32 checksum")
    return hrp, data[:-CHECKSUM_LENGTH]


def address_type(raw: bytes) -> AddressType:
    if not raw:
        raise AddressError("Empty address")
    try:
        return AddressType(raw[0] >> 4)
    except ValueError as e:
        raise AddressError(f"Unknown address type: {raw[0] >> 4}") from e


def network_id(raw: bytes) -> int:
    return raw[0] & 0x0F


def address_prefix(raw: bytes) -> str:
    """Human readable prefix for an address, derived from its header."""
    kind = address_type(raw)
    mainnet = network_id(raw) == MAINNET_NETWORK_ID
    if kind in REWARD_TYPES:
        return "stake" if mainnet else "stake_test"
    if kind == AddressType.BYRON:
        raise AddressError("Byron addresses are not bech32 encoded")
    return "addr" if mainnet else "addr_test"


def validate_address_bytes(raw: bytes) -> None:
    kind = address_type(raw)
    if kind == AddressType.BYRON:
        raise AddressError("Byron addresses are not supported")

    if kind <= AddressType.BASE_SCRIPT_SCRIPT:
        expected = 1 + 2 * KEY_HASH_SIZE
        if len(raw) != expected:
            raise AddressError(f"Base address must be {expected} bytes, got {len(raw)}")
    elif kind in (AddressType.POINTER_KEY, AddressType.POINTER_SCRIPT):
        # Credential followed by three variable-length naturals
        if len(raw) < 1 + KEY_HASH_SIZE + 3:
            raise AddressError("Pointer address too short")
    elif len(raw) != 1 + KEY_HASH_SIZE:
        raise AddressError(f"Address must be {1 + KEY_HASH_SIZE} bytes, got {len(raw)}")


def decode_address(address: str) -> bytes:
    """
    Decode a bech32 address to its raw bytes.

    Hex-encoded raw addresses (as returned by CIP-30 wallets) are accepted as well.
    """
    address = address.strip()
    if not address:
        raise AddressError("Empty address")

    if all(c in string.hexdigits for c in address):
        try:
            raw = bytes.fromhex(address)
        except ValueError as e:
            raise AddressError(f"Invalid address: {address[:20]}...") from e
        validate_address_bytes(raw)
        return raw

    hrp, data = bech32_decode_long(address)
    converted = bech32.convertbits(data, 5, 8, False)
    if converted is None:
        raise AddressError("Invalid bech32 data padding")
    raw = bytes(converted)
    validate_address_bytes(raw)

    if hrp != address_prefix(raw):
        raise AddressError(f"Address prefix {hrp!r} does not match header ({address_prefix(raw)})")
    return raw


def encode_address(raw: bytes) -> str:
    """Encode raw address bytes as bech32."""
    validate_address_bytes(raw)
    data = bech32.convertbits(raw, 8, 5)
    if data is None:
        raise AddressError("Failed to convert address bytes")
    return bech32_encode_long(address_prefix(raw), data)


def to_bech32(address: str) -> str:
    """Normalize a hex or bech32 address to bech32."""
    return encode_address(decode_address(address))


def is_payment_address(raw: bytes) -> bool:
    return address_type(raw) in PAYMENT_TYPES


def payment_key_hash(raw: bytes) -> bytes | None:
    """Payment key hash of an address, or None if the credential is a script."""
    if address_type(raw) not in KEY_PAYMENT_TYPES:
        return None
    return raw[1 : 1 + KEY_HASH_SIZE]


def enterprise_address(key_hash: bytes, network: int) -> bytes:
    """Build an enterprise (payment key only) address."""
    if len(key_hash) != KEY_HASH_SIZE:
        raise AddressError(f"Key hash must be {KEY_HASH_SIZE} bytes")
    return bytes([(AddressType.ENTERPRISE_KEY << 4) | network]) + key_hash


def base_address(payment_hash: bytes, stake_hash: bytes, network: int) -> bytes:
    """Build a base address from payment and stake key hashes."""
    if len(payment_hash) != KEY_HASH_SIZE or len(stake_hash) != KEY_HASH_SIZE:
        raise AddressError(f"Key hashes must be {KEY_HASH_SIZE} bytes")
    return bytes([(AddressType.BASE_KEY_KEY << 4) | network]) + payment_hash + stake_hash
