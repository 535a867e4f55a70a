"""
Tests for Cardano address encoding.
"""

from __future__ import annotations

import pytest
from adacore.address import (
    MAINNET_NETWORK_ID,
    TESTNET_NETWORK_ID,
    AddressError,
    AddressType,
    address_type,
    base_address,
    bech32_decode_long,
    bech32_encode_long,
    decode_address,
    encode_address,
    enterprise_address,
    is_payment_address,
    network_id,
    payment_key_hash,
    to_bech32,
)

PAYMENT_HASH = bytes.fromhex("aa" * 28)
STAKE_HASH = bytes.fromhex("bb" * 28)


def _corrupt(address: str) -> str:
    """Change the last checksum character."""
    last = "q" if address[-1] != "q" else "p"
    return address[:-1] + last


class TestEnterpriseAddress:
    def test_header(self) -> None:
        raw = enterprise_address(PAYMENT_HASH, TESTNET_NETWORK_ID)
        assert raw[0] == 0x60
        assert len(raw) == 29
        assert address_type(raw) == AddressType.ENTERPRISE_KEY
        assert network_id(raw) == TESTNET_NETWORK_ID

    def test_testnet_prefix(self) -> None:
        address = encode_address(enterprise_address(PAYMENT_HASH, TESTNET_NETWORK_ID))
        assert address.startswith("addr_test1")

    def test_mainnet_prefix(self) -> None:
        address = encode_address(enterprise_address(PAYMENT_HASH, MAINNET_NETWORK_ID))
        assert address.startswith("addr1")

    def test_round_trip(self) -> None:
        raw = enterprise_address(PAYMENT_HASH, TESTNET_NETWORK_ID)
        assert decode_address(encode_address(raw)) == raw

    def test_key_hash_size(self) -> None:
        with pytest.raises(AddressError):
            enterprise_address(b"\x00" * 20, TESTNET_NETWORK_ID)


class TestBaseAddress:
    def test_round_trip_longer_than_90_chars(self) -> None:
        """Base addresses exceed the BIP-173 length limit."""
        raw = base_address(PAYMENT_HASH, STAKE_HASH, MAINNET_NETWORK_ID)
        address = encode_address(raw)
        assert len(address) > 90
        assert decode_address(address) == raw

    def test_payment_key_hash(self) -> None:
        raw = base_address(PAYMENT_HASH, STAKE_HASH, MAINNET_NETWORK_ID)
        assert payment_key_hash(raw) == PAYMENT_HASH


class TestDecodeAddress:
    def test_hex_accepted(self) -> None:
        """CIP-30 wallets report addresses as hex bytes."""
        raw = enterprise_address(PAYMENT_HASH, TESTNET_NETWORK_ID)
        assert decode_address(raw.hex()) == raw
        assert to_bech32(raw.hex()) == encode_address(raw)

    def test_uppercase_accepted(self) -> None:
        address = encode_address(enterprise_address(PAYMENT_HASH, TESTNET_NETWORK_ID))
        assert decode_address(address.upper()) == decode_address(address)

    def test_checksum_rejected(self) -> None:
        address = encode_address(enterprise_address(PAYMENT_HASH, TESTNET_NETWORK_ID))
        with pytest.raises(AddressError, match="checksum"):
            decode_address(_corrupt(address))

    def test_mixed_case_rejected(self) -> None:
        address = encode_address(enterprise_address(PAYMENT_HASH, TESTNET_NETWORK_ID))
        mixed = address[:5].upper() + address[5:]
        with pytest.raises(AddressError):
            decode_address(mixed)

    def test_wrong_prefix_rejected(self) -> None:
        raw = enterprise_address(PAYMENT_HASH, MAINNET_NETWORK_ID)
        address = encode_address(raw)
        _, data = bech32_decode_long(address)
        with pytest.raises(AddressError, match="prefix"):
            decode_address(bech32_encode_long("addr_test", data))

    def test_wrong_length_rejected(self) -> None:
        with pytest.raises(AddressError):
            decode_address("60" + "aa" * 20)

    def test_byron_rejected(self) -> None:
        with pytest.raises(AddressError):
            decode_address("82" + "00" * 28)

    def test_empty(self) -> None:
        with pytest.raises(AddressError):
            decode_address("  ")

    def test_garbage(self) -> None:
        with pytest.raises(AddressError):
            decode_address("not an address")

    def test_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            decode_address("addr_test1zzzz")


class TestPaymentAddress:
    def test_reward_address_is_not_payment(self) -> None:
        raw = bytes([(AddressType.REWARD_KEY << 4) | TESTNET_NETWORK_ID]) + STAKE_HASH
        assert not is_payment_address(raw)
        assert encode_address(raw).startswith("stake_test1")

    def test_script_credential_has_no_key_hash(self) -> None:
        raw = bytes([(AddressType.ENTERPRISE_SCRIPT << 4) | TESTNET_NETWORK_ID]) + PAYMENT_HASH
        assert is_payment_address(raw)
        assert payment_key_hash(raw) is None
