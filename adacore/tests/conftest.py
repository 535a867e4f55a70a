"""
Test fixtures and configuration.
"""

from typing import Any

import pytest
from adacore.address import TESTNET_NETWORK_ID, encode_address, enterprise_address


@pytest.fixture
def payment_key_hash() -> bytes:
    return bytes.fromhex("11" * 28)


@pytest.fixture
def testnet_address(payment_key_hash: bytes) -> str:
    return encode_address(enterprise_address(payment_key_hash, TESTNET_NETWORK_ID))


@pytest.fixture
def blockfrost_utxo() -> dict[str, Any]:
    """UTxO as returned by Blockfrost /addresses/{address}/utxos."""
    return {
        "tx_hash": "39a7a284c2a0948189dc45dec670211cd4d72f7b66c5726c08d9b3df11e44d58",
        "tx_index": 0,
        "output_index": 0,
        "amount": [{"unit": "lovelace", "quantity": "42000000"}],
        "block": "7eb8e27d18686c7db9a18f8bbcfe34e3fed6e047afaa2d969904d15e934847e6",
        "data_hash": None,
        "inline_datum": None,
        "reference_script_hash": None,
    }


@pytest.fixture
def blockfrost_parameters() -> dict[str, Any]:
    """Subset of Blockfrost /epochs/latest/parameters."""
    return {
        "epoch": 500,
        "min_fee_a": 44,
        "min_fee_b": 155381,
        "max_block_size": 90112,
        "max_tx_size": 16384,
        "max_block_header_size": 1100,
        "key_deposit": "2000000",
        "pool_deposit": "500000000",
        "max_val_size": "5000",
        "coins_per_utxo_size": "4310",
        "coins_per_utxo_word": "4310",
    }
