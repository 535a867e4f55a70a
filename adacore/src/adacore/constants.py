"""
Cardano protocol constants.

Default protocol parameters follow the mainnet values of the Babbage/Conway eras.
Live values should always be fetched from the chain backend; these are only used
when no backend is available (tests, offline builds).
"""

from __future__ import annotations

# Base unit of the chain. 1 ADA = 1_000_000 lovelace
LOVELACE_UNIT = "lovelace"
LOVELACE_PER_ADA = 1_000_000

MAX_UINT64 = 2**64 - 1

# Linear fee model: fee = MIN_FEE_A * tx_size + MIN_FEE_B
DEFAULT_MIN_FEE_A = 44
DEFAULT_MIN_FEE_B = 155_381

DEFAULT_MAX_TX_SIZE = 16_384  # bytes
DEFAULT_MAX_VALUE_SIZE = 5_000  # bytes

# Babbage minimum UTxO rule: (UTXO_ENTRY_OVERHEAD + output_size) * coins_per_utxo_byte
DEFAULT_COINS_PER_UTXO_BYTE = 4_310
UTXO_ENTRY_OVERHEAD = 160

DEFAULT_KEY_DEPOSIT = 2_000_000
DEFAULT_POOL_DEPOSIT = 500_000_000

# Fee and size depend on each other; the builder gives up after this many passes
MAX_FEE_ITERATIONS = 3

# Worst-case serialized sizes used for the pre-selection fee estimate
# Envelope and body map heads, fee and TTL as uint32, witness map heads, is_valid, null aux
TX_OVERHEAD_SIZE = 23
TX_INPUT_SIZE = 38  # [hash32, uint16 index]
TX_OUTPUT_SIZE = 69  # [base address (57 bytes), uint64]
VKEY_WITNESS_SIZE = 101  # [vkey32, sig64]

ED25519_VKEY_SIZE = 32
ED25519_SIGNATURE_SIZE = 64
KEY_HASH_SIZE = 28
TX_HASH_SIZE = 32

# CIP-20 transaction message metadata
CIP20_MESSAGE_LABEL = 674
METADATA_TEXT_MAX_BYTES = 64

# CBOR tag used by Conway-era encoders for sets
CBOR_SET_TAG = 258
