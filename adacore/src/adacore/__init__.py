"""
adacore - Core library for adawallet components

Provides shared data models, the canonical CBOR codec, addresses and
transaction structures.
"""

__version__ = "0.1.0"

from adacore.address import AddressError, decode_address, encode_address, to_bech32
from adacore.cbor import CBORDecodeError, CBORTag
from adacore.constants import LOVELACE_PER_ADA, LOVELACE_UNIT, MAX_FEE_ITERATIONS
from adacore.exceptions import (
    AlreadyConnected,
    BodyTooLarge,
    InsufficientFunds,
    NetworkError,
    NotConnected,
    OutputTooSmall,
    SignerUnavailable,
    SigningRejected,
    SubmissionRejected,
    ValueTooLarge,
    WalletError,
    WitnessMismatch,
)
from adacore.models import (
    AddressSummary,
    Amount,
    NetworkType,
    Payment,
    ProtocolParameters,
    UTxO,
    format_lovelace,
)
from adacore.transaction import (
    AuxiliaryData,
    Transaction,
    TransactionBody,
    TransactionInput,
    TransactionOutput,
    VkeyWitness,
    WitnessSet,
)

__all__ = [
    "AddressError",
    "AddressSummary",
    "AlreadyConnected",
    "Amount",
    "AuxiliaryData",
    "BodyTooLarge",
    "CBORDecodeError",
    "CBORTag",
    "InsufficientFunds",
    "LOVELACE_PER_ADA",
    "LOVELACE_UNIT",
    "MAX_FEE_ITERATIONS",
    "NetworkError",
    "NetworkType",
    "NotConnected",
    "OutputTooSmall",
    "Payment",
    "ProtocolParameters",
    "SignerUnavailable",
    "SigningRejected",
    "SubmissionRejected",
    "Transaction",
    "TransactionBody",
    "TransactionInput",
    "TransactionOutput",
    "UTxO",
    "ValueTooLarge",
    "VkeyWitness",
    "WalletError",
    "WitnessMismatch",
    "WitnessSet",
    "decode_address",
    "encode_address",
    "format_lovelace",
    "to_bech32",
]
