"""
Core data models using Pydantic for validation and serialization.

Coin quantities are always integers (lovelace). Conversion to ADA is a presentation
concern and only happens through ``lovelace_to_ada`` / ``format_lovelace``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from adacore.address import decode_address, is_payment_address
from adacore.constants import (
    DEFAULT_COINS_PER_UTXO_BYTE,
    DEFAULT_KEY_DEPOSIT,
    DEFAULT_MAX_TX_SIZE,
    DEFAULT_MAX_VALUE_SIZE,
    DEFAULT_MIN_FEE_A,
    DEFAULT_MIN_FEE_B,
    DEFAULT_POOL_DEPOSIT,
    LOVELACE_PER_ADA,
    LOVELACE_UNIT,
    MAX_UINT64,
)


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    PREPROD = "preprod"
    PREVIEW = "preview"

    @property
    def network_id(self) -> int:
        return 1 if self == NetworkType.MAINNET else 0


def _parse_integer(value: Any) -> Any:
    """Accept ints and decimal strings; reject floats to avoid precision loss."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError("must be an integer, not a float")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValueError("must be a decimal integer string")
        return int(value)
    return value


class Amount(BaseModel):
    """A quantity of a single unit ("lovelace" or a native asset id)."""

    model_config = ConfigDict(frozen=True)

    unit: str = Field(default=LOVELACE_UNIT, min_length=1)
    quantity: int = Field(..., ge=0, le=MAX_UINT64)

    @field_validator("quantity", mode="before")
    @classmethod
    def parse_quantity(cls, v: Any) -> Any:
        return _parse_integer(v)

    @classmethod
    def of_lovelace(cls, quantity: int) -> Amount:
        return cls(unit=LOVELACE_UNIT, quantity=quantity)

    @property
    def is_lovelace(self) -> bool:
        return self.unit == LOVELACE_UNIT


class UTxO(BaseModel):
    """
    Unspent transaction output as returned by the chain indexer.

    Immutable: it describes a spendable output at the time it was fetched.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    tx_hash: str = Field(..., pattern=r"^[0-9a-fA-F]{64}$")
    output_index: int = Field(..., ge=0)
    amount: tuple[Amount, ...] = ()
    address: str | None = None

    @field_validator("tx_hash")
    @classmethod
    def normalize_hash(cls, v: str) -> str:
        return v.lower()

    @property
    def lovelace(self) -> int:
        return sum(a.quantity for a in self.amount if a.is_lovelace)

    @property
    def has_assets(self) -> bool:
        return any(not a.is_lovelace and a.quantity > 0 for a in self.amount)

    @property
    def outpoint(self) -> str:
        return f"{self.tx_hash}#{self.output_index}"


class Payment(BaseModel):
    """An intended payment: destination address and lovelace amount."""

    address: str
    lovelace: int = Field(..., gt=0, le=MAX_UINT64)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        raw = decode_address(v)
        if not is_payment_address(raw):
            raise ValueError("destination must be a payment address")
        return v

    @field_validator("lovelace", mode="before")
    @classmethod
    def parse_lovelace(cls, v: Any) -> Any:
        return _parse_integer(v)


class ProtocolParameters(BaseModel):
    """Subset of ledger protocol parameters needed to build payment transactions."""

    min_fee_a: int = Field(default=DEFAULT_MIN_FEE_A, ge=0)
    min_fee_b: int = Field(default=DEFAULT_MIN_FEE_B, ge=0)
    max_tx_size: int = Field(default=DEFAULT_MAX_TX_SIZE, gt=0)
    max_value_size: int = Field(default=DEFAULT_MAX_VALUE_SIZE, gt=0)
    coins_per_utxo_byte: int = Field(default=DEFAULT_COINS_PER_UTXO_BYTE, ge=0)
    key_deposit: int = Field(default=DEFAULT_KEY_DEPOSIT, ge=0)
    pool_deposit: int = Field(default=DEFAULT_POOL_DEPOSIT, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def parse_numbers(cls, v: Any) -> Any:
        return _parse_integer(v)

    @classmethod
    def from_blockfrost(cls, data: dict[str, Any]) -> ProtocolParameters:
        """Parse the indexer's ``/epochs/latest/parameters`` payload."""
        values: dict[str, Any] = {
            "min_fee_a": data["min_fee_a"],
            "min_fee_b": data["min_fee_b"],
            "max_tx_size": data["max_tx_size"],
            "key_deposit": data["key_deposit"],
            "pool_deposit": data["pool_deposit"],
        }
        if data.get("max_val_size") is not None:
            values["max_value_size"] = data["max_val_size"]
        if data.get("coins_per_utxo_size") is not None:
            values["coins_per_utxo_byte"] = data["coins_per_utxo_size"]
        return cls(**values)


class AddressSummary(BaseModel):
    """Balance summary for an address. ``ada`` is for display only."""

    address: str
    utxos: list[UTxO] = Field(default_factory=list)
    lovelace: str
    ada: float

    @classmethod
    def from_utxos(cls, address: str, utxos: list[UTxO]) -> AddressSummary:
        total = sum(utxo.lovelace for utxo in utxos)
        return cls(
            address=address,
            utxos=list(utxos),
            lovelace=str(total),
            ada=total / LOVELACE_PER_ADA,
        )


def lovelace_to_ada(lovelace: int) -> Decimal:
    return Decimal(lovelace) / Decimal(LOVELACE_PER_ADA)


def ada_to_lovelace(ada: str | Decimal) -> int:
    """Convert a decimal ADA amount to lovelace, rejecting sub-lovelace precision."""
    try:
        value = Decimal(str(ada)) * LOVELACE_PER_ADA
    except InvalidOperation as e:
        raise ValueError(f"Invalid ADA amount: {ada}") from e
    if not value.is_finite() or value != value.to_integral_value() or value < 0:
        raise ValueError(f"Invalid ADA amount: {ada}")
    return int(value)


def format_lovelace(lovelace: int) -> str:
    """Format a lovelace amount for display, e.g. ``1.500000 ADA``."""
    return f"{lovelace_to_ada(lovelace):.6f} ADA"
