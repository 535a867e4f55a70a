"""
Transaction data structures and their canonical wire encoding.

Structure (Babbage/Conway payment subset):

    transaction  = [body, witness_set, is_valid, auxiliary_data / null]
    body         = {0: [input], 1: [output], 2: fee, ? 3: ttl, ? 7: aux_data_hash}
    input        = [tx_hash(32), index]
    output       = [address_bytes, lovelace]
    witness_set  = {? 0: [[vkey(32), signature(64)]]}

All structures are frozen: a body is hashed and signed as-is, so changing anything
means building a new one (with a new id). The transaction id is the blake2b-256 of the
encoded body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from adacore import cbor
from adacore.address import decode_address, encode_address
from adacore.cbor import CBORDecodeError, CBORTag
from adacore.constants import (
    CIP20_MESSAGE_LABEL,
    ED25519_SIGNATURE_SIZE,
    ED25519_VKEY_SIZE,
    METADATA_TEXT_MAX_BYTES,
    TX_HASH_SIZE,
)
from adacore.crypto import blake2b_224, blake2b_256, verify_signature

# Body map keys
BODY_INPUTS = 0
BODY_OUTPUTS = 1
BODY_FEE = 2
BODY_TTL = 3
BODY_AUX_DATA_HASH = 7

WITNESS_VKEYS = 0

# Alonzo-era auxiliary data is tagged 259
AUX_DATA_TAG = 259


@dataclass(frozen=True)
class TransactionInput:
    """Reference to the UTxO being consumed."""

    tx_hash: str
    index: int

    def to_primitive(self) -> list[Any]:
        return [bytes.fromhex(self.tx_hash), self.index]

    @classmethod
    def from_primitive(cls, value: Any) -> TransactionInput:
        if not isinstance(value, list) or len(value) != 2:
            raise CBORDecodeError("Transaction input must be a 2-element array")
        tx_hash, index = value
        if not isinstance(tx_hash, bytes) or len(tx_hash) != TX_HASH_SIZE:
            raise CBORDecodeError("Transaction input hash must be 32 bytes")
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            raise CBORDecodeError("Transaction input index must be an unsigned integer")
        return cls(tx_hash=tx_hash.hex(), index=index)

    def __str__(self) -> str:
        return f"{self.tx_hash}#{self.index}"


@dataclass(frozen=True)
class TransactionOutput:
    """Lovelace-only output to a raw address."""

    address: bytes
    lovelace: int

    @classmethod
    def to_address(cls, address: str, lovelace: int) -> TransactionOutput:
        return cls(address=decode_address(address), lovelace=lovelace)

    @property
    def bech32(self) -> str:
        return encode_address(self.address)

    def to_primitive(self) -> list[Any]:
        return [self.address, self.lovelace]

    def to_cbor(self) -> bytes:
        return cbor.dumps(self.to_primitive())

    @property
    def value_size(self) -> int:
        """Size of the encoded value, checked against ``max_value_size``."""
        return len(cbor.dumps(self.lovelace))

    @classmethod
    def from_primitive(cls, value: Any) -> TransactionOutput:
        if isinstance(value, list):
            if len(value) != 2:
                raise CBORDecodeError("Outputs with datum hashes are not supported")
            address, amount = value
        elif isinstance(value, dict):
            if set(value) - {0, 1}:
                raise CBORDecodeError("Outputs with datums or scripts are not supported")
            address, amount = value.get(0), value.get(1)
        else:
            raise CBORDecodeError("Transaction output must be an array or map")

        if not isinstance(address, bytes):
            raise CBORDecodeError("Output address must be a byte string")
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise CBORDecodeError("Multi-asset outputs are not supported")
        return cls(address=address, lovelace=amount)


@dataclass(frozen=True)
class AuxiliaryData:
    """Transaction metadata: label -> metadatum."""

    metadata: dict[int, Any]

    def to_primitive(self) -> dict[int, Any]:
        return self.metadata

    def to_cbor(self) -> bytes:
        return cbor.dumps(self.to_primitive())

    @property
    def hash(self) -> bytes:
        return blake2b_256(self.to_cbor())

    @classmethod
    def from_primitive(cls, value: Any) -> AuxiliaryData:
        if isinstance(value, CBORTag) and value.tag == AUX_DATA_TAG:
            inner = value.value
            if not isinstance(inner, dict):
                raise CBORDecodeError("Invalid auxiliary data")
            value = inner.get(0, {})
        elif isinstance(value, list):
            # Shelley-MA form: [metadata, [native scripts]]
            if not value:
                raise CBORDecodeError("Invalid auxiliary data")
            value = value[0]
        if not isinstance(value, dict):
            raise CBORDecodeError("Auxiliary data metadata must be a map")
        return cls(metadata=value)

    @classmethod
    def message(cls, text: str) -> AuxiliaryData:
        """CIP-20 message metadata; lines are split to at most 64 UTF-8 bytes."""
        lines: list[str] = []
        for paragraph in text.splitlines() or [""]:
            current = ""
            for char in paragraph:
                if len((current + char).encode("utf-8")) > METADATA_TEXT_MAX_BYTES:
                    lines.append(current)
                    current = char
                else:
                    current += char
            lines.append(current)
        return cls(metadata={CIP20_MESSAGE_LABEL: {"msg": lines}})

    @property
    def message_lines(self) -> list[str] | None:
        entry = self.metadata.get(CIP20_MESSAGE_LABEL)
        if isinstance(entry, dict) and isinstance(entry.get("msg"), list):
            return entry["msg"]
        return None


@dataclass(frozen=True)
class TransactionBody:
    """Unsigned, canonical payload that is hashed and signed."""

    inputs: tuple[TransactionInput, ...]
    outputs: tuple[TransactionOutput, ...]
    fee: int
    ttl: int | None = None
    auxiliary_data_hash: bytes | None = None

    def to_primitive(self) -> dict[int, Any]:
        result: dict[int, Any] = {
            BODY_INPUTS: [inp.to_primitive() for inp in self.inputs],
            BODY_OUTPUTS: [out.to_primitive() for out in self.outputs],
            BODY_FEE: self.fee,
        }
        if self.ttl is not None:
            result[BODY_TTL] = self.ttl
        if self.auxiliary_data_hash is not None:
            result[BODY_AUX_DATA_HASH] = self.auxiliary_data_hash
        return result

    @cached_property
    def raw(self) -> bytes:
        return cbor.dumps(self.to_primitive())

    def to_cbor(self) -> bytes:
        return self.raw

    def to_hex(self) -> str:
        return self.raw.hex()

    @property
    def hash(self) -> bytes:
        return blake2b_256(self.raw)

    @property
    def tx_id(self) -> str:
        return self.hash.hex()

    @property
    def total_output(self) -> int:
        return sum(out.lovelace for out in self.outputs)

    @classmethod
    def from_primitive(cls, value: Any) -> TransactionBody:
        if not isinstance(value, dict):
            raise CBORDecodeError("Transaction body must be a map")
        unsupported = set(value) - {BODY_INPUTS, BODY_OUTPUTS, BODY_FEE, BODY_TTL, BODY_AUX_DATA_HASH}
        if unsupported:
            raise CBORDecodeError(f"Unsupported transaction body fields: {sorted(unsupported)}")
        for key in (BODY_INPUTS, BODY_OUTPUTS, BODY_FEE):
            if key not in value:
                raise CBORDecodeError(f"Transaction body is missing field {key}")

        fee = value[BODY_FEE]
        if not isinstance(fee, int) or isinstance(fee, bool) or fee < 0:
            raise CBORDecodeError("Fee must be an unsigned integer")
        ttl = value.get(BODY_TTL)
        if ttl is not None and (not isinstance(ttl, int) or ttl < 0):
            raise CBORDecodeError("TTL must be an unsigned integer")
        aux_hash = value.get(BODY_AUX_DATA_HASH)
        if aux_hash is not None and (not isinstance(aux_hash, bytes) or len(aux_hash) != 32):
            raise CBORDecodeError("Auxiliary data hash must be 32 bytes")
        if not isinstance(value[BODY_OUTPUTS], list):
            raise CBORDecodeError("Transaction outputs must be an array")

        return cls(
            inputs=tuple(
                TransactionInput.from_primitive(i) for i in cbor.unwrap_set(value[BODY_INPUTS])
            ),
            outputs=tuple(TransactionOutput.from_primitive(o) for o in value[BODY_OUTPUTS]),
            fee=fee,
            ttl=ttl,
            auxiliary_data_hash=aux_hash,
        )

    @classmethod
    def from_cbor(cls, data: bytes) -> TransactionBody:
        return cls.from_primitive(cbor.loads(data))

    @classmethod
    def from_hex(cls, data: str) -> TransactionBody:
        return cls.from_cbor(bytes.fromhex(data))


@dataclass(frozen=True)
class VkeyWitness:
    vkey: bytes
    signature: bytes

    @property
    def key_hash(self) -> bytes:
        return blake2b_224(self.vkey)

    def verify(self, message: bytes) -> bool:
        return verify_signature(self.vkey, self.signature, message)

    def to_primitive(self) -> list[bytes]:
        return [self.vkey, self.signature]

    @classmethod
    def from_primitive(cls, value: Any) -> VkeyWitness:
        if not isinstance(value, list) or len(value) != 2:
            raise CBORDecodeError("Vkey witness must be a 2-element array")
        vkey, signature = value
        if not isinstance(vkey, bytes) or len(vkey) != ED25519_VKEY_SIZE:
            raise CBORDecodeError("Witness vkey must be 32 bytes")
        if not isinstance(signature, bytes) or len(signature) != ED25519_SIGNATURE_SIZE:
            raise CBORDecodeError("Witness signature must be 64 bytes")
        return cls(vkey=vkey, signature=signature)


@dataclass(frozen=True)
class WitnessSet:
    """Signatures authorising the inputs. Non-vkey witness fields are carried untouched."""

    vkey_witnesses: tuple[VkeyWitness, ...] = ()
    extras: dict[int, Any] = field(default_factory=dict)

    def to_primitive(self) -> dict[int, Any]:
        result: dict[int, Any] = dict(self.extras)
        if self.vkey_witnesses:
            result[WITNESS_VKEYS] = [w.to_primitive() for w in self.vkey_witnesses]
        return result

    def to_cbor(self) -> bytes:
        return cbor.dumps(self.to_primitive())

    @property
    def key_hashes(self) -> set[bytes]:
        return {w.key_hash for w in self.vkey_witnesses}

    def merge(self, other: WitnessSet) -> WitnessSet:
        """Union of both sets; duplicate vkeys keep the first witness."""
        seen = {w.vkey for w in self.vkey_witnesses}
        merged = list(self.vkey_witnesses)
        for witness in other.vkey_witnesses:
            if witness.vkey not in seen:
                merged.append(witness)
                seen.add(witness.vkey)
        return WitnessSet(vkey_witnesses=tuple(merged), extras={**other.extras, **self.extras})

    @classmethod
    def from_primitive(cls, value: Any) -> WitnessSet:
        if not isinstance(value, dict):
            raise CBORDecodeError("Witness set must be a map")
        extras = {k: v for k, v in value.items() if k != WITNESS_VKEYS}
        witnesses: tuple[VkeyWitness, ...] = ()
        if WITNESS_VKEYS in value:
            witnesses = tuple(
                VkeyWitness.from_primitive(w) for w in cbor.unwrap_set(value[WITNESS_VKEYS])
            )
        return cls(vkey_witnesses=witnesses, extras=extras)

    @classmethod
    def from_cbor(cls, data: bytes) -> WitnessSet:
        return cls.from_primitive(cbor.loads(data))


@dataclass(frozen=True)
class Transaction:
    """Body plus witnesses: the submittable unit."""

    body: TransactionBody
    witness_set: WitnessSet = field(default_factory=WitnessSet)
    is_valid: bool = True
    auxiliary_data: AuxiliaryData | None = None

    def to_primitive(self) -> list[Any]:
        return [
            self.body.to_primitive(),
            self.witness_set.to_primitive(),
            self.is_valid,
            self.auxiliary_data.to_primitive() if self.auxiliary_data is not None else None,
        ]

    def to_cbor(self) -> bytes:
        # Reuse the cached body bytes so the body is exactly what was hashed
        result = cbor.encode_head(cbor.MAJOR_ARRAY, 4)
        result += self.body.raw
        result += self.witness_set.to_cbor()
        result += cbor.dumps(self.is_valid)
        result += cbor.dumps(
            self.auxiliary_data.to_primitive() if self.auxiliary_data is not None else None
        )
        return result

    def to_hex(self) -> str:
        return self.to_cbor().hex()

    @property
    def tx_id(self) -> str:
        return self.body.tx_id

    @property
    def size(self) -> int:
        return len(self.to_cbor())

    @classmethod
    def from_cbor(cls, data: bytes) -> Transaction:
        items = cbor.split_array(data)
        if len(items) not in (3, 4):
            raise CBORDecodeError(f"Transaction must have 3 or 4 elements, got {len(items)}")

        body = TransactionBody.from_cbor(items[0])
        witness_set = WitnessSet.from_cbor(items[1])
        is_valid = True
        aux_raw = items[2]
        if len(items) == 4:
            is_valid = cbor.loads(items[2])
            if not isinstance(is_valid, bool):
                raise CBORDecodeError("is_valid flag must be a boolean")
            aux_raw = items[3]

        aux_value = cbor.loads(aux_raw)
        auxiliary_data = AuxiliaryData.from_primitive(aux_value) if aux_value is not None else None

        return cls(
            body=body,
            witness_set=witness_set,
            is_valid=is_valid,
            auxiliary_data=auxiliary_data,
        )

    @classmethod
    def from_hex(cls, data: str) -> Transaction:
        try:
            raw = bytes.fromhex(data)
        except ValueError as e:
            raise CBORDecodeError(f"Invalid hex: {e}") from e
        return cls.from_cbor(raw)


def transaction_id(tx_bytes: bytes) -> str:
    """
    Id of an encoded transaction, hashing its body exactly as encoded.

    Only checks the envelope shape, so it accepts transactions this package cannot
    fully decode (certificates, assets, scripts).
    """
    items = cbor.split_array(tx_bytes)
    if len(items) not in (3, 4):
        raise CBORDecodeError("Not a transaction")
    if not isinstance(cbor.loads(items[0]), dict):
        raise CBORDecodeError("Transaction body must be a map")
    return blake2b_256(items[0]).hex()
