"""
Transaction body builder for simple payments.

Builds the unsigned body from:
- The selected UTxOs (all of them are spent)
- The payment output
- A change output back to the sender, when the leftover can stand as its own UTxO

The fee depends on the transaction size and the size depends on the fee (through the
change output), so the fee is found by a short fixed-point iteration.
"""

from __future__ import annotations

from collections.abc import Sequence

from adacore.address import decode_address, payment_key_hash
from adacore.constants import (
    ED25519_SIGNATURE_SIZE,
    ED25519_VKEY_SIZE,
    MAX_FEE_ITERATIONS,
    TX_INPUT_SIZE,
    TX_OUTPUT_SIZE,
    TX_OVERHEAD_SIZE,
    UTXO_ENTRY_OVERHEAD,
    VKEY_WITNESS_SIZE,
)
from adacore.exceptions import BodyTooLarge, InsufficientFunds, OutputTooSmall, ValueTooLarge
from adacore.models import Payment, ProtocolParameters, UTxO
from adacore.transaction import (
    AuxiliaryData,
    Transaction,
    TransactionBody,
    TransactionInput,
    TransactionOutput,
    VkeyWitness,
    WitnessSet,
)
from loguru import logger

# Body key, byte string head and 32-byte hash
AUX_DATA_HASH_FIELD_SIZE = 35


def placeholder_witnesses(count: int) -> WitnessSet:
    """Witness set of the same encoded size as ``count`` real vkey witnesses."""
    return WitnessSet(
        vkey_witnesses=tuple(
            VkeyWitness(
                vkey=i.to_bytes(ED25519_VKEY_SIZE, "big"),
                signature=bytes(ED25519_SIGNATURE_SIZE),
            )
            for i in range(max(count, 1))
        )
    )


def required_signer_count(inputs: Sequence[UTxO], sender_address: str) -> int:
    """Distinct payment credentials among the inputs (at least one)."""
    credentials: set[bytes] = set()
    for utxo in inputs:
        raw = decode_address(utxo.address or sender_address)
        credentials.add(payment_key_hash(raw) or raw)
    return max(len(credentials), 1)


class TransactionBuilder:
    """
    Builds payment transaction bodies under the protocol's fee and size rules.

    All arithmetic is in integer lovelace.
    """

    def __init__(self, params: ProtocolParameters):
        self.params = params

    def min_fee(self, size: int) -> int:
        """Linear fee: ``min_fee_a * size + min_fee_b``."""
        return self.params.min_fee_a * size + self.params.min_fee_b

    def min_utxo_value(self, output: TransactionOutput) -> int:
        """Minimum lovelace an output must hold (Babbage per-byte rule)."""
        return (UTXO_ENTRY_OVERHEAD + len(output.to_cbor())) * self.params.coins_per_utxo_byte

    def estimate_fee(
        self,
        num_inputs: int,
        num_outputs: int,
        auxiliary_data: AuxiliaryData | None = None,
    ) -> int:
        """
        Upper-bound fee estimate from input/output counts.

        Holds for lovelace-only outputs up to base-address size and one witness per
        input. Used by coin selection before the real body exists.
        """
        size = (
            TX_OVERHEAD_SIZE
            + num_inputs * TX_INPUT_SIZE
            + num_outputs * TX_OUTPUT_SIZE
            + max(num_inputs, 1) * VKEY_WITNESS_SIZE
        )
        if auxiliary_data is not None:
            size += len(auxiliary_data.to_cbor()) + AUX_DATA_HASH_FIELD_SIZE
        return self.min_fee(size)

    @staticmethod
    def transaction_size(
        body: TransactionBody,
        witnesses: WitnessSet,
        auxiliary_data: AuxiliaryData | None = None,
    ) -> int:
        """Serialized size of the full transaction."""
        return Transaction(body=body, witness_set=witnesses, auxiliary_data=auxiliary_data).size

    def build(
        self,
        inputs: Sequence[UTxO],
        sender_address: str,
        payment: Payment,
        ttl: int | None = None,
        auxiliary_data: AuxiliaryData | None = None,
    ) -> TransactionBody:
        """
        Build an unsigned payment body spending all ``inputs``.

        Args:
            inputs: Selected UTxOs, spent in the given order
            sender_address: Address receiving the change
            payment: Destination and amount
            ttl: Absolute slot after which the transaction is invalid
            auxiliary_data: Metadata attached to the transaction (hash goes in the body)

        Raises:
            InsufficientFunds: Inputs do not cover payment + fee
            OutputTooSmall: Payment is below the minimum UTxO value
            BodyTooLarge: Transaction exceeds max_tx_size or the fee does not converge
            ValueTooLarge: An output value exceeds max_value_size
        """
        if not inputs:
            raise InsufficientFunds(required=payment.lovelace, available=0)

        tx_inputs = tuple(TransactionInput(u.tx_hash, u.output_index) for u in inputs)
        total_input = sum(u.lovelace for u in inputs)

        payment_output = TransactionOutput.to_address(payment.address, payment.lovelace)
        minimum = self.min_utxo_value(payment_output)
        if payment.lovelace < minimum:
            raise OutputTooSmall(payment.lovelace, minimum)

        change_address = decode_address(sender_address)
        aux_hash = auxiliary_data.hash if auxiliary_data is not None else None
        witnesses = placeholder_witnesses(required_signer_count(inputs, sender_address))

        fee = 0
        for iteration in range(MAX_FEE_ITERATIONS):
            body = self._assemble(
                tx_inputs, payment_output, change_address, total_input, fee, ttl, aux_hash
            )
            size = self.transaction_size(body, witnesses, auxiliary_data)
            required = self.min_fee(size)
            logger.debug(
                f"Fee pass {iteration + 1}: size={size}, required={required}, body fee={body.fee}"
            )
            if required <= body.fee:
                self._check_limits(body, size)
                logger.info(
                    f"Built transaction {body.tx_id}: {len(body.inputs)} inputs, "
                    f"{len(body.outputs)} outputs, fee={body.fee}, size={size}"
                )
                return body
            fee = required

        raise BodyTooLarge(f"Fee did not converge after {MAX_FEE_ITERATIONS} passes")

    def _assemble(
        self,
        inputs: tuple[TransactionInput, ...],
        payment_output: TransactionOutput,
        change_address: bytes,
        total_input: int,
        fee: int,
        ttl: int | None,
        aux_hash: bytes | None,
    ) -> TransactionBody:
        """Body for a given fee, with change added or folded into the fee."""
        leftover = total_input - payment_output.lovelace - fee
        if leftover < 0:
            raise InsufficientFunds(
                required=payment_output.lovelace + fee, available=total_input
            )

        outputs = [payment_output]
        if leftover > 0:
            change = TransactionOutput(address=change_address, lovelace=leftover)
            if leftover < self.min_utxo_value(change):
                logger.debug(f"Change of {leftover} is below the minimum UTxO value, adding to fee")
                fee += leftover
            else:
                outputs.append(change)

        return TransactionBody(
            inputs=inputs,
            outputs=tuple(outputs),
            fee=fee,
            ttl=ttl,
            auxiliary_data_hash=aux_hash,
        )

    def _check_limits(self, body: TransactionBody, size: int) -> None:
        if size > self.params.max_tx_size:
            raise BodyTooLarge(
                f"Transaction size {size} exceeds maximum of {self.params.max_tx_size}"
            )
        for output in body.outputs:
            if output.value_size > self.params.max_value_size:
                raise ValueTooLarge(
                    f"Output value size {output.value_size} exceeds maximum of "
                    f"{self.params.max_value_size}"
                )
