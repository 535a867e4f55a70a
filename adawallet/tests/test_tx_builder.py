"""
Tests for the payment transaction builder.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
from adacore.address import TESTNET_NETWORK_ID, base_address, decode_address, encode_address
from adacore.crypto import sign_message
from adacore.exceptions import BodyTooLarge, InsufficientFunds, OutputTooSmall, ValueTooLarge
from adacore.models import Payment, ProtocolParameters, UTxO
from adacore.transaction import (
    AuxiliaryData,
    Transaction,
    TransactionBody,
    TransactionOutput,
    VkeyWitness,
    WitnessSet,
)

from adawallet.signers.local import LocalSigningAgent
from adawallet.wallet.tx_builder import (
    TransactionBuilder,
    placeholder_witnesses,
    required_signer_count,
)


def _sign(body: TransactionBody, agent: LocalSigningAgent) -> Transaction:
    """Sign with the agent's key directly (no session)."""
    witness = VkeyWitness(
        vkey=agent.verification_key,
        signature=sign_message(body.hash, agent.signing_key),
    )
    return Transaction(body=body, witness_set=WitnessSet(vkey_witnesses=(witness,)))


class TestFeeRules:
    def test_min_fee_is_linear(self) -> None:
        builder = TransactionBuilder(ProtocolParameters(min_fee_a=44, min_fee_b=155_381))
        assert builder.min_fee(0) == 155_381
        assert builder.min_fee(228) == 44 * 228 + 155_381

    def test_min_utxo_value(self, destination: str) -> None:
        builder = TransactionBuilder(ProtocolParameters(coins_per_utxo_byte=4_310))
        output = TransactionOutput.to_address(destination, 1_000_000)
        assert builder.min_utxo_value(output) == (160 + len(output.to_cbor())) * 4_310

    def test_estimate_fee(self) -> None:
        builder = TransactionBuilder(ProtocolParameters())
        assert builder.estimate_fee(1, 2) == 168_581
        # Each input adds its reference and one witness
        assert builder.estimate_fee(2, 2) - builder.estimate_fee(1, 2) == (38 + 101) * 44

    def test_estimate_fee_counts_metadata(self) -> None:
        builder = TransactionBuilder(ProtocolParameters())
        aux = AuxiliaryData.message("thanks for the coffee")
        extra = builder.estimate_fee(1, 2, aux) - builder.estimate_fee(1, 2)
        assert extra == (len(aux.to_cbor()) + 35) * 44

    def test_estimate_bounds_built_fee(
        self, agent: LocalSigningAgent, make_utxo: Callable[..., UTxO]
    ) -> None:
        """Largest encodings: uint16 index, base addresses, uint64 values, a TTL."""
        builder = TransactionBuilder(ProtocolParameters())
        sender = encode_address(
            base_address(agent.key_hash, bytes.fromhex("33" * 28), TESTNET_NETWORK_ID)
        )
        destination = encode_address(
            base_address(bytes.fromhex("22" * 28), bytes.fromhex("44" * 28), TESTNET_NETWORK_ID)
        )
        utxo = make_utxo(20_000_000_000_000, index=65_000, address=sender)

        body = builder.build(
            [utxo],
            sender,
            Payment(address=destination, lovelace=5_000_000_000_000),
            ttl=150_000_000,
        )

        assert len(body.outputs) == 2
        assert body.fee <= builder.estimate_fee(1, 2)


class TestPlaceholderWitnesses:
    def test_same_size_as_real_witnesses(self, agent: LocalSigningAgent) -> None:
        placeholders = placeholder_witnesses(1)
        body = TransactionBody(inputs=(), outputs=(), fee=0)
        real = _sign(body, agent).witness_set
        assert len(placeholders.to_cbor()) == len(real.to_cbor())

    def test_distinct_vkeys(self) -> None:
        witnesses = placeholder_witnesses(3).vkey_witnesses
        assert len({w.vkey for w in witnesses}) == 3

    def test_at_least_one(self) -> None:
        assert len(placeholder_witnesses(0).vkey_witnesses) == 1

    def test_signer_count(
        self, make_utxo: Callable[..., UTxO], sender_address: str, destination: str
    ) -> None:
        utxos = [make_utxo(1_000_000), make_utxo(2_000_000), make_utxo(1, address=destination)]
        assert required_signer_count(utxos, sender_address) == 2


class TestBuild:
    def test_payment_with_change(
        self,
        params: ProtocolParameters,
        make_utxo: Callable[..., UTxO],
        sender_address: str,
        destination: str,
    ) -> None:
        builder = TransactionBuilder(params)
        utxo = make_utxo(1_500_000)

        body = builder.build(
            [utxo], sender_address, Payment(address=destination, lovelace=1_000_000), ttl=8_200
        )

        assert [str(i) for i in body.inputs] == [utxo.outpoint]
        assert body.outputs[0] == TransactionOutput.to_address(destination, 1_000_000)
        assert len(body.outputs) == 2
        assert body.outputs[1].address == decode_address(sender_address)
        assert body.ttl == 8_200
        # Value is preserved exactly
        assert body.total_output + body.fee == 1_500_000
        assert 160_000 < body.fee < 180_000

    def test_fee_covers_signed_size(
        self,
        params: ProtocolParameters,
        make_utxo: Callable[..., UTxO],
        agent: LocalSigningAgent,
        destination: str,
    ) -> None:
        builder = TransactionBuilder(params)
        body = builder.build(
            [make_utxo(1_500_000)], agent.address, Payment(address=destination, lovelace=1_000_000)
        )
        signed = _sign(body, agent)
        assert builder.min_fee(signed.size) <= body.fee

    def test_change_below_minimum_folded_into_fee(
        self, make_utxo: Callable[..., UTxO], sender_address: str, destination: str
    ) -> None:
        """With the default per-byte cost a ~335k change output cannot stand alone."""
        builder = TransactionBuilder(ProtocolParameters())

        body = builder.build(
            [make_utxo(1_500_000)], sender_address, Payment(address=destination, lovelace=1_000_000)
        )

        assert len(body.outputs) == 1
        assert body.fee == 500_000

    def test_multiple_inputs_spent(
        self,
        params: ProtocolParameters,
        make_utxo: Callable[..., UTxO],
        sender_address: str,
        destination: str,
    ) -> None:
        builder = TransactionBuilder(params)
        utxos = [make_utxo(3_000_000), make_utxo(2_000_000, index=1)]

        body = builder.build(utxos, sender_address, Payment(address=destination, lovelace=4_000_000))

        assert len(body.inputs) == 2
        assert body.total_output + body.fee == 5_000_000

    def test_auxiliary_data_hash(
        self,
        params: ProtocolParameters,
        make_utxo: Callable[..., UTxO],
        sender_address: str,
        destination: str,
    ) -> None:
        builder = TransactionBuilder(params)
        aux = AuxiliaryData.message("invoice 42")
        payment = Payment(address=destination, lovelace=1_000_000)

        plain = builder.build([make_utxo(1_500_000)], sender_address, payment)
        with_message = builder.build(
            [make_utxo(1_500_000)], sender_address, payment, auxiliary_data=aux
        )

        assert with_message.auxiliary_data_hash == aux.hash
        assert with_message.fee > plain.fee

    def test_same_inputs_same_body(
        self,
        params: ProtocolParameters,
        make_utxo: Callable[..., UTxO],
        sender_address: str,
        destination: str,
    ) -> None:
        builder = TransactionBuilder(params)
        utxo = make_utxo(1_500_000)
        payment = Payment(address=destination, lovelace=1_000_000)

        first = builder.build([utxo], sender_address, payment, ttl=100)
        second = builder.build([utxo], sender_address, payment, ttl=100)
        assert first.raw == second.raw
        assert first.tx_id == second.tx_id

    def test_hex_round_trip(
        self,
        params: ProtocolParameters,
        make_utxo: Callable[..., UTxO],
        sender_address: str,
        destination: str,
    ) -> None:
        builder = TransactionBuilder(params)
        body = builder.build(
            [make_utxo(1_500_000)], sender_address, Payment(address=destination, lovelace=1_000_000)
        )
        assert TransactionBody.from_hex(body.to_hex()) == body


class TestBuildErrors:
    def test_no_inputs(self, params: ProtocolParameters, sender_address: str, destination: str) -> None:
        with pytest.raises(InsufficientFunds):
            TransactionBuilder(params).build(
                [], sender_address, Payment(address=destination, lovelace=1_000_000)
            )

    def test_inputs_do_not_cover_fee(
        self,
        params: ProtocolParameters,
        make_utxo: Callable[..., UTxO],
        sender_address: str,
        destination: str,
    ) -> None:
        with pytest.raises(InsufficientFunds):
            TransactionBuilder(params).build(
                [make_utxo(1_050_000)],
                sender_address,
                Payment(address=destination, lovelace=1_000_000),
            )

    def test_payment_below_minimum(
        self,
        params: ProtocolParameters,
        make_utxo: Callable[..., UTxO],
        sender_address: str,
        destination: str,
    ) -> None:
        with pytest.raises(OutputTooSmall) as exc_info:
            TransactionBuilder(params).build(
                [make_utxo(5_000_000)],
                sender_address,
                Payment(address=destination, lovelace=100_000),
            )
        assert exc_info.value.minimum > 100_000

    def test_body_too_large(
        self, make_utxo: Callable[..., UTxO], sender_address: str, destination: str
    ) -> None:
        builder = TransactionBuilder(ProtocolParameters(coins_per_utxo_byte=1_000, max_tx_size=100))
        with pytest.raises(BodyTooLarge):
            builder.build(
                [make_utxo(1_500_000)],
                sender_address,
                Payment(address=destination, lovelace=1_000_000),
            )

    def test_value_too_large(
        self, make_utxo: Callable[..., UTxO], sender_address: str, destination: str
    ) -> None:
        builder = TransactionBuilder(ProtocolParameters(coins_per_utxo_byte=1_000, max_value_size=4))
        with pytest.raises(ValueTooLarge):
            builder.build(
                [make_utxo(1_500_000)],
                sender_address,
                Payment(address=destination, lovelace=1_000_000),
            )
