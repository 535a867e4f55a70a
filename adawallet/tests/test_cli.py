"""
Tests for the ada-wallet CLI with a mocked chain backend.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from adacore.exceptions import NetworkError
from adacore.models import AddressSummary, UTxO
from adacore.transaction import (
    Transaction,
    TransactionBody,
    TransactionInput,
    TransactionOutput,
)
from loguru import logger
from pydantic import ValidationError
from typer.testing import CliRunner

from adawallet.cli import app
from adawallet.signers.local import LocalSigningAgent

runner = CliRunner()

SEED_HEX = bytes(range(32)).hex()


@pytest.fixture
def mock_backend(backend: AsyncMock) -> Iterator[AsyncMock]:
    with patch("adawallet.cli.create_backend", return_value=backend):
        yield backend


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    monkeypatch.delenv("ADA_WALLET_SEED", raising=False)
    monkeypatch.delenv("BLOCKFROST_NETWORK", raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    # Commands point loguru at the runner's captured stderr
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def signed_tx_hex(destination: str) -> str:
    body = TransactionBody(
        inputs=(TransactionInput("ab" * 32, 0),),
        outputs=(TransactionOutput.to_address(destination, 2_000_000),),
        fee=170_000,
    )
    return Transaction(body=body).to_hex()


class TestQueries:
    def test_summary(
        self, mock_backend: AsyncMock, make_utxo: Callable[..., UTxO], sender_address: str
    ) -> None:
        mock_backend.get_address_summary.return_value = AddressSummary.from_utxos(
            sender_address, [make_utxo(1_500_000)]
        )

        result = runner.invoke(app, ["summary", sender_address])

        assert result.exit_code == 0, result.output
        assert "1,500,000 lovelace" in result.stdout
        assert "1.500000 ADA" in result.stdout
        mock_backend.close.assert_awaited_once()

    def test_utxos(
        self, mock_backend: AsyncMock, make_utxo: Callable[..., UTxO], sender_address: str
    ) -> None:
        utxo = make_utxo(2_000_000)
        mock_backend.get_utxos.return_value = [utxo]

        result = runner.invoke(app, ["utxos", sender_address])

        assert result.exit_code == 0, result.output
        assert utxo.outpoint in result.stdout

    def test_no_utxos(self, mock_backend: AsyncMock, sender_address: str) -> None:
        result = runner.invoke(app, ["utxos", sender_address])
        assert result.exit_code == 0
        assert "No UTxOs found" in result.stdout

    def test_params(self, mock_backend: AsyncMock) -> None:
        result = runner.invoke(app, ["params"])
        assert result.exit_code == 0, result.output
        assert "min_fee_a" in result.stdout

    def test_network_error(self, mock_backend: AsyncMock, sender_address: str) -> None:
        mock_backend.get_utxos.side_effect = NetworkError("timeout")
        result = runner.invoke(app, ["utxos", sender_address])
        assert result.exit_code == 1
        mock_backend.close.assert_awaited_once()

    def test_network_override(self, backend: AsyncMock) -> None:
        with patch("adawallet.cli.create_backend", return_value=backend) as create:
            result = runner.invoke(app, ["params", "--network", "mainnet"])

        assert result.exit_code == 0, result.output
        settings = create.call_args.args[0]
        assert settings.blockfrost_network == "mainnet"
        assert settings.get_blockfrost_url() == "https://cardano-mainnet.blockfrost.io/api/v0"

    def test_unknown_network(self, mock_backend: AsyncMock) -> None:
        result = runner.invoke(app, ["params", "--network", "testnet"])
        assert result.exit_code == 1
        assert not isinstance(result.exception, ValidationError)
        mock_backend.get_protocol_parameters.assert_not_awaited()

    def test_unknown_network_in_environment(self, mock_backend: AsyncMock) -> None:
        result = runner.invoke(app, ["params"], env={"BLOCKFROST_NETWORK": "testnet"})
        assert result.exit_code == 1
        assert not isinstance(result.exception, ValidationError)


class TestSubmit:
    def test_submit(self, mock_backend: AsyncMock, signed_tx_hex: str) -> None:
        result = runner.invoke(app, ["submit", signed_tx_hex])

        assert result.exit_code == 0, result.output
        assert Transaction.from_hex(signed_tx_hex).tx_id in result.stdout

    def test_submit_from_file(
        self, mock_backend: AsyncMock, signed_tx_hex: str, tmp_path: Path
    ) -> None:
        tx_file = tmp_path / "tx.signed"
        tx_file.write_text(signed_tx_hex + "\n")

        result = runner.invoke(app, ["submit", "--file", str(tx_file)])

        assert result.exit_code == 0, result.output
        mock_backend.submit_transaction.assert_awaited_once_with(bytes.fromhex(signed_tx_hex))

    def test_missing_file(self, mock_backend: AsyncMock, tmp_path: Path) -> None:
        result = runner.invoke(app, ["submit", "--file", str(tmp_path / "missing")])
        assert result.exit_code == 1

    def test_no_transaction(self, mock_backend: AsyncMock) -> None:
        result = runner.invoke(app, ["submit"])
        assert result.exit_code == 1

    def test_invalid_transaction(self, mock_backend: AsyncMock) -> None:
        result = runner.invoke(app, ["submit", "nothex"])
        assert result.exit_code == 1
        mock_backend.submit_transaction.assert_not_awaited()


class TestAddress:
    def test_from_seed(self, agent: LocalSigningAgent) -> None:
        result = runner.invoke(app, ["address", "--seed", SEED_HEX])
        assert result.exit_code == 0, result.output
        assert agent.address in result.stdout
        assert "Seed:" not in result.stdout

    def test_seed_from_environment(self, agent: LocalSigningAgent) -> None:
        result = runner.invoke(app, ["address"], env={"ADA_WALLET_SEED": SEED_HEX})
        assert result.exit_code == 0, result.output
        assert agent.address in result.stdout

    def test_generated(self) -> None:
        result = runner.invoke(app, ["address"])
        assert result.exit_code == 0, result.output
        assert "Seed:" in result.stdout
        assert "addr_test1" in result.stdout

    def test_mainnet(self) -> None:
        result = runner.invoke(app, ["address", "--seed", SEED_HEX, "--network", "mainnet"])
        assert result.exit_code == 0, result.output
        assert "addr1" in result.stdout

    @pytest.mark.parametrize("seed", ["abcd", "zz" * 32])
    def test_invalid_seed(self, seed: str) -> None:
        result = runner.invoke(app, ["address", "--seed", seed])
        assert result.exit_code == 1


class TestSend:
    def test_send(
        self,
        mock_backend: AsyncMock,
        make_utxo: Callable[..., UTxO],
        destination: str,
    ) -> None:
        mock_backend.get_utxos.return_value = [make_utxo(5_000_000)]

        result = runner.invoke(
            app, ["send", destination, "1.5", "--seed", SEED_HEX, "--message", "hi", "--yes"]
        )

        assert result.exit_code == 0, result.output
        submitted = Transaction.from_cbor(mock_backend.submit_transaction.await_args.args[0])
        assert submitted.body.outputs[0].lovelace == 1_500_000
        assert submitted.auxiliary_data is not None
        assert submitted.tx_id in result.stdout
        mock_backend.close.assert_awaited_once()

    def test_confirmed(
        self, mock_backend: AsyncMock, make_utxo: Callable[..., UTxO], destination: str
    ) -> None:
        mock_backend.get_utxos.return_value = [make_utxo(5_000_000)]

        result = runner.invoke(app, ["send", destination, "2", "--seed", SEED_HEX], input="y\n")

        assert result.exit_code == 0, result.output
        assert "Sign and submit?" in result.stdout
        mock_backend.submit_transaction.assert_awaited_once()

    def test_declined(
        self, mock_backend: AsyncMock, make_utxo: Callable[..., UTxO], destination: str
    ) -> None:
        mock_backend.get_utxos.return_value = [make_utxo(5_000_000)]

        result = runner.invoke(app, ["send", destination, "2", "--seed", SEED_HEX], input="n\n")

        assert result.exit_code == 1
        mock_backend.submit_transaction.assert_not_awaited()

    def test_insufficient_funds(
        self, mock_backend: AsyncMock, make_utxo: Callable[..., UTxO], destination: str
    ) -> None:
        mock_backend.get_utxos.return_value = [make_utxo(1_000_000)]

        result = runner.invoke(app, ["send", destination, "2", "--seed", SEED_HEX, "--yes"])

        assert result.exit_code == 1
        mock_backend.submit_transaction.assert_not_awaited()

    def test_requires_seed(self, mock_backend: AsyncMock, destination: str) -> None:
        result = runner.invoke(app, ["send", destination, "2"])
        assert result.exit_code == 1

    @pytest.mark.parametrize("amount", ["abc", "-1", "0.0000001"])
    def test_invalid_amount(self, mock_backend: AsyncMock, destination: str, amount: str) -> None:
        result = runner.invoke(app, ["send", destination, amount, "--seed", SEED_HEX])
        assert result.exit_code != 0
        mock_backend.get_utxos.assert_not_awaited()
