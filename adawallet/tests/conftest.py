"""
Test configuration for adawallet tests.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from adacore.address import TESTNET_NETWORK_ID, encode_address, enterprise_address
from adacore.models import Amount, ProtocolParameters, UTxO
from adacore.transaction import transaction_id

from adawallet.backends.base import ChainBackend
from adawallet.config import Settings
from adawallet.signers.local import LocalSigningAgent
from adawallet.wallet.session import WalletSession

# Test seeds (not for production use!)
SENDER_SEED = bytes(range(32))
OTHER_SEED = bytes(range(32, 64))

TIP_SLOT = 1_000


@pytest.fixture
def params() -> ProtocolParameters:
    """Mainnet fee constants with a lower per-byte UTxO cost so small change survives."""
    return ProtocolParameters(coins_per_utxo_byte=1_000)


@pytest.fixture
def agent() -> LocalSigningAgent:
    return LocalSigningAgent(SENDER_SEED)


@pytest.fixture
def sender_address(agent: LocalSigningAgent) -> str:
    return agent.address


@pytest.fixture
def destination() -> str:
    return encode_address(enterprise_address(bytes.fromhex("22" * 28), TESTNET_NETWORK_ID))


@pytest.fixture
def make_utxo(sender_address: str) -> Callable[..., UTxO]:
    """Factory for lovelace-only UTxOs at the sender address."""
    counter = iter(range(1, 1_000))

    def _make(lovelace: int, index: int = 0, address: str | None = None) -> UTxO:
        return UTxO(
            tx_hash=f"{next(counter):064x}",
            output_index=index,
            amount=(Amount.of_lovelace(lovelace),),
            address=address or sender_address,
        )

    return _make


@pytest.fixture
def settings() -> Settings:
    return Settings(blockfrost_project_id="test", signing_timeout=5.0)


@pytest.fixture
def backend(params: ProtocolParameters) -> AsyncMock:
    """Chain backend double; submissions answer with the transaction's own id."""
    mock = AsyncMock(spec=ChainBackend)
    mock.get_utxos.return_value = []
    mock.get_protocol_parameters.return_value = params
    mock.get_tip_slot.return_value = TIP_SLOT
    mock.submit_transaction.side_effect = transaction_id
    return mock


@pytest.fixture
async def session(agent: LocalSigningAgent) -> WalletSession:
    wallet_session = WalletSession()
    await wallet_session.connect(agent)
    return wallet_session


@pytest.fixture
def other_agent() -> LocalSigningAgent:
    return LocalSigningAgent(OTHER_SEED)
