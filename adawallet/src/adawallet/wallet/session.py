"""
Wallet session: the connected signer handle and the active address.

One session object is owned by the process (server or CLI run) and passed explicitly to
the operations that need it. Signing goes through ``signing_slot()``, which admits one
signing request at a time.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any

from adacore.address import AddressError, to_bech32
from adacore.exceptions import AlreadyConnected, NotConnected, SignerUnavailable, WalletError
from adacore.models import Amount
from loguru import logger

from adawallet.signers.base import SignerHandle, SigningAgent

if TYPE_CHECKING:
    from adawallet.backends.base import ChainBackend


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class WalletSession:
    """
    Process-local wallet session.

    Lifecycle: DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED
    """

    def __init__(self) -> None:
        self.state = SessionState.DISCONNECTED
        self.handle: SignerHandle | None = None
        self.address: str | None = None
        self.agent_name: str | None = None
        self.last_known_balance: Amount | None = None
        self._signing_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    @property
    def signing_in_progress(self) -> bool:
        return self._signing_lock.locked()

    async def connect(self, agent: SigningAgent) -> str:
        """
        Enable the agent and resolve the active address.

        Returns:
            Active address (bech32)

        Raises:
            AlreadyConnected: Session is connecting or connected
            SignerUnavailable: Agent could not be enabled or reported a bad address
        """
        if self.state != SessionState.DISCONNECTED:
            raise AlreadyConnected()

        self.state = SessionState.CONNECTING
        logger.info(f"Connecting to {agent.name} signer...")
        try:
            handle, address = await self._enable(agent)
        except BaseException:
            self.state = SessionState.DISCONNECTED
            raise

        self.handle = handle
        self.address = address
        self.agent_name = agent.name
        self.state = SessionState.CONNECTED
        logger.info(f"Wallet connected: {address}")
        return address

    async def _enable(self, agent: SigningAgent) -> tuple[SignerHandle, str]:
        try:
            handle = await agent.enable()
        except WalletError:
            raise
        except Exception as e:
            raise SignerUnavailable(f"Signer could not be enabled: {e}") from e

        try:
            address = to_bech32(await handle.get_change_address())
        except AddressError as e:
            await handle.close()
            raise SignerUnavailable(f"Signer reported an invalid address: {e}") from e
        except BaseException:
            await handle.close()
            raise
        return handle, address

    async def disconnect(self) -> None:
        """Release the signer handle and clear cached state."""
        handle = self.handle
        self.handle = None
        self.address = None
        self.agent_name = None
        self.last_known_balance = None
        self.state = SessionState.DISCONNECTED

        if handle is not None:
            await handle.close()
            logger.info("Wallet disconnected")

    def require_connected(self) -> str:
        """Active address, or NotConnected."""
        if self.state != SessionState.CONNECTED or self.address is None:
            raise NotConnected()
        return self.address

    @asynccontextmanager
    async def signing_slot(self) -> AsyncIterator[SignerHandle]:
        """
        Exclusive use of the signer handle.

        Further callers wait until the current holder leaves, including by
        cancellation.
        """
        self.require_connected()
        async with self._signing_lock:
            # The session may have been disconnected while waiting
            if self.handle is None:
                raise NotConnected()
            yield self.handle

    def set_balance(self, lovelace: int) -> Amount:
        self.last_known_balance = Amount.of_lovelace(lovelace)
        return self.last_known_balance

    async def refresh_balance(self, backend: ChainBackend) -> Amount:
        """Re-query the active address and update the cached balance."""
        address = self.require_connected()
        utxos = await backend.get_utxos(address)
        balance = self.set_balance(sum(u.lovelace for u in utxos))
        logger.debug(f"Balance of {address}: {balance.quantity} lovelace")
        return balance

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "address": self.address,
            "signer": self.agent_name,
            "lovelace": (
                str(self.last_known_balance.quantity)
                if self.last_known_balance is not None
                else None
            ),
            "signingInProgress": self.signing_in_progress,
        }
