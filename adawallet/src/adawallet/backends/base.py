"""
Base chain backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from adacore.models import AddressSummary, ProtocolParameters, UTxO


class ChainBackend(ABC):
    """
    Abstract chain indexer interface.

    Network calls are the only suspension points of the payment pipeline besides the
    signer: fetching UTxOs and submitting transactions.
    """

    @abstractmethod
    async def get_utxos(self, address: str) -> list[UTxO]:
        """Get UTxOs currently at an address"""

    @abstractmethod
    async def get_protocol_parameters(self) -> ProtocolParameters:
        """Get protocol parameters of the current epoch"""

    @abstractmethod
    async def get_tip_slot(self) -> int:
        """Get the slot of the latest block"""

    @abstractmethod
    async def submit_transaction(self, tx_bytes: bytes) -> str:
        """
        Submit a signed transaction.

        Returns:
            Transaction hash (hex)

        Raises:
            SubmissionRejected: The ledger rejected the transaction
            NetworkError: The transaction could not be delivered
        """

    async def get_address_summary(self, address: str) -> AddressSummary:
        """UTxOs plus lovelace total for an address."""
        utxos = await self.get_utxos(address)
        return AddressSummary.from_utxos(address, utxos)

    async def close(self) -> None:
        """Close backend connection"""
        pass
