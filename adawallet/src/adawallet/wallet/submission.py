"""
Submission client: sends signed transactions to the chain backend.

Stateless. Consumed UTxOs are not tracked here; callers refresh their UTxO and balance
view after a successful submission. Nothing is retried: after an unknown-outcome failure
the caller must re-check UTxO state before resubmitting.
"""

from __future__ import annotations

from adacore.cbor import CBORDecodeError
from adacore.transaction import Transaction, transaction_id
from loguru import logger

from adawallet.backends.base import ChainBackend


class SubmissionClient:
    def __init__(self, backend: ChainBackend):
        self.backend = backend

    async def submit(self, tx: Transaction) -> str:
        """
        Submit a signed transaction.

        Returns:
            Transaction hash

        Raises:
            SubmissionRejected: The ledger rejected the transaction
            NetworkError: The backend could not be reached
        """
        return await self._submit_bytes(tx.to_cbor(), tx.tx_id)

    async def submit_hex(self, tx_hex: str) -> str:
        """
        Submit a hex-encoded signed transaction as-is.

        Raises:
            ValueError: Not hex or not a transaction
        """
        try:
            tx_bytes = bytes.fromhex(tx_hex.strip())
        except ValueError as e:
            raise ValueError(f"Transaction is not valid hex: {e}") from e
        if not tx_bytes:
            raise ValueError("Transaction is empty")
        try:
            local_id = transaction_id(tx_bytes)
        except CBORDecodeError as e:
            raise ValueError(f"Not a transaction: {e}") from e
        return await self._submit_bytes(tx_bytes, local_id)

    async def _submit_bytes(self, tx_bytes: bytes, local_id: str) -> str:
        logger.info(f"Submitting transaction {local_id} ({len(tx_bytes)} bytes)")
        tx_hash = await self.backend.submit_transaction(tx_bytes)
        if tx_hash != local_id:
            logger.warning(f"Backend reported hash {tx_hash}, computed {local_id}")
        return tx_hash
