"""
End-to-end payment flow.

Runs one payment through the pipeline, strictly in sequence:
1. Fetch UTxOs, protocol parameters and the chain tip
2. Select inputs (largest first)
3. Build the body (fee, change, TTL, optional CIP-20 message)
4. Have the session's signer sign it
5. Submit, then reconcile the cached balance

A failure at any step ends the attempt; nothing is retried.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from adacore.address import decode_address, payment_key_hash
from adacore.models import Payment, UTxO
from adacore.transaction import AuxiliaryData, Transaction, TransactionBody
from loguru import logger

from adawallet.backends.base import ChainBackend
from adawallet.config import Settings, get_settings
from adawallet.wallet.coin_selection import select_largest_first
from adawallet.wallet.session import WalletSession
from adawallet.wallet.signing import SigningCoordinator
from adawallet.wallet.submission import SubmissionClient
from adawallet.wallet.tx_builder import TransactionBuilder


class PaymentState(str, Enum):
    """Payment flow states."""

    PENDING = "pending"
    SELECTING = "selecting"
    BUILDING = "building"
    SIGNING = "signing"
    SUBMITTING = "submitting"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class PaymentResult:
    """Outcome of a submitted payment."""

    tx_hash: str
    fee: int
    change: int
    inputs: list[str] = field(default_factory=list)
    balance: int = 0  # Expected balance of the sender once the transaction is in

    def to_dict(self) -> dict[str, Any]:
        return {
            "txHash": self.tx_hash,
            "fee": str(self.fee),
            "change": str(self.change),
            "inputs": self.inputs,
            "lovelace": str(self.balance),
        }


def required_signers(utxos: list[UTxO], sender_address: str) -> set[bytes]:
    """Payment key hashes that must sign for ``utxos``."""
    signers: set[bytes] = set()
    for utxo in utxos:
        key_hash = payment_key_hash(decode_address(utxo.address or sender_address))
        if key_hash is not None:
            signers.add(key_hash)
    return signers


class PaymentFlow:
    """
    Sends payments from the session's address.
    """

    def __init__(
        self,
        backend: ChainBackend,
        session: WalletSession,
        settings: Settings | None = None,
    ):
        self.backend = backend
        self.session = session
        self.settings = settings or get_settings()

        self.coordinator = SigningCoordinator(timeout=self.settings.signing_timeout)
        self.submission = SubmissionClient(backend)

        self.state = PaymentState.PENDING
        self.body: TransactionBody | None = None
        self.transaction: Transaction | None = None

    async def send(self, address: str, lovelace: int, message: str | None = None) -> PaymentResult:
        """
        Pay ``lovelace`` to ``address``.

        Raises:
            NotConnected: Session has no signer
            ValueError: Invalid destination or amount
            WalletError: Any pipeline failure (selection, build, signing, submission)
        """
        sender = self.session.require_connected()
        payment = Payment(address=address, lovelace=lovelace)
        auxiliary_data = AuxiliaryData.message(message) if message else None

        self.state = PaymentState.PENDING
        self.body = None
        self.transaction = None

        try:
            # Phase 1: Fetch chain state and select inputs
            self.state = PaymentState.SELECTING
            utxos = await self.backend.get_utxos(sender)
            params = await self.backend.get_protocol_parameters()
            tip = await self.backend.get_tip_slot()

            builder = TransactionBuilder(params)
            selection = select_largest_first(
                utxos,
                payment.lovelace,
                lambda n_in, n_out: builder.estimate_fee(n_in, n_out, auxiliary_data),
            )

            # Phase 2: Build
            self.state = PaymentState.BUILDING
            self.body = builder.build(
                selection.utxos,
                sender,
                payment,
                ttl=tip + self.settings.ttl_slots,
                auxiliary_data=auxiliary_data,
            )

            # Phase 3: Sign
            self.state = PaymentState.SIGNING
            self.transaction = await self.coordinator.sign(
                self.body,
                self.session,
                auxiliary_data=auxiliary_data,
                required_signers=required_signers(selection.utxos, sender),
            )

            # Phase 4: Submit
            self.state = PaymentState.SUBMITTING
            tx_hash = await self.submission.submit(self.transaction)

        except asyncio.CancelledError:
            self.state = PaymentState.FAILED
            raise
        except Exception as e:
            logger.error(f"Payment failed during {self.state.value}: {e}")
            self.state = PaymentState.FAILED
            raise

        self.state = PaymentState.COMPLETE
        result = self._reconcile(tx_hash, sender, utxos, selection.utxos, self.body)
        logger.info(
            f"Payment COMPLETE: {tx_hash} (fee {result.fee}, change {result.change})"
        )
        return result

    def _reconcile(
        self,
        tx_hash: str,
        sender: str,
        utxos: list[UTxO],
        spent: list[UTxO],
        body: TransactionBody,
    ) -> PaymentResult:
        """Expected sender balance: untouched UTxOs plus outputs back to the sender."""
        spent_outpoints = {u.outpoint for u in spent}
        remaining = sum(u.lovelace for u in utxos if u.outpoint not in spent_outpoints)

        sender_raw = decode_address(sender)
        returned = sum(out.lovelace for out in body.outputs if out.address == sender_raw)
        change = body.outputs[1].lovelace if len(body.outputs) > 1 else 0
        balance = remaining + returned

        # Skip if the session moved on while we were submitting
        if self.session.address == sender:
            self.session.set_balance(balance)

        return PaymentResult(
            tx_hash=tx_hash,
            fee=body.fee,
            change=change,
            inputs=[u.outpoint for u in spent],
            balance=balance,
        )
