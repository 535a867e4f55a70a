"""
Signing coordinator.

Hands a built body to the session's external signer and turns the answer into a signed
transaction. The body that ends up in the transaction is always the one that was sent;
witnesses are only merged after every signature has been checked against its hash.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from adacore import cbor
from adacore.exceptions import SignerUnavailable, SigningRejected, WalletError, WitnessMismatch
from adacore.transaction import AuxiliaryData, Transaction, TransactionBody, WitnessSet
from loguru import logger

from adawallet.wallet.session import WalletSession

DEFAULT_SIGNING_TIMEOUT = 300.0


class SigningCoordinator:
    """
    Coordinates one signing round trip with an external signer.

    Args:
        timeout: Seconds to wait for the signer (user approval included); None waits
            indefinitely
    """

    def __init__(self, timeout: float | None = DEFAULT_SIGNING_TIMEOUT):
        self.timeout = timeout

    async def sign(
        self,
        body: TransactionBody,
        session: WalletSession,
        auxiliary_data: AuxiliaryData | None = None,
        required_signers: Iterable[bytes] | None = None,
        partial_sign: bool = False,
    ) -> Transaction:
        """
        Get ``body`` signed by the session's signer.

        Raises:
            NotConnected: Session has no signer
            SigningRejected: User declined or the request timed out
            SignerUnavailable: Signer is unavailable or the session was disconnected
                mid-request
            WitnessMismatch: Returned witnesses do not sign this body
        """
        envelope = Transaction(body=body, auxiliary_data=auxiliary_data)
        tx_hex = envelope.to_hex()
        logger.info(f"Requesting signature for {body.tx_id}")

        async with session.signing_slot() as handle:
            try:
                response = await asyncio.wait_for(
                    handle.sign_tx(tx_hex, partial_sign), timeout=self.timeout
                )
            except asyncio.TimeoutError as e:
                logger.warning(f"Signing of {body.tx_id} timed out after {self.timeout}s")
                raise SigningRejected("Signing request timed out") from e
            except WalletError:
                raise
            except Exception as e:
                logger.error(f"Signer failed: {e}")
                raise SignerUnavailable(f"Signer failed: {e}") from e

            if session.handle is not handle:
                logger.warning(f"Session disconnected while {body.tx_id} was being signed")
                raise SignerUnavailable("Wallet disconnected during signing")

        witness_set = self._parse_response(response, body)
        self._verify_witnesses(witness_set, body, required_signers, partial_sign)

        signed = Transaction(
            body=body,
            witness_set=envelope.witness_set.merge(witness_set),
            auxiliary_data=auxiliary_data,
        )
        logger.info(
            f"Transaction {body.tx_id} signed with {len(witness_set.vkey_witnesses)} witnesses"
        )
        return signed

    @staticmethod
    def _parse_response(response: str, body: TransactionBody) -> WitnessSet:
        """
        Parse the signer's answer: a witness set, or a whole transaction whose body
        must be exactly the one sent.
        """
        try:
            raw = bytes.fromhex(response)
            value = cbor.loads(raw)
            if isinstance(value, list):
                items = cbor.split_array(raw)
                if len(items) < 2:
                    raise WitnessMismatch("Signer returned a malformed transaction")
                if items[0] != body.raw:
                    raise WitnessMismatch("Signer returned a different transaction body")
                return WitnessSet.from_cbor(items[1])
            return WitnessSet.from_primitive(value)
        except (ValueError, TypeError) as e:
            logger.error(f"Unparsable witness data from signer: {e}")
            raise WitnessMismatch(f"Signer returned invalid witness data: {e}") from e

    @staticmethod
    def _verify_witnesses(
        witness_set: WitnessSet,
        body: TransactionBody,
        required_signers: Iterable[bytes] | None,
        partial_sign: bool,
    ) -> None:
        if not witness_set.vkey_witnesses and not partial_sign:
            raise WitnessMismatch("Signer returned no signatures")

        message = body.hash
        for witness in witness_set.vkey_witnesses:
            if not witness.verify(message):
                logger.error(
                    f"Signature by {witness.key_hash.hex()} does not match {body.tx_id}"
                )
                raise WitnessMismatch("Signature does not match the transaction body")

        if required_signers is not None and not partial_sign:
            missing = set(required_signers) - witness_set.key_hashes
            if missing:
                raise WitnessMismatch(
                    f"Missing signatures for {len(missing)} required key(s): "
                    f"{', '.join(sorted(h.hex() for h in missing))}"
                )
