"""
Signing agent interface.

Mirrors the CIP-30 wallet bridge: ``enable()`` hands out a handle, and the handle signs
transactions it receives as hex, returning a hex witness set. Private keys never leave
the agent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any

from adacore.exceptions import SignerUnavailable, SigningRejected, WalletError


class APIErrorCode(IntEnum):
    """CIP-30 APIError codes"""

    INVALID_REQUEST = -1
    INTERNAL_ERROR = -2
    REFUSED = -3
    ACCOUNT_CHANGE = -4


class TxSignErrorCode(IntEnum):
    """CIP-30 TxSignError codes"""

    PROOF_GENERATION = 1
    USER_DECLINED = 2


def error_from_cip30(error: dict[str, Any] | str) -> WalletError:
    """
    Map a CIP-30 error object (``{"code": ..., "info": ...}``) to a wallet error.

    The user declining is a rejection; everything else means the agent could not do
    what was asked.
    """
    if isinstance(error, str):
        return SigningRejected(error)

    code = error.get("code")
    info = str(error.get("info") or error.get("message") or "Signer error")

    if code == TxSignErrorCode.USER_DECLINED:
        return SigningRejected(f"User declined to sign: {info}")
    if code == APIErrorCode.REFUSED:
        return SignerUnavailable(f"Wallet refused access: {info}")
    if code == TxSignErrorCode.PROOF_GENERATION:
        return SigningRejected(f"Wallet cannot sign this transaction: {info}")
    if code == APIErrorCode.ACCOUNT_CHANGE:
        return SignerUnavailable(f"Wallet account changed: {info}")
    return SignerUnavailable(info)


class SignerHandle(ABC):
    """Capability returned by an enabled agent."""

    @abstractmethod
    async def get_change_address(self) -> str:
        """Address for change, hex or bech32"""

    @abstractmethod
    async def sign_tx(self, tx_hex: str, partial_sign: bool = False) -> str:
        """
        Sign a transaction.

        Args:
            tx_hex: Hex-encoded transaction with the body to sign
            partial_sign: Sign only what this agent can; do not fail on foreign inputs

        Returns:
            Hex-encoded witness set

        Raises:
            SigningRejected: The user declined
            SignerUnavailable: The agent is gone or broken
        """

    async def close(self) -> None:
        """Release the handle"""
        pass


class SigningAgent(ABC):
    """An external signer that can be enabled for a session."""

    name: str = "signer"

    @abstractmethod
    async def enable(self) -> SignerHandle:
        """
        Request access to the signer.

        Raises:
            SignerUnavailable: Agent missing or access refused
        """
