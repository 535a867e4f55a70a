"""
Error taxonomy for the payment pipeline.

Every error carries a short ``user_message`` suitable for display. Selection and build
failures end the attempt before anything reaches the network; signing and submission
failures are reported as-is and never retried automatically.
"""

from __future__ import annotations


class WalletError(Exception):
    """Base class for all payment pipeline failures."""

    user_message = "Wallet operation failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.user_message
        super().__init__(self.detail)


class InsufficientFunds(WalletError):
    user_message = "Not enough ADA to cover the payment and fee"

    def __init__(self, required: int, available: int, detail: str | None = None):
        self.required = required
        self.available = available
        super().__init__(detail or f"Insufficient funds: need {required}, have {available}")


class BodyTooLarge(WalletError):
    user_message = "Transaction is too large"


class ValueTooLarge(WalletError):
    user_message = "Output value is too large"


class OutputTooSmall(WalletError):
    user_message = "Amount is below the minimum ADA an output must hold"

    def __init__(self, value: int, minimum: int):
        self.value = value
        self.minimum = minimum
        super().__init__(f"Output of {value} lovelace is below the minimum of {minimum}")


class SignerUnavailable(WalletError):
    user_message = "Wallet extension is not available"


class SigningRejected(WalletError):
    user_message = "Signing was rejected"


class WitnessMismatch(WalletError):
    user_message = "Wallet returned signatures for a different transaction"


class SubmissionRejected(WalletError):
    user_message = "Network rejected the transaction"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Submission rejected: {reason}")


class NetworkError(WalletError):
    user_message = "Could not reach the network"


class AlreadyConnected(WalletError):
    user_message = "A wallet is already connected"


class NotConnected(WalletError):
    user_message = "No wallet is connected"
