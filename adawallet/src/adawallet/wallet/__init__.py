"""
Payment pipeline: coin selection, body building, signing, submission and the session.
"""

from adawallet.wallet.coin_selection import select_largest_first
from adawallet.wallet.models import CoinSelection
from adawallet.wallet.payment import PaymentFlow, PaymentResult, PaymentState
from adawallet.wallet.session import SessionState, WalletSession
from adawallet.wallet.signing import SigningCoordinator
from adawallet.wallet.submission import SubmissionClient
from adawallet.wallet.tx_builder import TransactionBuilder

__all__ = [
    "CoinSelection",
    "PaymentFlow",
    "PaymentResult",
    "PaymentState",
    "SessionState",
    "SigningCoordinator",
    "SubmissionClient",
    "TransactionBuilder",
    "WalletSession",
    "select_largest_first",
]
