"""
Signing agents.

- LocalSigningAgent: In-memory ed25519 key (development and tests)
- BrowserBridgeAgent: Wallet extension in a browser page, reached over HTTP
"""

from adawallet.signers.base import SignerHandle, SigningAgent, error_from_cip30
from adawallet.signers.bridge import BrowserBridgeAgent, SigningRequest
from adawallet.signers.local import LocalSigningAgent

__all__ = [
    "BrowserBridgeAgent",
    "LocalSigningAgent",
    "SignerHandle",
    "SigningAgent",
    "SigningRequest",
    "error_from_cip30",
]
