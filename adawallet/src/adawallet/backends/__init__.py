"""
Chain backend implementations.

Available backends:
- BlockfrostBackend: Hosted Blockfrost API (mainnet, preprod, preview)
"""

from adawallet.backends.base import ChainBackend
from adawallet.backends.blockfrost import BlockfrostBackend

__all__ = [
    "BlockfrostBackend",
    "ChainBackend",
]
