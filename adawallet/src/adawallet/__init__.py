"""
adawallet - Cardano payments signed by an external wallet.
"""

__version__ = "0.1.0"
