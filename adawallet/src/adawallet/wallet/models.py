"""
Wallet data models.
"""

from __future__ import annotations

from dataclasses import dataclass

from adacore.models import UTxO


@dataclass
class CoinSelection:
    """Result of coin selection"""

    utxos: list[UTxO]
    total_value: int
    target: int
    fee: int  # Estimated; the builder computes the exact fee

    @property
    def change_value(self) -> int:
        return self.total_value - self.target - self.fee
