"""
Largest-first coin selection.

UTxOs are taken in descending lovelace order until they cover the target plus the
estimated fee for a transaction with that many inputs. Other strategies can be swapped in
as long as the builder receives enough value.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from adacore.exceptions import InsufficientFunds
from adacore.models import UTxO
from loguru import logger

from adawallet.wallet.models import CoinSelection

# (num_inputs, num_outputs) -> fee in lovelace
FeeEstimator = Callable[[int, int], int]


def spendable_utxos(utxos: Sequence[UTxO]) -> list[UTxO]:
    """UTxOs eligible for selection: some lovelace and no native assets."""
    return [u for u in utxos if u.lovelace > 0 and not u.has_assets]


def select_largest_first(
    utxos: Sequence[UTxO],
    target: int,
    fee_estimator: FeeEstimator,
    num_outputs: int = 2,
) -> CoinSelection:
    """
    Select UTxOs covering ``target`` plus fee, largest first.

    Ties keep their original order (stable sort). Multi-asset UTxOs are never
    selected.

    Raises:
        InsufficientFunds: All spendable UTxOs together do not cover target + fee
    """
    if target <= 0:
        raise ValueError("Target must be positive")

    candidates = sorted(spendable_utxos(utxos), key=lambda u: u.lovelace, reverse=True)

    selected: list[UTxO] = []
    total = 0
    fee = fee_estimator(1, num_outputs)

    for utxo in candidates:
        selected.append(utxo)
        total += utxo.lovelace
        fee = fee_estimator(len(selected), num_outputs)
        if total >= target + fee:
            logger.debug(
                f"Selected {len(selected)} of {len(candidates)} UTxOs: "
                f"total={total}, target={target}, fee~{fee}"
            )
            return CoinSelection(utxos=selected, total_value=total, target=target, fee=fee)

    skipped = len(utxos) - len(candidates)
    if skipped:
        logger.debug(f"Skipped {skipped} UTxOs without spendable lovelace or with assets")
    raise InsufficientFunds(required=target + fee, available=total)
