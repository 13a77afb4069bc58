"""
Balance Engine Package

Pure, UI-free functions over splits for one observer:
aggregation, settlement classification and debt allocation.
"""

from splitledger.balances.aggregator import compute_ledger_stats, compute_stats
from splitledger.balances.classifier import (
    classify_row,
    classify_split,
    classify_splits,
)
from splitledger.balances.debts import compute_debts

__all__ = [
    "classify_row",
    "classify_split",
    "classify_splits",
    "compute_debts",
    "compute_ledger_stats",
    "compute_stats",
]
