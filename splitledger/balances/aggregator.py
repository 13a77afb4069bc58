"""
Balance Aggregation

Pure functions that reduce a set of splits, relative to one observer, into
AggregateStats. No incremental state: every change to the split set is a
full recompute, and the result does not depend on split order.
"""

from decimal import Decimal
from typing import Iterable

from splitledger.models.ledger import AggregateStats, BillSplit, Settlement
from splitledger.money import ZERO


def compute_stats(splits: Iterable[BillSplit], observer_id: str) -> AggregateStats:
    """
    Observer balance from the observer's own participant rows.

    - amount_owed > 0 adds to total_owed (observer must still pay)
    - amount_owed < 0 adds |amount_owed| to total_owing (observer is owed back)
    - splits without an observer row contribute nothing
    - net_balance = total_owing - total_owed
    """
    observer_id = str(observer_id)
    total_owed = ZERO
    total_owing = ZERO

    for split in splits:
        participant = split.participant_for(observer_id)
        if participant is None:
            continue

        owed = participant.amount_owed
        if owed > 0:
            total_owed += owed
        elif owed < 0:
            total_owing += -owed

    return AggregateStats(
        total_owed=total_owed,
        total_owing=total_owing,
        net_balance=total_owing - total_owed,
    )


def compute_ledger_stats(
    splits: Iterable[BillSplit],
    settlements: Iterable[Settlement],
    observer_id: str,
) -> AggregateStats:
    """
    Creator-aware ledger balance, net of recorded settlements.

    1. The observer's unpaid share on each split adds to total_owed.
    2. On splits the observer created, every other participant's unpaid
       share adds to total_owing.
    3. Settlements paid by the observer reduce total_owed; settlements
       received reduce total_owing.

    net_balance is taken before the buckets are clamped at zero.
    """
    observer_id = str(observer_id)
    total_owed = ZERO
    total_owing = ZERO

    for split in splits:
        participant = split.participant_for(observer_id)
        if participant is None:
            continue

        if participant.amount_owed > 0:
            total_owed += participant.amount_owed

        if split.creator_id == observer_id:
            total_owing += _receivable(split, observer_id)

    for settlement in settlements:
        if settlement.payer_id == observer_id:
            total_owed -= settlement.amount
        elif settlement.payee_id == observer_id:
            total_owing -= settlement.amount

    return AggregateStats(
        total_owed=max(ZERO, total_owed),
        total_owing=max(ZERO, total_owing),
        net_balance=total_owing - total_owed,
    )


def _receivable(split: BillSplit, observer_id: str) -> Decimal:
    """Unpaid shares of everyone except the observer."""
    total = ZERO
    for participant in split.participants:
        if participant.user_id != observer_id and participant.amount_owed > 0:
            total += participant.amount_owed
    return total
