"""
Debt Allocation

For every split where the observer still owes, allocate that amount across
the participants who overpaid, in proportion to what each is still owed
(net of settlements the observer already made to them on that split).

Allocations are whole cents and sum exactly to what is being settled: each
share is rounded down and the leftover cents go to the largest remainders.

This is per-split allocation only; there is no cross-split netting.
"""

from collections import defaultdict
from decimal import ROUND_DOWN, Decimal
from typing import Iterable, Sequence

from splitledger.models.ledger import Debt, EnrichedSplit, Settlement
from splitledger.money import CENT, ZERO


def compute_debts(
    splits: Sequence[EnrichedSplit],
    settlements: Iterable[Settlement],
    observer_id: str,
) -> list[Debt]:
    """
    List what the observer owes, per split and payee.

    Returns:
        Debts in split order, then participant order
    """
    observer_id = str(observer_id)
    settled = _settled_by_observer(settlements, observer_id)
    debts: list[Debt] = []

    for split in splits:
        participant = split.participant_for(observer_id)
        if participant is None:
            continue
        owed = participant.amount_owed
        if owed <= 0:
            continue

        already = settled.get(split.id, {})
        payees = []
        for other in split.participants:
            if other.user_id == observer_id:
                continue
            owed_to = max(ZERO, -other.amount_owed - already.get(other.user_id, ZERO))
            if owed_to > 0:
                payees.append((other, owed_to))

        if not payees:
            continue

        total_owed_to_others = sum((amount for _, amount in payees), ZERO)
        amounts = allocate_cents(
            min(owed, total_owed_to_others),
            [amount for _, amount in payees],
        )

        for (payee, _), amount in zip(payees, amounts):
            if amount > 0:
                debts.append(
                    Debt(
                        split_id=split.id,
                        split_name=split.name,
                        group_id=split.group_id,
                        payee_id=payee.user_id,
                        payee_name=payee.name,
                        amount=amount,
                    )
                )

    return debts


def allocate_cents(total: Decimal, weights: Sequence[Decimal]) -> list[Decimal]:
    """
    Split total into whole cents in proportion to weights.

    The parts always sum to total. Ties on the remainder go to the earlier
    weight.
    """
    weight_sum = sum(weights, ZERO)
    if weight_sum <= 0:
        return [ZERO for _ in weights]

    exact = [total * weight / weight_sum for weight in weights]
    parts = [value.quantize(CENT, rounding=ROUND_DOWN) for value in exact]

    leftover = int((total - sum(parts, ZERO)) / CENT)
    by_remainder = sorted(
        range(len(parts)),
        key=lambda i: exact[i] - parts[i],
        reverse=True,
    )
    for i in by_remainder[:leftover]:
        parts[i] += CENT
    return parts


def _settled_by_observer(
    settlements: Iterable[Settlement],
    observer_id: str,
) -> dict[str, dict[str, Decimal]]:
    """split_id -> payee_id -> amount the observer has already settled."""
    settled: dict[str, dict[str, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))
    for settlement in settlements:
        if settlement.payer_id == observer_id:
            settled[settlement.split_id][settlement.payee_id] += settlement.amount
    return settled
