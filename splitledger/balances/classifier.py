"""
Settlement Classifier

Derives the three-state status (to_give, to_take, settled) of a split for
one observer.

Row rule (classify_row), for one participant row seen by the observer:

    owed == 0                      -> settled
    owed > 0, row is observer's    -> to_give
    owed > 0, observer is creator  -> to_take
    owed > 0, otherwise            -> to_give
    owed < 0                       -> same branches, to_give/to_take swapped

Split rule (classify_split): the observer's own row decides when it is not
even. When it is even (or missing) and the observer created the split, the
other participants' outstanding rows decide: unpaid shares are money due to
the creator (to_take), overpayments are refunds the creator owes (to_give).
Everything else is settled.
"""

from decimal import Decimal
from typing import Iterable

from splitledger.models.ledger import (
    BillSplit,
    Participant,
    SettlementStatus,
    SplitClassification,
)
from splitledger.money import ZERO

_SWAP = {
    SettlementStatus.TO_GIVE: SettlementStatus.TO_TAKE,
    SettlementStatus.TO_TAKE: SettlementStatus.TO_GIVE,
}


def classify_row(
    split: BillSplit,
    participant: Participant,
    observer_id: str,
) -> SettlementStatus:
    """Status of one participant row as seen by the observer."""
    observer_id = str(observer_id)
    owed = participant.amount_owed
    if owed == 0:
        return SettlementStatus.SETTLED

    if participant.user_id == observer_id:
        status = SettlementStatus.TO_GIVE
    elif split.creator_id == observer_id:
        status = SettlementStatus.TO_TAKE
    else:
        status = SettlementStatus.TO_GIVE

    return status if owed > 0 else _SWAP[status]


def classify_split(split: BillSplit, observer_id: str) -> SplitClassification:
    """Status and outstanding amount of a split for the observer."""
    observer_id = str(observer_id)
    participant = split.participant_for(observer_id)

    if participant is not None and participant.amount_owed != 0:
        return SplitClassification(
            split_id=split.id,
            status=classify_row(split, participant, observer_id),
            amount=abs(participant.amount_owed),
        )

    if split.creator_id == observer_id:
        receivable, refundable = _counterparty_balance(split, observer_id)
        if receivable > 0:
            return SplitClassification(
                split_id=split.id,
                status=SettlementStatus.TO_TAKE,
                amount=receivable,
            )
        if refundable > 0:
            return SplitClassification(
                split_id=split.id,
                status=SettlementStatus.TO_GIVE,
                amount=refundable,
            )

    return SplitClassification(split_id=split.id, status=SettlementStatus.SETTLED)


def classify_splits(
    splits: Iterable[BillSplit],
    observer_id: str,
) -> list[SplitClassification]:
    return [classify_split(split, observer_id) for split in splits]


def _counterparty_balance(split: BillSplit, observer_id: str) -> tuple[Decimal, Decimal]:
    """(sum of others' unpaid shares, sum of others' overpayments)."""
    receivable = ZERO
    refundable = ZERO
    for participant in split.participants:
        if participant.user_id == observer_id:
            continue
        owed = participant.amount_owed
        if owed > 0:
            receivable += owed
        elif owed < 0:
            refundable += -owed
    return receivable, refundable
