"""Tests for per-split debt allocation."""

from decimal import Decimal

import pytest

from conftest import make_split
from splitledger.balances import compute_debts
from splitledger.balances.debts import allocate_cents
from splitledger.models import EnrichedSplit, Settlement
from splitledger.money import ZERO


def enriched(split):
    """Attach title-cased names so the split can be allocated against."""
    data = split.model_dump()
    for participant in data["participants"]:
        participant["name"] = participant["user_id"].title()
    return EnrichedSplit.model_validate(data)


class TestComputeDebts:
    """Allocation of what the observer owes across overpaid participants."""

    def test_single_payee(self):
        split = enriched(make_split(paid={"alice": "100"}))
        debts = compute_debts([split], [], "bob")
        assert len(debts) == 1
        debt = debts[0]
        assert debt.payee_id == "alice"
        assert debt.payee_name == "Alice"
        assert debt.amount == Decimal("50.00")
        assert debt.split_id == "s1"
        assert debt.group_id == "g1"

    def test_proportional_allocation(self):
        split = enriched(
            make_split(
                shares={"alice": "30", "bob": "30", "carol": "40"},
                paid={"alice": "55", "bob": "45"},
            )
        )
        debts = compute_debts([split], [], "carol")
        assert [(d.payee_id, d.amount) for d in debts] == [
            ("alice", Decimal("25.00")),
            ("bob", Decimal("15.00")),
        ]

    def test_allocation_rounds_to_cents(self):
        split = enriched(
            make_split(
                shares={"alice": "10", "bob": "10", "carol": "10"},
                paid={"alice": "20", "bob": "30"},
            )
        )
        debts = compute_debts([split], [], "carol")
        assert [d.amount for d in debts] == [Decimal("3.33"), Decimal("6.67")]

    def test_allocations_never_exceed_what_is_owed(self):
        """A one-cent debt split between two equal payees is one debt of one cent."""
        split = enriched(
            make_split(
                shares={"carol": "0.01", "alice": "0.01", "bob": "0.01"},
                paid={"alice": "0.02", "bob": "0.02"},
            )
        )
        debts = compute_debts([split], [], "carol")
        assert [(d.payee_id, d.amount) for d in debts] == [("alice", Decimal("0.01"))]

    def test_allocations_sum_to_owed_amount(self):
        split = enriched(
            make_split(
                shares={"dave": "10", "alice": "10", "bob": "10", "carol": "10"},
                paid={"alice": "20", "bob": "20", "carol": "20"},
            )
        )
        debts = compute_debts([split], [], "dave")
        assert [d.amount for d in debts] == [Decimal("3.34"), Decimal("3.33"), Decimal("3.33")]
        assert sum(d.amount for d in debts) == Decimal("10.00")

    def test_prior_settlements_reduce_payee_balance(self):
        split = enriched(
            make_split(
                shares={"alice": "30", "bob": "30", "carol": "40"},
                paid={"alice": "60", "bob": "40"},
            )
        )
        settlements = [Settlement(split_id="s1", amount="30", payer_id="carol", payee_id="alice")]
        debts = compute_debts([split], settlements, "carol")
        assert [(d.payee_id, d.amount) for d in debts] == [("bob", Decimal("10.00"))]

    def test_nobody_overpaid_means_no_debts(self):
        """The observer owes, but nobody has fronted the money yet."""
        split = enriched(make_split(paid={"alice": "50"}))
        assert compute_debts([split], [], "bob") == []

    def test_observer_not_owing(self):
        split = enriched(make_split(paid={"alice": "100"}))
        assert compute_debts([split], [], "alice") == []
        assert compute_debts([split], [], "zed") == []

    def test_split_order_preserved(self):
        splits = [
            enriched(make_split("s2", paid={"alice": "100"})),
            enriched(make_split("s1", paid={"alice": "100"})),
        ]
        assert [d.split_id for d in compute_debts(splits, [], "bob")] == ["s2", "s1"]


class TestAllocateCents:
    """Largest-remainder rounding."""

    def test_parts_sum_to_total(self):
        parts = allocate_cents(Decimal("100.00"), [Decimal("1"), Decimal("1"), Decimal("1")])
        assert parts == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]

    def test_leftover_goes_to_largest_remainder(self):
        parts = allocate_cents(Decimal("10.00"), [Decimal("10"), Decimal("20")])
        assert parts == [Decimal("3.33"), Decimal("6.67")]

    def test_zero_weights(self):
        assert allocate_cents(Decimal("5.00"), [ZERO, ZERO]) == [ZERO, ZERO]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
