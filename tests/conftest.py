"""Shared fixtures: an in-memory ledger client and split builders."""

import asyncio
from typing import Any, Optional

import pytest

from splitledger.config import AppSettings
from splitledger.models.ledger import (
    BillSplit,
    Group,
    Settlement,
    Transaction,
    UserIdentity,
)
from splitledger.services.ledger import (
    LedgerClientInterface,
    NotFoundError,
    TransportError,
)


def make_split(
    split_id: str = "s1",
    shares: Optional[dict] = None,
    paid: Optional[dict] = None,
    creator_id: str = "alice",
    total: Optional[str] = None,
    group_id: Optional[str] = "g1",
    name: Optional[str] = None,
) -> BillSplit:
    """Build a split from {user_id: share} and {user_id: paid} maps."""
    shares = shares or {"alice": "50", "bob": "50"}
    paid = paid or {}
    if total is None:
        total = str(sum(float(v) for v in shares.values()))
    return BillSplit(
        id=split_id,
        group_id=group_id,
        name=name or f"Split {split_id}",
        total_amount=total,
        creator_id=creator_id,
        participants=[
            {"user_id": user_id, "share_amount": share, "paid_amount": paid.get(user_id, "0")}
            for user_id, share in shares.items()
        ],
    )


class FakeLedgerClient(LedgerClientInterface):
    """In-memory ledger with call counters and failure injection."""

    def __init__(
        self,
        groups: Optional[list] = None,
        splits: Optional[list] = None,
        settlements: Optional[list] = None,
        users: Optional[dict] = None,
    ):
        self.groups = list(groups or [])
        self.splits = list(splits or [])
        self.settlements = list(settlements or [])
        self.users = dict(users or {})
        self.transactions: list[Transaction] = []
        self.calls: dict[str, int] = {}
        self.search_queries: list[str] = []
        self.updated_splits: list[tuple[str, dict]] = []
        self.list_error: Optional[Exception] = None
        self.failing_users: set[str] = set()
        self.lookup_delays: dict[str, float] = {}
        self.gate: Optional[asyncio.Event] = None

    def _count(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    async def _list(self, name: str, items: list) -> list:
        self._count(name)
        if self.gate is not None:
            await self.gate.wait()
        if self.list_error is not None:
            raise self.list_error
        return list(items)

    async def list_groups(self) -> list[Group]:
        return await self._list("list_groups", self.groups)

    async def list_bill_splits(self) -> list[BillSplit]:
        return await self._list("list_bill_splits", self.splits)

    async def list_settlements(self) -> list[Settlement]:
        return await self._list("list_settlements", self.settlements)

    async def search_users(self, query: str) -> list[UserIdentity]:
        self._count("search_users")
        self.search_queries.append(query)
        await asyncio.sleep(self.lookup_delays.get(query, 0))
        if query in self.failing_users:
            raise TransportError(f"lookup for {query} timed out")
        if query in self.users:
            return [UserIdentity(id=query, name=self.users[query])]
        return []

    async def get_group(self, group_id: str) -> Group:
        self._count("get_group")
        for group in self.groups:
            if group.id == group_id:
                return group
        raise NotFoundError("group", group_id)

    async def get_bill_split(self, split_id: str) -> BillSplit:
        self._count("get_bill_split")
        for split in self.splits:
            if split.id == split_id:
                return split
        raise NotFoundError("bill_split", split_id)

    async def update_bill_split(self, split_id: str, payload: dict[str, Any]) -> Optional[BillSplit]:
        self._count("update_bill_split")
        self.updated_splits.append((split_id, payload))
        for index, split in enumerate(self.splits):
            if split.id == split_id:
                updated = BillSplit.model_validate({**payload, "id": split_id, "creator_id": split.creator_id})
                self.splits[index] = updated
                return updated
        raise NotFoundError("bill_split", split_id)

    async def add_settlement(self, settlement: Settlement) -> Settlement:
        self._count("add_settlement")
        stored = settlement.model_copy(update={"id": f"set{len(self.settlements) + 1}"})
        self.settlements.append(stored)
        return stored

    async def list_transactions(self) -> list[Transaction]:
        self._count("list_transactions")
        return list(self.transactions)

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        self._count("add_transaction")
        stored = transaction.model_copy(update={"id": f"t{len(self.transactions) + 1}"})
        self.transactions.append(stored)
        return stored

    async def update_transaction(self, transaction_id: str, transaction: Transaction) -> Transaction:
        self._count("update_transaction")
        stored = transaction.model_copy(update={"id": transaction_id})
        self.transactions = [stored if t.id == transaction_id else t for t in self.transactions]
        return stored

    async def delete_transaction(self, transaction_id: str) -> None:
        self._count("delete_transaction")
        if not any(t.id == transaction_id for t in self.transactions):
            raise NotFoundError("transaction", transaction_id)
        self.transactions = [t for t in self.transactions if t.id != transaction_id]


@pytest.fixture
def app_settings():
    return AppSettings(_env_file=None)


@pytest.fixture
def fake_client():
    return FakeLedgerClient(
        groups=[Group(id="g1", name="Trip", members=["alice", "bob"], type="trip")],
        splits=[make_split("s1", paid={"alice": "50"})],
        users={"alice": "Alice", "bob": "Bob", "carol": "Carol"},
    )
