"""
Abstract Ledger Client Interface

The remote ledger owns groups, bill splits, settlements and transactions.
This module defines the contract the engine consumes and the error taxonomy
every implementation must raise:

- TransportError: network failure, timeout or 5xx. Retryable.
- AuthError: missing or rejected credential. Never retried.
- NotFoundError: the entity no longer exists.
- LedgerRequestError: any other rejected request (4xx).

Implementations must classify every failure into one of these; callers
never see a raw HTTP library exception.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from splitledger.models.ledger import (
    BillSplit,
    Group,
    Settlement,
    Transaction,
    UserIdentity,
)


class LedgerClientInterface(ABC):
    """
    Abstract interface for the remote ledger.

    All operations are async so identity lookups can be fanned out
    concurrently.
    """

    @abstractmethod
    async def list_groups(self) -> list[Group]:
        """
        List the groups visible to the authenticated user.

        Raises:
            TransportError, AuthError
        """
        pass

    @abstractmethod
    async def list_bill_splits(self) -> list[BillSplit]:
        """
        List all bill splits (with nested participants) for the user.

        Raises:
            TransportError, AuthError
        """
        pass

    @abstractmethod
    async def list_settlements(self) -> list[Settlement]:
        """
        List recorded settlements.

        Raises:
            TransportError, AuthError
        """
        pass

    @abstractmethod
    async def search_users(self, query: str) -> list[UserIdentity]:
        """
        Search users by id or name.

        Args:
            query: Search text (enrichment passes a user id)

        Returns:
            Matching identities; an empty list when nothing matches
        """
        pass

    @abstractmethod
    async def get_group(self, group_id: str) -> Group:
        """
        Fetch one group.

        Raises:
            NotFoundError: If the group no longer exists
            TransportError: If the server could not be reached
        """
        pass

    @abstractmethod
    async def get_bill_split(self, split_id: str) -> BillSplit:
        """
        Fetch one bill split.

        Raises:
            NotFoundError: If the split no longer exists
            TransportError: If the server could not be reached
        """
        pass

    @abstractmethod
    async def update_bill_split(self, split_id: str, payload: dict[str, Any]) -> Optional[BillSplit]:
        """
        Replace a bill split's editable fields.

        Returns:
            The updated split if the server echoes it, None otherwise
        """
        pass

    @abstractmethod
    async def add_settlement(self, settlement: Settlement) -> Settlement:
        """
        Record a settlement.

        Returns:
            The stored settlement (the input when the server does not echo it)
        """
        pass

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """List the user's personal transactions."""
        pass

    @abstractmethod
    async def add_transaction(self, transaction: Transaction) -> Transaction:
        """Create an income or expense transaction."""
        pass

    @abstractmethod
    async def update_transaction(self, transaction_id: str, transaction: Transaction) -> Transaction:
        """Update a transaction."""
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> None:
        """Delete a transaction."""
        pass


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class TransportError(LedgerError):
    """Network failure, timeout or server error. Safe to retry."""
    pass


class AuthError(LedgerError):
    """Missing or invalid credential. Requires re-authentication upstream."""
    pass


class NotFoundError(LedgerError):
    """Entity no longer exists on the server."""

    def __init__(self, entity_type: str, entity_id: str, message: Optional[str] = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message or f"{entity_type} {entity_id} no longer exists")


class LedgerRequestError(LedgerError):
    """The server rejected the request (4xx other than auth/not-found)."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)


class EnrichmentLookupFailure(LedgerError):
    """An identity lookup failed. Contained per participant, never fatal."""

    def __init__(self, user_id: str, cause: Exception):
        self.user_id = user_id
        self.cause = cause
        super().__init__(f"Identity lookup failed for user {user_id}: {cause}")
