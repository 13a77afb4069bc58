"""
Data Models Package

This package contains all Pydantic models used by the split ledger.
Everything read from the remote ledger or derived from it conforms to these schemas.
"""

from splitledger.models.ledger import (
    AggregateStats,
    BillSplit,
    Debt,
    EnrichedParticipant,
    EnrichedSplit,
    Group,
    Participant,
    Settlement,
    SettlementStatus,
    SplitClassification,
    Transaction,
    TransactionType,
    UserIdentity,
)
from splitledger.models.notification import (
    DASHBOARD,
    GROUP_DETAILS,
    SPLIT_DETAILS,
    NavigationTarget,
    Notification,
)
from splitledger.models.snapshot import LedgerSnapshot, RefreshResult

__all__ = [
    # Ledger models
    "AggregateStats",
    "BillSplit",
    "Debt",
    "EnrichedParticipant",
    "EnrichedSplit",
    "Group",
    "Participant",
    "Settlement",
    "SettlementStatus",
    "SplitClassification",
    "Transaction",
    "TransactionType",
    "UserIdentity",
    # Notification models
    "DASHBOARD",
    "GROUP_DETAILS",
    "SPLIT_DETAILS",
    "NavigationTarget",
    "Notification",
    # Snapshot models
    "LedgerSnapshot",
    "RefreshResult",
]
