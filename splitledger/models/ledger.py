"""
Core Ledger Models

These models define the schemas for everything read from the remote ledger
and everything derived from it:
1. Raw records (Group, BillSplit, Participant, Settlement, Transaction)
2. Enriched records (names resolved for presentation)
3. Derived figures (AggregateStats, SplitClassification, Debt)

All models are frozen. Consumers receive read-only snapshots; the only way
to change ledger data is a remote write followed by a refresh.

IMPORTANT: Identifiers are normalised to strings. The remote API mixes
numeric and string ids and comparisons must never depend on that.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)

from splitledger.money import ZERO, sum_money, to_money


def _as_id(value: Any) -> Any:
    """Normalise a numeric or string identifier to str."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return value


def _as_money(value: Any) -> Any:
    """Pre-validation hook: coerce raw amounts to two-place Decimal."""
    if isinstance(value, (int, float, str, Decimal)) and not isinstance(value, bool):
        return to_money(value)
    return value


IdStr = Annotated[str, BeforeValidator(_as_id)]
OptionalId = Annotated[Optional[str], BeforeValidator(_as_id)]
Money = Annotated[Decimal, BeforeValidator(_as_money)]


# =============================================================================
# ENUMS
# =============================================================================

class SettlementStatus(str, Enum):
    """
    Settlement status of a split, as seen by one observer.

    Exactly one status applies to every (split, observer) pair.
    """
    TO_GIVE = "to_give"    # Observer owes money on this split
    TO_TAKE = "to_take"    # Observer is owed money on this split
    SETTLED = "settled"    # Nothing outstanding for the observer

    @property
    def label(self) -> str:
        """Human-readable label ("to give", "to take", "settled")."""
        return self.value.replace("_", " ")


class TransactionType(str, Enum):
    """Kind of personal transaction."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# RAW LEDGER RECORDS
# =============================================================================

class Participant(BaseModel):
    """
    One user's stake in a split.

    share_amount is the portion this user owes; paid_amount is what they
    have actually contributed. name is only set once enriched.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    user_id: IdStr = Field(..., min_length=1, description="Participant user id")
    share_amount: Money = Field(
        default=ZERO,
        ge=0,
        description="Portion of the split this user owes",
    )
    paid_amount: Money = Field(
        default=ZERO,
        ge=0,
        description="Amount this user has contributed",
    )
    name: Optional[str] = Field(
        default=None,
        description="Resolved display name (enrichment only)",
    )

    @property
    def amount_owed(self) -> Decimal:
        """
        share_amount - paid_amount.

        Positive: still owes. Negative: overpaid, is owed back. Zero: even.
        """
        return self.share_amount - self.paid_amount


class BillSplit(BaseModel):
    """
    A shared expense divided among participants.

    The sum of share_amount SHOULD equal total_amount, but drift is
    tolerated: see share_drift.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: IdStr = Field(..., min_length=1)
    group_id: OptionalId = Field(default=None)
    name: str = Field(default="", max_length=200)
    total_amount: Money = Field(..., gt=0, description="Total split amount")
    creator_id: IdStr = Field(..., min_length=1)
    created_at: Optional[datetime] = Field(default=None)
    participants: tuple[Participant, ...] = Field(default_factory=tuple)
    category: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)

    def participant_for(self, user_id: str) -> Optional[Participant]:
        """Return the row belonging to user_id, if any."""
        user_id = str(user_id)
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    @property
    def share_total(self) -> Decimal:
        return sum_money(p.share_amount for p in self.participants)

    @property
    def share_drift(self) -> Decimal:
        """total_amount minus the sum of shares. Non-zero is a data-quality signal."""
        return self.total_amount - self.share_total

    @property
    def is_balanced(self) -> bool:
        return self.share_drift == ZERO

    def to_update_payload(self) -> dict[str, Any]:
        """Payload for PUT /splits/bill_splits/{id}."""
        return {
            "name": self.name,
            "total_amount": str(self.total_amount),
            "group_id": self.group_id,
            "category": self.category,
            "notes": self.notes,
            "participants": [
                {
                    "user_id": p.user_id,
                    "share_amount": str(p.share_amount),
                    "paid_amount": str(p.paid_amount),
                }
                for p in self.participants
            ],
        }


class Group(BaseModel):
    """A group of users that splits live in."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: IdStr = Field(..., min_length=1)
    name: str = Field(default="")
    members: tuple[str, ...] = Field(default_factory=tuple)
    type: str = Field(default="other", description="Free-form group type (trip, home, ...)")
    created_at: Optional[datetime] = Field(default=None)

    @field_validator("members", mode="before")
    @classmethod
    def normalise_members(cls, v: Any) -> Any:
        """Members arrive either as ids or as {id|user_id: ...} objects."""
        if v is None:
            return ()
        members = []
        for member in v:
            if isinstance(member, dict):
                member = member.get("user_id", member.get("id"))
            members.append(_as_id(member))
        return tuple(members)

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: Any) -> Any:
        return v or "other"


class Settlement(BaseModel):
    """
    A recorded payment from payer to payee against one split.

    The remote feed has used both split_id/bill_split_id and
    payee_id/to_user_id; both spellings are accepted.
    """
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: OptionalId = Field(default=None)
    split_id: IdStr = Field(
        ...,
        validation_alias=AliasChoices("split_id", "bill_split_id"),
    )
    split_name: Optional[str] = Field(default=None)
    amount: Money = Field(..., gt=0)
    payer_id: IdStr = Field(...)
    payee_id: IdStr = Field(
        ...,
        validation_alias=AliasChoices("payee_id", "to_user_id"),
    )
    timestamp: Optional[datetime] = Field(default=None)
    method: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)

    def to_payload(self) -> dict[str, Any]:
        """Payload for POST /splits/settlements."""
        payload = self.model_dump(mode="json", exclude_none=True, exclude={"id"})
        payload["amount"] = str(self.amount)
        return payload


class Transaction(BaseModel):
    """A personal income or expense transaction."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: OptionalId = Field(default=None)
    type: TransactionType = Field(...)
    amount: Money = Field(..., gt=0)
    category: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    occurred_on: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("date", "occurred_on"),
        serialization_alias="date",
    )

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude={"id"}
        )
        payload["amount"] = str(self.amount)
        return payload


class UserIdentity(BaseModel):
    """Display identity returned by user search."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: IdStr = Field(...)
    name: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)


# =============================================================================
# ENRICHED RECORDS
# =============================================================================

class EnrichedParticipant(Participant):
    """A participant whose display name has been resolved."""

    name: str = Field(..., min_length=1)
    is_self: bool = Field(default=False)


class EnrichedSplit(BillSplit):
    """
    A BillSplit whose participants carry resolved names.

    Ephemeral: rebuilt on every refresh, never persisted.
    """

    participants: tuple[EnrichedParticipant, ...] = Field(default_factory=tuple)


# =============================================================================
# DERIVED FIGURES
# =============================================================================

class AggregateStats(BaseModel):
    """
    Observer balance across all splits.

    total_owed: what the observer still has to pay.
    total_owing: what is owed TO the observer (credits receivable).
    net_balance: total_owing - total_owed (positive = net creditor).
    """
    model_config = ConfigDict(frozen=True)

    total_owed: Decimal = Field(default=ZERO)
    total_owing: Decimal = Field(default=ZERO)
    net_balance: Decimal = Field(default=ZERO)


class SplitClassification(BaseModel):
    """Settlement status and outstanding amount of one split for the observer."""
    model_config = ConfigDict(frozen=True)

    split_id: str
    status: SettlementStatus
    amount: Decimal = Field(default=ZERO, ge=0)


class Debt(BaseModel):
    """An amount the observer owes one payee on one split."""
    model_config = ConfigDict(frozen=True)

    split_id: str
    split_name: str = ""
    group_id: Optional[str] = None
    payee_id: str
    payee_name: str
    amount: Decimal = Field(..., gt=0)
