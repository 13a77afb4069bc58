"""
Ledger Snapshot Models

A LedgerSnapshot is the complete, read-only view the controller publishes:
raw collections plus everything derived from them. Snapshots are replaced
whole, never patched, so consumers can't observe a half-updated state.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from splitledger.models.ledger import (
    AggregateStats,
    BillSplit,
    Debt,
    EnrichedSplit,
    Group,
    Settlement,
    SplitClassification,
)


class LedgerSnapshot(BaseModel):
    """Everything one refresh produced, stamped with its generation."""
    model_config = ConfigDict(frozen=True)

    generation: int = Field(default=0, ge=0, description="0 = nothing loaded yet")
    observer_id: Optional[str] = Field(default=None)
    loaded_at: Optional[datetime] = Field(default=None)

    # Raw collections
    groups: tuple[Group, ...] = Field(default_factory=tuple)
    bill_splits: tuple[BillSplit, ...] = Field(default_factory=tuple)
    settlements: tuple[Settlement, ...] = Field(default_factory=tuple)

    # Derived
    enriched_splits: tuple[EnrichedSplit, ...] = Field(default_factory=tuple)
    computed_stats: AggregateStats = Field(default_factory=AggregateStats)
    stats: AggregateStats = Field(default_factory=AggregateStats)
    classifications: tuple[SplitClassification, ...] = Field(default_factory=tuple)
    debts: tuple[Debt, ...] = Field(default_factory=tuple)

    @property
    def is_loaded(self) -> bool:
        return self.generation > 0

    def classification_for(self, split_id: str) -> Optional[SplitClassification]:
        for classification in self.classifications:
            if classification.split_id == str(split_id):
                return classification
        return None


class RefreshResult(BaseModel):
    """Outcome of one refresh."""
    model_config = ConfigDict(frozen=True)

    generation: int
    succeeded: bool
    previous_count: int = Field(default=0, ge=0)
    new_count: int = Field(default=0, ge=0)
    error: Optional[str] = Field(default=None)
    stale: bool = Field(
        default=False,
        description="A newer generation was already published; results discarded",
    )

    @property
    def new_splits(self) -> int:
        """How many more splits there are than before (never negative)."""
        return max(0, self.new_count - self.previous_count)
