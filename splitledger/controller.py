"""
Ledger Controller

Owns the split ledger state for one observer and keeps it in sync with the
remote ledger. This is the store the presentation layer reads from.

Flow of a refresh:
1. Fetch groups, bill splits and settlements concurrently
2. Enrich splits (names resolved, "You" for the observer)
3. Derive stats, classifications and debts
4. Publish one new snapshot (all-or-nothing)
5. Notify in the background if new splits appeared

The controller enforces:
- At most one refresh in flight; concurrent callers join it
- A failed refresh keeps the previous snapshot and sets error
- A snapshot from an older generation never replaces a newer one
- Every mutation (settlement, transaction, group removal) is followed by a
  refresh; derived numbers are never patched locally
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog

from splitledger.balances import (
    classify_splits,
    compute_debts,
    compute_ledger_stats,
    compute_stats,
)
from splitledger.config import AppSettings, get_settings
from splitledger.enrichment import IdentityDirectory, ParticipantEnricher
from splitledger.models.ledger import (
    BillSplit,
    Debt,
    Group,
    Settlement,
    Transaction,
)
from splitledger.models.notification import (
    DASHBOARD,
    GROUP_DETAILS,
    SPLIT_DETAILS,
    NavigationTarget,
)
from splitledger.models.snapshot import LedgerSnapshot, RefreshResult
from splitledger.money import format_money
from splitledger.notifications import NotificationCenter
from splitledger.services.ledger import (
    AuthError,
    EnrichmentLookupFailure,
    LedgerClientInterface,
    LedgerError,
    LedgerRequestError,
    NotFoundError,
    TransportError,
)

logger = structlog.get_logger(__name__)

LOAD_FAILED_MESSAGE = "Unable to load your expense data. Please try again later."
AUTH_FAILED_MESSAGE = "Your session has expired. Please sign in again."
GROUP_GONE_MESSAGE = "This group no longer exists."
SPLIT_GONE_MESSAGE = "This split no longer exists."
NOT_PARTICIPANT_MESSAGE = "You are not a participant in this split."


class ViewSignals:
    """
    One-shot flags passed to a view when it regains focus.

    Each flag is consumed exactly once: consume() reads and clears it in one
    step, so racing triggers can't both act on the same signal.
    """

    def __init__(
        self,
        group_created: bool = False,
        should_refresh: bool = False,
        created_group_id: Optional[str] = None,
    ):
        self.group_created = group_created
        self.should_refresh = should_refresh
        self.created_group_id = created_group_id

    def consume(self, name: str) -> bool:
        value = bool(getattr(self, name))
        setattr(self, name, False)
        return value


class LedgerController:
    """
    Single owner of the ledger snapshot for one observer.

    All collaborators are injected; there is no module-level state.
    """

    def __init__(
        self,
        client: LedgerClientInterface,
        observer_id: str,
        notifications: Optional[NotificationCenter] = None,
        enricher: Optional[ParticipantEnricher] = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize the controller.

        Args:
            client: Remote ledger client
            observer_id: The authenticated user's id
            notifications: Notification center; a log-only one if None
            enricher: Participant enricher; built on client if None
            settings: Engine settings; loaded from the environment if None
        """
        self._client = client
        self._observer_id = str(observer_id)
        self._settings = settings or get_settings().app
        self._notifications = notifications or NotificationCenter()
        self._enricher = enricher or ParticipantEnricher(client, self._settings)

        self._snapshot = LedgerSnapshot(observer_id=self._observer_id)
        self._generation = 0
        self._min_generation = 0
        self._inflight: Optional[asyncio.Future] = None
        self._error: Optional[str] = None
        self._auth_required = False
        self._pending_notifications: set[asyncio.Future] = set()

    # -------------------------------------------------------------------------
    # Read surface
    # -------------------------------------------------------------------------

    @property
    def observer_id(self) -> str:
        return self._observer_id

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self._snapshot

    @property
    def groups(self):
        """Groups, newest first."""
        return self._snapshot.groups

    @property
    def bill_splits(self):
        return self._snapshot.bill_splits

    @property
    def settlements(self):
        return self._snapshot.settlements

    @property
    def enriched_splits(self):
        return self._snapshot.enriched_splits

    @property
    def computed_stats(self):
        return self._snapshot.computed_stats

    @property
    def stats(self):
        return self._snapshot.stats

    @property
    def classifications(self):
        return self._snapshot.classifications

    @property
    def debts(self):
        return self._snapshot.debts

    @property
    def loading(self) -> bool:
        """True only while a fetch is outstanding."""
        return self._inflight is not None and not self._inflight.done()

    @property
    def refreshing(self) -> bool:
        return self.loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def auth_required(self) -> bool:
        return self._auth_required

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def refresh(self) -> RefreshResult:
        """
        Refetch and republish the ledger.

        A call made while a refresh is pending joins it instead of issuing
        a second fetch.
        """
        if self.loading:
            logger.debug("refresh_joined", generation=self._generation)
            return await asyncio.shield(self._inflight)

        self._generation += 1
        self._inflight = asyncio.ensure_future(self._run_refresh(self._generation))
        return await asyncio.shield(self._inflight)

    async def _run_refresh(self, generation: int) -> RefreshResult:
        observer_id = self._observer_id
        logger.info("refresh_started", generation=generation, observer_id=observer_id)

        try:
            groups, splits, settlements = await asyncio.gather(
                self._client.list_groups(),
                self._client.list_bill_splits(),
                self._client.list_settlements(),
            )
            enriched = await self._enricher.enrich(splits, observer_id)
        except Exception as e:
            return self._refresh_failed(generation, _classify(e))

        for split in splits:
            if not split.is_balanced:
                logger.warning(
                    "split_share_drift",
                    split_id=split.id,
                    total_amount=str(split.total_amount),
                    share_total=str(split.share_total),
                )

        snapshot = LedgerSnapshot(
            generation=generation,
            observer_id=observer_id,
            loaded_at=datetime.now(timezone.utc),
            groups=_newest_first(groups),
            bill_splits=splits,
            settlements=settlements,
            enriched_splits=enriched,
            computed_stats=compute_stats(enriched, observer_id),
            stats=compute_ledger_stats(enriched, settlements, observer_id),
            classifications=classify_splits(enriched, observer_id),
            debts=compute_debts(enriched, settlements, observer_id),
        )

        previous = self._snapshot
        if not self._publishable(generation):
            logger.info("refresh_discarded", generation=generation)
            return RefreshResult(
                generation=generation,
                succeeded=True,
                previous_count=len(previous.bill_splits),
                new_count=len(splits),
                stale=True,
            )

        self._snapshot = snapshot
        self._error = None
        self._auth_required = False

        result = RefreshResult(
            generation=generation,
            succeeded=True,
            previous_count=len(previous.bill_splits),
            new_count=len(splits),
        )
        logger.info(
            "refresh_completed",
            generation=generation,
            groups=len(groups),
            splits=len(splits),
            settlements=len(settlements),
            net_balance=str(snapshot.computed_stats.net_balance),
        )

        if result.new_splits and (previous.is_loaded or self._settings.notify_on_initial_load):
            self._notify_in_background(
                "Data Refreshed",
                f"Found {result.new_splits} new bill split(s).",
                NavigationTarget(screen=DASHBOARD),
            )

        return result

    def _notify_in_background(
        self,
        title: str,
        body: str,
        target: Optional[NavigationTarget] = None,
    ) -> None:
        """Deliver a notification without holding up the refresh that raised it."""
        task = asyncio.ensure_future(self.trigger_notification(title, body, target))
        self._pending_notifications.add(task)
        task.add_done_callback(self._notification_done)

    def _notification_done(self, task: asyncio.Future) -> None:
        self._pending_notifications.discard(task)
        if task.cancelled():
            logger.warning("notification_cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error("notification_failed", error=str(error))

    async def flush_notifications(self) -> None:
        """Wait until every background notification has been delivered."""
        while self._pending_notifications:
            await asyncio.gather(*self._pending_notifications, return_exceptions=True)

    def _publishable(self, generation: int) -> bool:
        return generation >= self._min_generation and generation > self._snapshot.generation

    def _refresh_failed(self, generation: int, error: LedgerError) -> RefreshResult:
        count = len(self._snapshot.bill_splits)
        if not self._publishable(generation):
            logger.info("refresh_failure_discarded", generation=generation, error=str(error))
            return RefreshResult(
                generation=generation,
                succeeded=False,
                previous_count=count,
                new_count=count,
                error=str(error),
                stale=True,
            )

        message = self._record_error(error)
        logger.error(
            "refresh_failed",
            generation=generation,
            error_type=type(error).__name__,
            error=str(error),
        )
        return RefreshResult(
            generation=generation,
            succeeded=False,
            previous_count=count,
            new_count=count,
            error=message,
        )

    def _record_error(self, error: LedgerError) -> str:
        """Set the user-facing error for a classified failure."""
        if isinstance(error, AuthError):
            self._auth_required = True
            message = AUTH_FAILED_MESSAGE
        elif isinstance(error, LedgerRequestError):
            message = str(error)
        else:
            message = LOAD_FAILED_MESSAGE
        self._error = message
        return message

    async def on_focus_or_param_change(self, signals: Optional[ViewSignals] = None) -> RefreshResult:
        """
        Handle a view regaining focus or receiving new parameters.

        Runs one coalesced refresh and consumes the one-shot signals.
        """
        group_created = signals.consume("group_created") if signals else False
        if signals:
            signals.consume("should_refresh")
        created_group_id = signals.created_group_id if signals else None

        result = await self.refresh()

        if group_created:
            group = self._created_group(created_group_id)
            if group is not None:
                await self.trigger_notification(
                    "New Group Created",
                    f'Group "{group.name}" has been created.',
                    NavigationTarget(
                        screen=GROUP_DETAILS,
                        params={"groupId": group.id, "groupName": group.name},
                    ),
                )
        return result

    def _created_group(self, group_id: Optional[str]) -> Optional[Group]:
        if group_id is not None:
            for group in self.groups:
                if group.id == str(group_id):
                    return group
        return self.groups[0] if self.groups else None

    async def switch_observer(self, observer_id: str) -> RefreshResult:
        """
        Re-point the controller at another user.

        Any refresh still running for the previous observer is superseded;
        its results are discarded when it completes.
        """
        self._observer_id = str(observer_id)
        self._min_generation = self._generation + 1
        self._inflight = None
        self._snapshot = LedgerSnapshot(observer_id=self._observer_id)
        self._error = None
        self._auth_required = False
        logger.info("observer_switched", observer_id=self._observer_id)
        return await self.refresh()

    # -------------------------------------------------------------------------
    # Validation before navigation
    # -------------------------------------------------------------------------

    async def validate_group(self, group_id: str) -> Optional[Group]:
        """
        Re-check that a group still exists server-side.

        Returns:
            The fresh group, or None (error set; forced refresh if it vanished)
        """
        try:
            return await self._client.get_group(str(group_id))
        except Exception as e:
            await self._entity_unavailable(_classify(e), GROUP_GONE_MESSAGE)
            return None

    async def validate_split(self, split_id: str) -> Optional[BillSplit]:
        """Re-check that a split still exists server-side."""
        try:
            return await self._client.get_bill_split(str(split_id))
        except Exception as e:
            await self._entity_unavailable(_classify(e), SPLIT_GONE_MESSAGE)
            return None

    async def _entity_unavailable(self, error: LedgerError, gone_message: str) -> None:
        if isinstance(error, NotFoundError):
            logger.warning(
                "entity_vanished",
                entity_type=error.entity_type,
                entity_id=error.entity_id,
            )
            await self.refresh()
            self._error = gone_message
            return
        logger.error("entity_validation_failed", error_type=type(error).__name__, error=str(error))
        self._record_error(error)

    async def open_group(self, group_id: str) -> Optional[NavigationTarget]:
        """Validate, then return where to navigate (None if the group is gone)."""
        group = await self.validate_group(group_id)
        if group is None:
            return None
        return NavigationTarget(
            screen=GROUP_DETAILS,
            params={"groupId": group.id, "groupName": group.name},
        )

    async def open_split(self, split_id: str) -> Optional[NavigationTarget]:
        split = await self.validate_split(split_id)
        if split is None:
            return None
        return NavigationTarget(screen=SPLIT_DETAILS, params={"splitId": split.id})

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def trigger_notification(
        self,
        title: str,
        body: str,
        target: Optional[NavigationTarget] = None,
        user_id: Optional[str] = None,
    ) -> Optional[str]:
        """Raise a notification for the observer (or user_id). Never raises."""
        return await self._notifications.trigger(
            title,
            body,
            target,
            user_id=str(user_id) if user_id is not None else self._observer_id,
        )

    # -------------------------------------------------------------------------
    # Mutations (always followed by a refresh)
    # -------------------------------------------------------------------------

    async def add_settlement(self, settlement: Settlement) -> Optional[Settlement]:
        """
        Record a settlement, notify, and refresh.

        Returns:
            The stored settlement, or None if the ledger rejected it (error set)
        """
        try:
            stored = await self._client.add_settlement(settlement)
        except Exception as e:
            error = _classify(e)
            logger.error("settlement_failed", split_id=settlement.split_id, error=str(error))
            self._record_error(error)
            return None

        logger.info(
            "settlement_added",
            split_id=stored.split_id,
            payee_id=stored.payee_id,
            amount=str(stored.amount),
        )
        await self.trigger_notification(
            "Settlement Added",
            f"You settled {format_money(stored.amount)} for a bill split.",
            NavigationTarget(screen=SPLIT_DETAILS, params={"splitId": stored.split_id}),
        )
        await self.refresh()
        return stored

    async def settle_debt(self, debt: Debt) -> Optional[Settlement]:
        """
        Pay off one debt: raise the observer's paid amount on the split,
        then record the settlement.
        """
        split = await self.validate_split(debt.split_id)
        if split is None:
            return None

        participant = split.participant_for(self._observer_id)
        if participant is None:
            self._error = NOT_PARTICIPANT_MESSAGE
            return None

        updated = split.model_copy(
            update={
                "participants": tuple(
                    p.model_copy(update={"paid_amount": p.paid_amount + debt.amount})
                    if p.user_id == self._observer_id
                    else p
                    for p in split.participants
                )
            }
        )
        try:
            await self._client.update_bill_split(split.id, updated.to_update_payload())
        except Exception as e:
            error = _classify(e)
            logger.error("split_update_failed", split_id=split.id, error=str(error))
            if isinstance(error, NotFoundError):
                await self.refresh()
                self._error = SPLIT_GONE_MESSAGE
            else:
                self._record_error(error)
            return None

        stored = await self.add_settlement(
            Settlement(
                split_id=split.id,
                split_name=split.name,
                amount=debt.amount,
                payer_id=self._observer_id,
                payee_id=debt.payee_id,
                timestamp=datetime.now(timezone.utc),
            )
        )
        if stored is not None:
            await self._notify_payee(split, stored)
        return stored

    async def _notify_payee(self, split: BillSplit, settlement: Settlement) -> None:
        """Tell the payee they received a settlement."""
        try:
            payer_name = await IdentityDirectory(self._client).lookup(self._observer_id)
        except EnrichmentLookupFailure as e:
            logger.warning("payer_lookup_failed", user_id=self._observer_id, error=str(e.cause))
            payer_name = None

        group = next((g for g in self.groups if g.id == split.group_id), None)
        body = f'{payer_name or "A user"} settled {format_money(settlement.amount)} for "{split.name}"'
        body += f' in group "{group.name}".' if group is not None and group.name else "."

        await self.trigger_notification(
            "Settlement Received",
            body,
            NavigationTarget(screen=SPLIT_DETAILS, params={"splitId": split.id}),
            user_id=settlement.payee_id,
        )

    async def remove_group(self, group_id: str) -> RefreshResult:
        """Acknowledge a remotely deleted group: notify and refresh."""
        group = next((g for g in self.groups if g.id == str(group_id)), None)
        result = await self.refresh()
        if group is not None:
            await self.trigger_notification(
                "Group Removed",
                f'The group "{group.name}" has been removed.',
                NavigationTarget(screen=DASHBOARD),
            )
        return result

    async def fetch_transactions(self) -> list[Transaction]:
        try:
            return await self._client.list_transactions()
        except Exception as e:
            self._record_error(_classify(e))
            return []

    async def add_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        try:
            stored = await self._client.add_transaction(transaction)
        except Exception as e:
            self._record_error(_classify(e))
            return None
        await self.refresh()
        return stored

    async def update_transaction(
        self,
        transaction_id: str,
        transaction: Transaction,
    ) -> Optional[Transaction]:
        try:
            stored = await self._client.update_transaction(str(transaction_id), transaction)
        except Exception as e:
            self._record_error(_classify(e))
            return None
        await self.refresh()
        return stored

    async def delete_transaction(self, transaction_id: str) -> bool:
        try:
            await self._client.delete_transaction(str(transaction_id))
        except Exception as e:
            self._record_error(_classify(e))
            return False
        await self.refresh()
        return True


def _classify(error: Exception) -> LedgerError:
    """Map any failure from a remote call site onto the ledger taxonomy."""
    if isinstance(error, LedgerError):
        return error
    return TransportError(f"Unexpected {type(error).__name__}: {error}")


def _newest_first(groups: list[Group]) -> list[Group]:
    return sorted(
        groups,
        key=lambda g: g.created_at.timestamp() if g.created_at else float("-inf"),
        reverse=True,
    )
