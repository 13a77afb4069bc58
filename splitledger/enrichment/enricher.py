"""
Participant Enrichment

Resolves opaque participant user ids into display names.

Rules:
1. The observer's own rows are labelled with AppSettings.self_label ("You")
   without any remote call.
2. Every other participant is looked up via LedgerClientInterface.search_users
   and matched on exact id.
3. A failed or empty lookup degrades to the placeholder "User {id}".
   Enrichment as a whole never fails.
4. Names sent by the ledger are ignored: the observer is always relabelled
   and everyone else is looked up. Only rows this enricher already produced
   keep their name, so enriching enriched output changes nothing.

Lookups fan out concurrently; output order always matches input order.
"""

import asyncio
from typing import Optional, Sequence

import structlog

from splitledger.config import AppSettings, get_settings
from splitledger.models.ledger import (
    BillSplit,
    EnrichedParticipant,
    EnrichedSplit,
    Participant,
)
from splitledger.services.ledger.interface import (
    EnrichmentLookupFailure,
    LedgerClientInterface,
)

logger = structlog.get_logger(__name__)


class IdentityDirectory:
    """
    Per-pass identity cache in front of the remote user search.

    Concurrent requests for the same user id share one in-flight lookup.
    """

    def __init__(
        self,
        client: LedgerClientInterface,
        max_concurrent: Optional[int] = None,
    ):
        self._client = client
        self._lookups: dict[str, asyncio.Task] = {}
        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None

    async def lookup(self, user_id: str) -> Optional[str]:
        """
        Resolve a user id to a display name.

        Returns:
            The name, or None if the directory has no exact match

        Raises:
            EnrichmentLookupFailure: If the remote lookup failed
        """
        task = self._lookups.get(user_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch(user_id))
            self._lookups[user_id] = task
        return await asyncio.shield(task)

    @property
    def lookup_count(self) -> int:
        """Number of distinct remote lookups issued."""
        return len(self._lookups)

    async def _fetch(self, user_id: str) -> Optional[str]:
        if self._semaphore is None:
            return await self._search(user_id)
        async with self._semaphore:
            return await self._search(user_id)

    async def _search(self, user_id: str) -> Optional[str]:
        try:
            users = await self._client.search_users(user_id)
        except Exception as e:
            raise EnrichmentLookupFailure(user_id, e) from e
        for user in users:
            if user.id == user_id and user.name:
                return user.name
        return None


class ParticipantEnricher:
    """Annotates every participant of every split with a display name."""

    def __init__(
        self,
        client: LedgerClientInterface,
        settings: Optional[AppSettings] = None,
    ):
        self._client = client
        self._settings = settings or get_settings().app

    async def enrich(
        self,
        splits: Sequence[BillSplit],
        observer_id: str,
    ) -> list[EnrichedSplit]:
        """
        Enrich splits for one observer.

        Waits for every lookup before returning. The result preserves
        split and participant order.
        """
        observer_id = str(observer_id)
        directory = IdentityDirectory(
            self._client,
            max_concurrent=self._settings.max_concurrent_lookups,
        )

        enriched = await asyncio.gather(
            *(self._enrich_split(split, observer_id, directory) for split in splits)
        )
        logger.debug(
            "splits_enriched",
            splits=len(enriched),
            lookups=directory.lookup_count,
        )
        return list(enriched)

    async def _enrich_split(
        self,
        split: BillSplit,
        observer_id: str,
        directory: IdentityDirectory,
    ) -> EnrichedSplit:
        participants = await asyncio.gather(
            *(
                self._enrich_participant(p, observer_id, directory)
                for p in split.participants
            )
        )
        return EnrichedSplit(
            **split.model_dump(exclude={"participants"}),
            participants=participants,
        )

    async def _enrich_participant(
        self,
        participant: Participant,
        observer_id: str,
        directory: IdentityDirectory,
    ) -> EnrichedParticipant:
        is_self = participant.user_id == observer_id
        fields = participant.model_dump(exclude={"name", "is_self"})

        if is_self:
            return EnrichedParticipant(**fields, name=self._settings.self_label, is_self=True)

        # Only names this enricher resolved are kept; a stale "You" is re-resolved
        if isinstance(participant, EnrichedParticipant) and not participant.is_self:
            return EnrichedParticipant(**fields, name=participant.name, is_self=False)

        try:
            name = await directory.lookup(participant.user_id)
        except EnrichmentLookupFailure as e:
            logger.warning(
                "identity_lookup_failed",
                user_id=participant.user_id,
                error=str(e.cause),
            )
            name = None

        return EnrichedParticipant(
            **fields,
            name=name or self._settings.placeholder_name(participant.user_id),
            is_self=False,
        )

