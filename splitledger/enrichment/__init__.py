"""Participant enrichment package."""

from splitledger.enrichment.enricher import IdentityDirectory, ParticipantEnricher

__all__ = ["IdentityDirectory", "ParticipantEnricher"]
