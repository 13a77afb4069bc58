"""
Ledger Client Package

Provides the abstract remote-ledger contract, its error taxonomy, and the
REST/JSON implementation.
"""

from splitledger.services.ledger.interface import (
    AuthError,
    EnrichmentLookupFailure,
    LedgerClientInterface,
    LedgerError,
    LedgerRequestError,
    NotFoundError,
    TransportError,
)
from splitledger.services.ledger.http_client import HttpLedgerClient

__all__ = [
    # Interface
    "LedgerClientInterface",
    # Exceptions
    "AuthError",
    "EnrichmentLookupFailure",
    "LedgerError",
    "LedgerRequestError",
    "NotFoundError",
    "TransportError",
    # HTTP implementation
    "HttpLedgerClient",
]
