"""Services package."""

from splitledger.services.ledger import (
    AuthError,
    EnrichmentLookupFailure,
    HttpLedgerClient,
    LedgerClientInterface,
    LedgerError,
    LedgerRequestError,
    NotFoundError,
    TransportError,
)

__all__ = [
    "AuthError",
    "EnrichmentLookupFailure",
    "HttpLedgerClient",
    "LedgerClientInterface",
    "LedgerError",
    "LedgerRequestError",
    "NotFoundError",
    "TransportError",
]
