"""
HTTP Ledger Client

Implements LedgerClientInterface over a requests.Session with bearer
authentication. Blocking requests run on worker threads so identity
lookups issued with asyncio.gather really execute concurrently.

Failure classification:
- 401/403 -> AuthError (never retried)
- 404 -> NotFoundError
- connection error, timeout, 5xx -> TransportError (reads retried)
- other 4xx -> LedgerRequestError
"""

import asyncio
from typing import Any, Optional

import requests
import structlog
from pydantic import ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from splitledger.config import LedgerApiSettings, get_settings
from splitledger.models.ledger import (
    BillSplit,
    Group,
    Settlement,
    Transaction,
    TransactionType,
    UserIdentity,
)
from splitledger.services.ledger.interface import (
    AuthError,
    LedgerClientInterface,
    LedgerRequestError,
    NotFoundError,
    TransportError,
)

logger = structlog.get_logger(__name__)


class HttpLedgerClient(LedgerClientInterface):
    """
    REST/JSON ledger client.

    Response envelopes follow the ledger API: {"groups": [...]},
    {"bill_splits": [...]}, {"settlements": [...]}, {"users": [...]},
    {"group": {...}}, {"bill_split": {...}}.
    """

    def __init__(
        self,
        settings: Optional[LedgerApiSettings] = None,
        session: Optional[requests.Session] = None,
        token: Optional[str] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: API settings; loaded from the environment if None
            session: HTTP session (tests inject a fake)
            token: Bearer credential; overrides settings.token
        """
        self._settings = settings or get_settings().ledger_api
        self._session = session or requests.Session()
        self._token = token if token is not None else self._settings.token
        self._base_url = self._settings.base_url.rstrip("/")

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        entity: Optional[tuple[str, str]] = None,
    ) -> Any:
        """Perform one request and classify the outcome."""
        if not self._token:
            raise AuthError("No bearer credential available; sign in again")

        url = f"{self._base_url}{path}"
        logger.debug("ledger_request", method=method, url=url, params=params)
        try:
            response = self._session.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=json,
                timeout=self._settings.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise AuthError(f"{method} {path} rejected credential ({status})")
        if status == 404:
            entity_type, entity_id = entity or ("resource", path)
            raise NotFoundError(entity_type, entity_id)
        if status >= 500:
            raise TransportError(f"{method} {path} server error ({status})")
        if status >= 400:
            raise LedgerRequestError(status, _error_message(response))

        if status == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{method} {path} returned invalid JSON") from e

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request; idempotent GETs are retried on TransportError."""
        if method != "GET":
            return self._send(method, path, **kwargs)

        retrying = Retrying(
            stop=stop_after_attempt(self._settings.retry_attempts),
            wait=wait_exponential(
                multiplier=self._settings.retry_backoff_seconds,
                max=10,
            ),
            retry=retry_if_exception_type(TransportError),
            reraise=True,
        )
        return retrying(self._send, method, path, **kwargs)

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self._request, method, path, **kwargs)

    # -------------------------------------------------------------------------
    # Splits
    # -------------------------------------------------------------------------

    async def list_groups(self) -> list[Group]:
        payload = await self._call("GET", "/splits/groups")
        return _parse_list(Group, payload, "groups")

    async def list_bill_splits(self) -> list[BillSplit]:
        payload = await self._call("GET", "/splits/bill_splits")
        return _parse_list(BillSplit, payload, "bill_splits")

    async def list_settlements(self) -> list[Settlement]:
        payload = await self._call("GET", "/splits/settlements")
        return _parse_list(Settlement, payload, "settlements")

    async def search_users(self, query: str) -> list[UserIdentity]:
        payload = await self._call(
            "GET", "/splits/users/search", params={"q": str(query)}
        )
        users = []
        for item in _envelope(payload, "users"):
            try:
                users.append(UserIdentity.model_validate(item))
            except ValidationError:
                logger.warning("user_search_result_skipped", query=query)
        return users

    async def get_group(self, group_id: str) -> Group:
        payload = await self._call(
            "GET", f"/splits/groups/{group_id}", entity=("group", str(group_id))
        )
        return _parse_one(Group, payload, "group")

    async def get_bill_split(self, split_id: str) -> BillSplit:
        payload = await self._call(
            "GET", f"/splits/bill_splits/{split_id}", entity=("bill_split", str(split_id))
        )
        return _parse_one(BillSplit, payload, "bill_split")

    async def update_bill_split(self, split_id: str, payload: dict[str, Any]) -> Optional[BillSplit]:
        response = await self._call(
            "PUT",
            f"/splits/bill_splits/{split_id}",
            json=payload,
            entity=("bill_split", str(split_id)),
        )
        return _parse_one(BillSplit, response, "bill_split") if response else None

    async def add_settlement(self, settlement: Settlement) -> Settlement:
        response = await self._call(
            "POST", "/splits/settlements", json=settlement.to_payload()
        )
        return _parse_one(Settlement, response, "settlement") if response else settlement

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        payload = await self._call("GET", "/transactions")
        return _parse_list(Transaction, payload, "transactions")

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        path = (
            "/transactions/income"
            if transaction.type == TransactionType.INCOME
            else "/transactions/expense"
        )
        response = await self._call("POST", path, json=transaction.to_payload())
        return _parse_one(Transaction, response, "transaction") if response else transaction

    async def update_transaction(self, transaction_id: str, transaction: Transaction) -> Transaction:
        response = await self._call(
            "PUT",
            f"/transactions/{transaction_id}",
            json=transaction.to_payload(),
            entity=("transaction", str(transaction_id)),
        )
        return _parse_one(Transaction, response, "transaction") if response else transaction

    async def delete_transaction(self, transaction_id: str) -> None:
        await self._call(
            "DELETE",
            f"/transactions/{transaction_id}",
            entity=("transaction", str(transaction_id)),
        )


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Request rejected ({response.status_code})"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Request rejected ({response.status_code})"


def _envelope(payload: Any, key: str) -> list:
    """Unwrap {key: [...]}; a bare list is accepted as-is."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return payload.get(key) or []
    return []


def _parse_list(model, payload: Any, key: str) -> list:
    try:
        return [model.model_validate(item) for item in _envelope(payload, key)]
    except ValidationError as e:
        raise TransportError(f"Malformed {key} payload: {e}") from e


def _parse_one(model, payload: Any, key: str):
    body = payload.get(key, payload) if isinstance(payload, dict) else payload
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise TransportError(f"Malformed {key} payload: {e}") from e
