"""Tests for the REST ledger client, driven through a fake requests session."""

import asyncio
import json as jsonlib
from decimal import Decimal

import pytest
import requests

from splitledger.config import LedgerApiSettings
from splitledger.models import Settlement, Transaction
from splitledger.services.ledger import (
    AuthError,
    HttpLedgerClient,
    LedgerRequestError,
    NotFoundError,
    TransportError,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, raw=None):
        self.status_code = status_code
        self._payload = payload
        if raw is not None:
            self.content = raw
        elif payload is None:
            self.content = b""
        else:
            self.content = jsonlib.dumps(payload).encode()

    def json(self):
        return jsonlib.loads(self.content)


class FakeSession:
    """Replays canned responses; the last one repeats once the queue runs dry."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.request_calls = []

    def request(self, method, url, headers=None, params=None, json=None, timeout=None):
        self.request_calls.append(
            {"method": method, "url": url, "headers": headers, "params": params, "json": json, "timeout": timeout}
        )
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def api_settings():
    return LedgerApiSettings(
        _env_file=None,
        base_url="https://ledger.test/api/",
        token="tok",
        retry_attempts=3,
        retry_backoff_seconds=0,
    )


def make_client(api_settings, *responses, token=None):
    session = FakeSession(responses)
    return HttpLedgerClient(settings=api_settings, session=session, token=token), session


class TestReads:
    """Listing and fetching."""

    def test_list_groups_unwraps_envelope(self, api_settings):
        client, session = make_client(
            api_settings, FakeResponse(200, {"groups": [{"id": 1, "name": "Trip", "members": [{"user_id": 2}]}]})
        )
        [group] = asyncio.run(client.list_groups())

        assert group.id == "1"
        assert group.members == ("2",)
        call = session.request_calls[0]
        assert call["method"] == "GET"
        assert call["url"] == "https://ledger.test/api/splits/groups"
        assert call["headers"]["Authorization"] == "Bearer tok"
        assert call["timeout"] == api_settings.timeout_seconds

    def test_bare_list_accepted(self, api_settings):
        client, _ = make_client(api_settings, FakeResponse(200, [{"id": "g1"}]))
        assert [g.id for g in asyncio.run(client.list_groups())] == ["g1"]

    def test_list_bill_splits(self, api_settings):
        payload = {
            "bill_splits": [
                {
                    "id": 10,
                    "group_id": 1,
                    "name": "Dinner",
                    "total_amount": 100,
                    "creator_id": 2,
                    "participants": [
                        {"user_id": 2, "share_amount": 50, "paid_amount": 100},
                        {"user_id": 3, "share_amount": "50.00", "paid_amount": 0},
                    ],
                }
            ]
        }
        client, _ = make_client(api_settings, FakeResponse(200, payload))
        [split] = asyncio.run(client.list_bill_splits())

        assert split.id == "10"
        assert split.participant_for("3").amount_owed == Decimal("50.00")
        assert split.participant_for(2).amount_owed == Decimal("-50.00")

    def test_list_settlements_accepts_legacy_keys(self, api_settings):
        payload = {"settlements": [{"id": 5, "bill_split_id": 10, "amount": "20", "payer_id": 3, "to_user_id": 2}]}
        client, _ = make_client(api_settings, FakeResponse(200, payload))
        [settlement] = asyncio.run(client.list_settlements())

        assert settlement.split_id == "10"
        assert settlement.payee_id == "2"
        assert settlement.amount == Decimal("20.00")

    def test_search_users_sends_query_and_skips_bad_rows(self, api_settings):
        payload = {"users": [{"id": 42, "name": "Dana"}, {"name": "no id"}]}
        client, session = make_client(api_settings, FakeResponse(200, payload))
        users = asyncio.run(client.search_users("42"))

        assert [(u.id, u.name) for u in users] == [("42", "Dana")]
        assert session.request_calls[0]["params"] == {"q": "42"}
        assert session.request_calls[0]["url"].endswith("/splits/users/search")

    def test_get_group_not_found(self, api_settings):
        client, session = make_client(api_settings, FakeResponse(404, {"error": "not found"}))
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(client.get_group("7"))

        assert exc_info.value.entity_type == "group"
        assert exc_info.value.entity_id == "7"
        assert len(session.request_calls) == 1

    def test_get_bill_split(self, api_settings):
        payload = {"bill_split": {"id": "s1", "total_amount": "10", "creator_id": "u1"}}
        client, session = make_client(api_settings, FakeResponse(200, payload))
        split = asyncio.run(client.get_bill_split("s1"))

        assert split.total_amount == Decimal("10.00")
        assert session.request_calls[0]["url"].endswith("/splits/bill_splits/s1")

    def test_malformed_payload_is_transport_error(self, api_settings):
        client, _ = make_client(api_settings, FakeResponse(200, {"groups": [{"name": "no id"}]}))
        with pytest.raises(TransportError):
            asyncio.run(client.list_groups())


class TestFailureClassification:
    """Status codes, retries and credentials."""

    def test_server_errors_retried_then_succeed(self, api_settings):
        client, session = make_client(
            api_settings,
            FakeResponse(503),
            FakeResponse(502),
            FakeResponse(200, {"groups": []}),
        )
        assert asyncio.run(client.list_groups()) == []
        assert len(session.request_calls) == 3

    def test_persistent_server_error(self, api_settings):
        client, session = make_client(api_settings, FakeResponse(500))
        with pytest.raises(TransportError):
            asyncio.run(client.list_settlements())
        assert len(session.request_calls) == api_settings.retry_attempts

    def test_connection_error_is_transport_error(self, api_settings):
        client, session = make_client(api_settings, requests.exceptions.ConnectionError("refused"))
        with pytest.raises(TransportError):
            asyncio.run(client.list_bill_splits())
        assert len(session.request_calls) == 3

    def test_timeout_is_transport_error(self, api_settings):
        client, _ = make_client(api_settings, requests.exceptions.Timeout("slow"))
        with pytest.raises(TransportError):
            asyncio.run(client.list_groups())

    def test_invalid_json_is_transport_error(self, api_settings):
        client, _ = make_client(api_settings, FakeResponse(200, raw=b"<html>"))
        with pytest.raises(TransportError):
            asyncio.run(client.list_groups())

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_rejection_not_retried(self, api_settings, status):
        client, session = make_client(api_settings, FakeResponse(status))
        with pytest.raises(AuthError):
            asyncio.run(client.list_groups())
        assert len(session.request_calls) == 1

    def test_missing_token_fails_before_request(self):
        settings = LedgerApiSettings(_env_file=None, token=None)
        client, session = make_client(settings, FakeResponse(200, {"groups": []}), token="")
        with pytest.raises(AuthError):
            asyncio.run(client.list_groups())
        assert session.request_calls == []

    def test_explicit_token_overrides_settings(self, api_settings):
        client, session = make_client(api_settings, FakeResponse(200, {"groups": []}), token="other")
        asyncio.run(client.list_groups())
        assert session.request_calls[0]["headers"]["Authorization"] == "Bearer other"

    def test_rejected_write_not_retried(self, api_settings):
        client, session = make_client(api_settings, FakeResponse(400, {"error": "Invalid amount"}))
        settlement = Settlement(split_id="s1", amount="5", payer_id="u2", payee_id="u1")
        with pytest.raises(LedgerRequestError) as exc_info:
            asyncio.run(client.add_settlement(settlement))

        assert exc_info.value.status_code == 400
        assert str(exc_info.value) == "Invalid amount"
        assert len(session.request_calls) == 1

    def test_write_server_error_not_retried(self, api_settings):
        client, session = make_client(api_settings, FakeResponse(500))
        settlement = Settlement(split_id="s1", amount="5", payer_id="u2", payee_id="u1")
        with pytest.raises(TransportError):
            asyncio.run(client.add_settlement(settlement))
        assert len(session.request_calls) == 1


class TestWrites:
    """Settlements, split updates and transactions."""

    def test_add_settlement_posts_payload(self, api_settings):
        response = {"settlement": {"id": 9, "split_id": "s1", "amount": "5.00", "payer_id": "u2", "payee_id": "u1"}}
        client, session = make_client(api_settings, FakeResponse(201, response))
        settlement = Settlement(split_id="s1", amount="5", payer_id="u2", payee_id="u1")
        stored = asyncio.run(client.add_settlement(settlement))

        assert stored.id == "9"
        call = session.request_calls[0]
        assert call["method"] == "POST"
        assert call["url"] == "https://ledger.test/api/splits/settlements"
        assert call["json"] == {"split_id": "s1", "amount": "5.00", "payer_id": "u2", "payee_id": "u1"}

    def test_update_bill_split(self, api_settings):
        response = {"bill_split": {"id": "s1", "total_amount": "10", "creator_id": "u1"}}
        client, session = make_client(api_settings, FakeResponse(200, response))
        updated = asyncio.run(client.update_bill_split("s1", {"name": "Lunch"}))

        assert updated.id == "s1"
        assert session.request_calls[0]["method"] == "PUT"
        assert session.request_calls[0]["json"] == {"name": "Lunch"}

    def test_update_bill_split_empty_response(self, api_settings):
        client, _ = make_client(api_settings, FakeResponse(204))
        assert asyncio.run(client.update_bill_split("s1", {"name": "Lunch"})) is None

    def test_add_income_transaction(self, api_settings):
        response = {"transaction": {"id": 3, "type": "income", "amount": 100, "date": "2024-03-01"}}
        client, session = make_client(api_settings, FakeResponse(201, response))
        transaction = Transaction(type="income", amount="100", date="2024-03-01")
        stored = asyncio.run(client.add_transaction(transaction))

        assert stored.id == "3"
        call = session.request_calls[0]
        assert call["url"].endswith("/transactions/income")
        assert call["json"] == {"type": "income", "amount": "100.00", "date": "2024-03-01"}

    def test_add_expense_transaction(self, api_settings):
        client, session = make_client(api_settings, FakeResponse(201))
        transaction = Transaction(type="expense", amount="4.5")
        assert asyncio.run(client.add_transaction(transaction)) == transaction
        assert session.request_calls[0]["url"].endswith("/transactions/expense")

    def test_delete_transaction(self, api_settings):
        client, session = make_client(api_settings, FakeResponse(204))
        assert asyncio.run(client.delete_transaction("3")) is None
        assert session.request_calls[0]["method"] == "DELETE"
        assert session.request_calls[0]["url"].endswith("/transactions/3")

    def test_delete_missing_transaction(self, api_settings):
        client, _ = make_client(api_settings, FakeResponse(404))
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(client.delete_transaction("3"))
        assert exc_info.value.entity_type == "transaction"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
