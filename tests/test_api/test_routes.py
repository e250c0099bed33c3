"""Tests for the REST API: routing, status codes and error mapping.

Requests go through the full middleware stack via httpx's ASGI transport.
The database session, settings and payout gateway are swapped for the
test fixtures through app.dependency_overrides.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from escrow_ledger.api.deps import get_app_settings, get_db_session, get_payout_gateway
from escrow_ledger.infrastructure import redis_client
from escrow_ledger.infrastructure.database import engine as engine_module
from escrow_ledger.main import create_app

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

OWNER = "owner"

AGREEMENT = {
    "sender": "alice",
    "receiver": "bob",
    "middleman": "carol",
    "amount": 100,
    "commission": 5,
    "deposited_funds": 105,
}


@pytest_asyncio.fixture
async def client(session_factory, settings, payout_gateway) -> AsyncGenerator[AsyncClient, None]:
    app = create_app()

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_payout_gateway] = lambda: payout_gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _create(client: AsyncClient, **overrides) -> dict:
    response = await client.post("/api/v1/agreements", json={**AGREEMENT, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestAgreementRoutes:
    @pytest.mark.asyncio
    async def test_create(self, client: AsyncClient) -> None:
        body = await _create(client)

        assert body["id"] == 0
        assert body["status"] == "CREATED"
        assert body["fee"] == 1

    @pytest.mark.asyncio
    async def test_create_defaults_middleman_to_owner(self, client: AsyncClient) -> None:
        body = await _create(client, middleman=None)
        assert body["middleman"] == OWNER

    @pytest.mark.asyncio
    async def test_amount_mismatch_is_400(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/agreements", json={**AGREEMENT, "deposited_funds": 1}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "AMOUNT_MISMATCH"

    @pytest.mark.asyncio
    async def test_invalid_parties_is_400(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/agreements", json={**AGREEMENT, "receiver": "alice"})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_PARTIES"

    @pytest.mark.asyncio
    async def test_negative_amount_fails_validation(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/agreements", json={**AGREEMENT, "amount": -100, "deposited_funds": -95}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"amount": 2**64, "commission": 0, "deposited_funds": 2**64},
            {"amount": 2**63 - 1, "commission": 1, "deposited_funds": 2**63},
        ],
    )
    async def test_out_of_range_amounts_are_client_errors(
        self, client: AsyncClient, overrides: dict
    ) -> None:
        response = await client.post("/api/v1/agreements", json={**AGREEMENT, **overrides})

        assert response.status_code == 422
        assert (await client.get("/api/v1/agreements")).json() == []

    @pytest.mark.asyncio
    async def test_overflowing_sum_is_400(self, client: AsyncClient) -> None:
        big = 2**62
        response = await client.post(
            "/api/v1/agreements",
            json={**AGREEMENT, "amount": big, "commission": big, "deposited_funds": 2**63 - 1},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_ARGUMENT"

    @pytest.mark.asyncio
    async def test_pay_then_cancel(self, client: AsyncClient) -> None:
        await _create(client)

        paid = await client.post("/api/v1/agreements/0/pay", json={"caller": "alice"})
        assert paid.status_code == 200
        assert paid.json()["status"] == "PAID"

        canceled = await client.post("/api/v1/agreements/0/cancel", json={"caller": "carol"})
        assert canceled.status_code == 409
        assert canceled.json()["error"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_unauthorized_is_403(self, client: AsyncClient) -> None:
        await _create(client)

        response = await client.post("/api/v1/agreements/0/pay", json={"caller": "bob"})

        assert response.status_code == 403
        assert response.json()["error"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_unknown_agreement_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/agreements/7")

        assert response.status_code == 404
        assert response.json()["error"] == "AGREEMENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_status_and_events(self, client: AsyncClient) -> None:
        await _create(client)
        await client.post("/api/v1/agreements/0/cancel", json={"caller": "bob"})

        status = (await client.get("/api/v1/agreements/0/status")).json()
        assert status["is_canceled"] is True
        assert status["allowed_events"] == []

        events = (await client.get("/api/v1/agreements/0/events")).json()
        assert [e["event_type"] for e in events] == ["AGREEMENT_CREATED", "AGREEMENT_CANCELED"]
        assert events[1]["metadata"]["beneficiary"] == "alice"

    @pytest.mark.asyncio
    async def test_list_filters_by_status(self, client: AsyncClient) -> None:
        await _create(client)
        await _create(client)
        await client.post("/api/v1/agreements/1/pay", json={"caller": "carol"})

        response = await client.get("/api/v1/agreements", params={"status": "PAID"})

        assert [a["id"] for a in response.json()] == [1]

    @pytest.mark.asyncio
    async def test_roles(self, client: AsyncClient) -> None:
        await _create(client)

        role = (await client.get("/api/v1/agreements/0/roles/carol")).json()
        assert role["role"] == "MIDDLEMAN"

        outsider = (await client.get("/api/v1/agreements/0/roles/mallory")).json()
        assert outsider["role"] == "NONE"

    @pytest.mark.asyncio
    async def test_party_agreements(self, client: AsyncClient) -> None:
        await _create(client)
        await _create(client, sender="bob", receiver="alice")

        response = await client.get("/api/v1/parties/alice/agreements", params={"role": "SENDER"})
        assert response.json()["agreement_ids"] == [0]

        response = await client.get("/api/v1/parties/alice/agreements", params={"role": "NONE"})
        assert response.status_code == 400


class FakeRedis:
    """In-memory stand-in for the few Redis commands the idempotency helpers use."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None):
        await asyncio.sleep(0)
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(0)
        return self.store.get(key)

    async def delete(self, key: str) -> int:
        return 1 if self.store.pop(key, None) is not None else 0

    async def ping(self) -> bool:
        return True


@pytest.fixture
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr(redis_client, "_redis_client", fake)
    return fake


class TestIdempotency:
    KEY = "escrow:idempotency:order-1"

    @pytest.mark.asyncio
    async def test_replayed_key_is_rejected(
        self, client: AsyncClient, fake_redis: FakeRedis
    ) -> None:
        await _create(client, idempotency_key="order-1")
        replay = await client.post(
            "/api/v1/agreements", json={**AGREEMENT, "idempotency_key": "order-1"}
        )

        assert replay.status_code == 409
        assert replay.json()["error"] == "DUPLICATE_OPERATION"
        assert fake_redis.store == {self.KEY: "0"}
        listed = (await client.get("/api/v1/agreements")).json()
        assert len(listed) == 1

    @pytest.mark.asyncio
    async def test_overlapping_requests_take_one_deposit(
        self, client: AsyncClient, fake_redis: FakeRedis
    ) -> None:
        body = {**AGREEMENT, "idempotency_key": "order-1"}

        first, second = await asyncio.gather(
            client.post("/api/v1/agreements", json=body),
            client.post("/api/v1/agreements", json=body),
        )

        assert sorted([first.status_code, second.status_code]) == [201, 409]
        assert fake_redis.store == {self.KEY: "0"}
        audit = (await client.get("/api/v1/admin/audit")).json()
        assert audit["total_deposited"] == 105

    @pytest.mark.asyncio
    async def test_failed_create_releases_the_key(
        self, client: AsyncClient, fake_redis: FakeRedis
    ) -> None:
        rejected = await client.post(
            "/api/v1/agreements",
            json={**AGREEMENT, "receiver": "alice", "idempotency_key": "order-1"},
        )
        assert rejected.status_code == 400
        assert fake_redis.store == {}

        body = await _create(client, idempotency_key="order-1")
        assert body["id"] == 0
        assert fake_redis.store == {self.KEY: "0"}

    @pytest.mark.asyncio
    async def test_key_ignored_without_redis(
        self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(redis_client, "_redis_client", None)

        await _create(client, idempotency_key="order-1")
        body = await _create(client, idempotency_key="order-1")
        assert body["id"] == 1


class TestBalanceRoutes:
    @pytest.mark.asyncio
    async def test_withdraw_flow(self, client: AsyncClient, payout_gateway) -> None:
        await _create(client)
        await client.post("/api/v1/agreements/0/pay", json={"caller": "alice"})

        balance = (await client.get("/api/v1/balances/bob")).json()
        assert balance == {"party": "bob", "balance": 99}

        response = await client.post("/api/v1/balances/bob/withdraw", json={"caller": "bob"})
        assert response.status_code == 200
        assert response.json()["amount"] == 99
        assert payout_gateway.transfers[0][:2] == ("bob", 99)

        again = await client.post("/api/v1/balances/bob/withdraw", json={"caller": "bob"})
        assert again.status_code == 400
        assert again.json()["error"] == "NOTHING_TO_WITHDRAW"

    @pytest.mark.asyncio
    async def test_cannot_withdraw_for_someone_else(self, client: AsyncClient) -> None:
        await _create(client)
        await client.post("/api/v1/agreements/0/pay", json={"caller": "alice"})

        response = await client.post("/api/v1/balances/bob/withdraw", json={"caller": "mallory"})

        assert response.status_code == 403
        assert (await client.get("/api/v1/balances/bob")).json()["balance"] == 99


class TestAdminRoutes:
    @pytest.mark.asyncio
    async def test_fee_rate_round_trip(self, client: AsyncClient) -> None:
        assert (await client.get("/api/v1/admin/fee-rate")).json() == {
            "fee_rate_percent": 1,
            "owner": OWNER,
        }

        response = await client.put(
            "/api/v1/admin/fee-rate", json={"caller": OWNER, "fee_rate_percent": 3}
        )
        assert response.status_code == 200

        body = await _create(client)
        assert body["fee"] == 3

    @pytest.mark.asyncio
    async def test_fee_rate_owner_only(self, client: AsyncClient) -> None:
        response = await client.put(
            "/api/v1/admin/fee-rate", json={"caller": "alice", "fee_rate_percent": 3}
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_fee_rate_out_of_range(self, client: AsyncClient) -> None:
        response = await client.put(
            "/api/v1/admin/fee-rate", json={"caller": OWNER, "fee_rate_percent": 101}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_service_withdraw_and_audit(self, client: AsyncClient) -> None:
        await _create(client)

        response = await client.post("/api/v1/admin/withdraw", json={"caller": OWNER})
        assert response.json()["amount"] == 1

        audit = (await client.get("/api/v1/admin/audit")).json()
        assert audit["balanced"] is True
        assert audit["total_withdrawn"] == 1
        assert audit["held_in_custody"] == 104


class TestHealthAndTracing:
    @pytest.mark.asyncio
    async def test_health_degraded_without_redis(
        self, client: AsyncClient, engine, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(engine_module, "_engine", engine)
        monkeypatch.setattr(redis_client, "_redis_client", None)

        body = (await client.get("/health")).json()

        assert body["database"] == "healthy"
        assert body["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/agreements", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"
