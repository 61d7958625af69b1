"""Tests for the rate limiting gate."""

import asyncio
from unittest.mock import AsyncMock

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from admission.app.exceptions import StorageUnavailableError
from admission.app.middleware.rate_limit import RateLimitMiddleware
from admission.app.rules import (
    FixedWindowRule,
    MinimumIntervalRule,
    RegionDelegator,
    TokenBucketRule,
)
from admission.app.storage import InMemoryStorage, StorageEntry


def _client(rule, **kwargs) -> TestClient:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, rule=rule, **kwargs)

    @app.get("/ping")
    async def ping(request: Request):
        return {"access_token": request.state.access_token}

    return TestClient(app, raise_server_exceptions=False)


def test_missing_access_token_returns_400():
    client = _client(FixedWindowRule(InMemoryStorage(), max_requests=5, window=60))

    resp = client.get("/ping")

    assert resp.status_code == 400
    assert resp.json() == {"detail": "Access token is missing."}


def test_allowed_request_exposes_access_token():
    client = _client(FixedWindowRule(InMemoryStorage(), max_requests=5, window=60))

    resp = client.get("/ping", headers={"X-Access-Token": "test-token"})

    assert resp.status_code == 200
    assert resp.json() == {"access_token": "test-token"}


def test_exceeded_limit_returns_429_with_retry_after():
    storage = InMemoryStorage()
    client = _client(FixedWindowRule(storage, max_requests=2, window=5))
    headers = {"X-Access-Token": "test-token"}

    assert client.get("/ping", headers=headers).status_code == 200
    assert client.get("/ping", headers=headers).status_code == 200
    resp = client.get("/ping", headers=headers)

    assert resp.status_code == 429
    assert resp.text == "Rate limit exceeded."
    assert 1 <= int(resp.headers["Retry-After"]) <= 5


def test_preseeded_full_entry_is_denied():
    storage = InMemoryStorage()
    rule = FixedWindowRule(storage, max_requests=5, window=60)
    # Hosts sharing storage must use the rule-scoped key
    asyncio.run(storage.set(rule.cache_key("test-token"), StorageEntry(count=5)))

    resp = _client(rule).get("/ping", headers={"X-Access-Token": "test-token"})

    assert resp.status_code == 429
    assert int(resp.headers["Retry-After"]) in (59, 60)


def test_minimum_interval_denies_second_request():
    client = _client(MinimumIntervalRule(InMemoryStorage(), interval=5))
    headers = {"X-Access-Token": "test-token"}

    assert client.get("/ping", headers=headers).status_code == 200
    resp = client.get("/ping", headers=headers)
    assert resp.status_code == 429
    assert resp.headers["Retry-After"] in ("4", "5")


def test_region_delegator_as_gate():
    storage = InMemoryStorage()
    delegator = RegionDelegator(
        primary_rule=MinimumIntervalRule(storage, interval=5),
        other_rule=TokenBucketRule(storage, capacity=10, refill_amount=3, refill_interval=0.00001),
        primary_token="US-Token",
    )
    client = _client(delegator)

    for _ in range(13):
        assert client.get("/ping", headers={"X-Access-Token": "EU-Token"}).status_code == 200

    assert client.get("/ping", headers={"X-Access-Token": "US-Token"}).status_code == 200
    assert client.get("/ping", headers={"X-Access-Token": "US-Token"}).status_code == 429


def test_custom_header_name():
    client = _client(
        FixedWindowRule(InMemoryStorage(), max_requests=1, window=60),
        header_name="X-Api-Key",
    )

    assert client.get("/ping", headers={"X-Access-Token": "t"}).status_code == 400
    assert client.get("/ping", headers={"X-Api-Key": "t"}).status_code == 200


def _failing_rule():
    rule = FixedWindowRule(InMemoryStorage(), max_requests=1, window=60)
    rule.evaluate = AsyncMock(side_effect=StorageUnavailableError("get", "k"))
    return rule


def test_storage_failure_fail_closed_returns_503():
    client = _client(_failing_rule(), fail_closed=True)

    resp = client.get("/ping", headers={"X-Access-Token": "t"})

    assert resp.status_code == 503
    assert "unavailable" in resp.json()["detail"]


def test_storage_failure_fail_open_passes_request():
    client = _client(_failing_rule(), fail_closed=False)

    resp = client.get("/ping", headers={"X-Access-Token": "t"})

    assert resp.status_code == 200
