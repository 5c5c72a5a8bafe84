"""Tests for security middleware — headers, request IDs, rate limiting.

Learn: No Redis is connected in tests, so the rate limiter normally
passes requests straight through. The limit itself is exercised with
a tiny in-memory stand-in for the two Redis commands it uses.
"""

import pytest

from userbase.middleware import rate_limit


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    """Health endpoint returns security headers."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.headers["Cache-Control"] == "no-store"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "no-referrer"


@pytest.mark.asyncio
async def test_security_headers_on_errors(unauthenticated_client):
    """Error responses carry the same headers as successes."""
    r = await unauthenticated_client.get("/api/users")
    assert r.status_code == 401
    assert r.headers["Cache-Control"] == "no-store"
    assert r.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/api/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/api/health")
    assert "Strict-Transport-Security" not in r.headers


# ═══════════════════════════════════════════════════════════
# Rate limiting
# ═══════════════════════════════════════════════════════════


class FakeRedis:
    def __init__(self):
        self.counts = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        return True


@pytest.mark.asyncio
async def test_login_is_rate_limited(client, monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(rate_limit, "get_redis", lambda: fake)

    statuses = []
    for _ in range(12):
        r = await client.post(
            "/api/auth/login", json={"email": "a@x.com", "password": "nope"}
        )
        statuses.append(r.status_code)

    assert statuses[:10] == [401] * 10
    assert statuses[10:] == [429, 429]
    assert r.json() == {"code": 429, "message": "rate limit exceeded"}
    assert r.headers["Retry-After"] == "60"


@pytest.mark.asyncio
async def test_rate_limit_headers(client, monkeypatch):
    monkeypatch.setattr(rate_limit, "get_redis", lambda: FakeRedis())
    r = await client.get("/api/health")
    assert r.headers["X-RateLimit-Limit"] == "100"
    assert r.headers["X-RateLimit-Remaining"] == "99"
