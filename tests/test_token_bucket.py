"""Tests for the token bucket rule."""

from datetime import timedelta

import pytest

from admission.app.exceptions import InvalidRuleConfigError
from admission.app.rules import TokenBucketRule
from admission.app.storage import InMemoryStorage, StorageEntry


class TestTokenBucketRule:
    """Tests for continuous refill and token consumption."""

    @pytest.mark.asyncio
    async def test_full_bucket_allows_capacity_then_denies(self, storage, clock):
        """With no elapsed time exactly `capacity` requests pass."""
        rule = TokenBucketRule(storage, capacity=5, refill_amount=1, refill_interval=60, clock=clock)

        for _ in range(5):
            assert (await rule.evaluate("k")).allowed is True

        result = await rule.evaluate("k")
        assert result.allowed is False
        assert result.entry.tokens == pytest.approx(0.0)
        assert result.retry_after == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_fast_refill_keeps_pace_with_clock_ticks(self, storage, clock):
        """capacity=10, 3 tokens per 0.01ms: 13 calls spaced 5µs apart all pass."""
        rule = TokenBucketRule(
            storage,
            capacity=10,
            refill_amount=3,
            refill_interval=timedelta(milliseconds=0.01),
            clock=clock,
        )

        for _ in range(13):
            result = await rule.evaluate("test-token")
            assert result.allowed is True
            clock.advance(0.000005)

    @pytest.mark.asyncio
    async def test_fast_refill_with_real_clock(self):
        """Same scenario against wall-clock time, as a host would run it."""
        rule = TokenBucketRule(
            InMemoryStorage(),
            capacity=10,
            refill_amount=3,
            refill_interval=timedelta(milliseconds=0.01),
        )

        for _ in range(13):
            assert (await rule.evaluate("test-token")).allowed is True

    @pytest.mark.asyncio
    async def test_fractional_refill_is_not_lost(self, storage, clock):
        """Partial periods accumulate across calls instead of being truncated."""
        rule = TokenBucketRule(storage, capacity=1, refill_amount=1, refill_interval=1, clock=clock)
        assert (await rule.evaluate("k")).allowed is True

        clock.advance(0.4)
        first = await rule.evaluate("k")
        assert first.allowed is False
        assert first.entry.tokens == pytest.approx(0.4, abs=1e-6)

        clock.advance(0.4)
        second = await rule.evaluate("k")
        assert second.allowed is False
        assert second.entry.tokens == pytest.approx(0.8, abs=1e-6)
        assert second.retry_after == pytest.approx(0.2, abs=1e-6)
        assert second.retry_after_seconds == 1

        clock.advance(0.25)
        assert (await rule.evaluate("k")).allowed is True

    @pytest.mark.asyncio
    async def test_denial_persists_refill_bookkeeping(self, storage, clock):
        rule = TokenBucketRule(storage, capacity=1, refill_amount=1, refill_interval=10, clock=clock)
        await rule.evaluate("k")
        clock.advance(3)

        await rule.evaluate("k")
        entry = await storage.get("TokenBucketRule_k")
        assert entry.last_refill_time == clock.now
        assert entry.tokens == pytest.approx(0.3)

    @pytest.mark.asyncio
    async def test_refill_is_capped_at_capacity(self, storage, clock):
        rule = TokenBucketRule(storage, capacity=3, refill_amount=2, refill_interval=1, clock=clock)
        await rule.evaluate("k")
        clock.advance(100)

        result = await rule.evaluate("k")
        assert result.allowed is True
        assert result.entry.tokens == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_entry_without_tokens_starts_full(self, storage, clock):
        """An entry carrying no token count is treated as a full bucket."""
        await storage.set("TokenBucketRule_k", StorageEntry(count=3, last_refill_time=clock.now))
        rule = TokenBucketRule(storage, capacity=2, refill_amount=1, refill_interval=60, clock=clock)

        result = await rule.evaluate("k")
        assert result.allowed is True
        assert result.entry.tokens == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_unknown_key_matches_fresh_entry(self, storage, clock):
        """An absent key behaves like a full bucket refilled just now."""
        rule = TokenBucketRule(storage, capacity=2, refill_amount=1, refill_interval=10, clock=clock)

        async def run(identity):
            outcomes = []
            for step in (0, 0, 0, 10, 0):
                clock.advance(step)
                result = await rule.evaluate(identity)
                outcomes.append((result.allowed, round(result.entry.tokens, 6)))
            return outcomes

        fresh = await run("unknown")
        await storage.set(
            "TokenBucketRule_seeded",
            StorageEntry(tokens=2.0, last_access_time=clock.now, last_refill_time=clock.now),
        )
        seeded = await run("seeded")
        assert fresh == seeded
        assert [allowed for allowed, _ in fresh] == [True, True, False, True, False]

    def test_entry_ttl_covers_full_refill(self, storage):
        rule = TokenBucketRule(storage, capacity=10, refill_amount=2, refill_interval=3, ttl_multiplier=2)
        assert rule.horizon == pytest.approx(15.0)
        assert rule.entry_ttl == pytest.approx(30.0)

    def test_entry_ttl_has_floor(self, storage):
        rule = TokenBucketRule(storage, capacity=10, refill_amount=3, refill_interval=0.00001)
        assert rule.entry_ttl == 1.0

    @pytest.mark.parametrize(
        ("capacity", "refill_amount", "refill_interval"),
        [(0, 1, 1), (10, 0, 1), (10, 1, 0), (-1, 1, 1)],
    )
    def test_rejects_invalid_config(self, storage, capacity, refill_amount, refill_interval):
        with pytest.raises(InvalidRuleConfigError):
            TokenBucketRule(
                storage,
                capacity=capacity,
                refill_amount=refill_amount,
                refill_interval=refill_interval,
            )
