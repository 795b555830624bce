"""Test delivery rate policies."""

from liquidation_relay.core.types import RatePolicy
from liquidation_relay.delivery.rate_limit import (
    FixedIntervalLimiter,
    TokenBucket,
    create_rate_limiter,
)


class TestTokenBucket:
    """Test elapsed-time refill."""

    def test_starts_full_and_consumes(self, clock):
        bucket = TokenBucket(capacity=3, refill_rate=1.0, clock=clock)
        assert [bucket.try_acquire() for _ in range(4)] == [True, True, True, False]

    def test_refill_from_elapsed_time(self, clock):
        """Refill follows wall-clock time, not cycle count."""
        bucket = TokenBucket(capacity=5, refill_rate=2.0, clock=clock)
        for _ in range(5):
            bucket.try_acquire()
        clock.advance(0.25)
        assert not bucket.try_acquire()
        clock.advance(0.25)
        assert bucket.try_acquire()

    def test_never_exceeds_capacity(self, clock):
        """Long idle periods do not overfill the bucket."""
        bucket = TokenBucket(capacity=4, refill_rate=10.0, clock=clock)
        bucket.try_acquire()
        clock.advance(3600)
        assert bucket.tokens == 4
        assert sum(bucket.try_acquire() for _ in range(10)) == 4

    def test_refill_is_monotonic(self, clock):
        bucket = TokenBucket(capacity=10, refill_rate=1.0, clock=clock)
        for _ in range(10):
            bucket.try_acquire()
        seen = []
        for _ in range(15):
            clock.advance(1)
            seen.append(bucket.tokens)
        assert seen == sorted(seen)
        assert max(seen) == 10

    def test_clock_going_backwards_does_not_drain(self, clock):
        bucket = TokenBucket(capacity=2, refill_rate=1.0, clock=clock)
        clock.advance(-50)
        assert bucket.tokens == 2


class TestFixedIntervalLimiter:
    """Test one-send-per-cycle policy."""

    def test_one_permit_per_cycle(self):
        limiter = FixedIntervalLimiter()
        assert not limiter.try_acquire()
        limiter.start_cycle()
        assert limiter.try_acquire()
        assert not limiter.try_acquire()
        limiter.start_cycle()
        assert limiter.try_acquire()

    def test_unused_permits_do_not_accumulate(self):
        limiter = FixedIntervalLimiter()
        limiter.start_cycle()
        limiter.start_cycle()
        assert limiter.try_acquire()
        assert not limiter.try_acquire()


class TestCreateRateLimiter:
    def test_policies(self):
        assert isinstance(create_rate_limiter(RatePolicy.FIXED_INTERVAL), FixedIntervalLimiter)
        bucket = create_rate_limiter(RatePolicy.TOKEN_BUCKET, capacity=7, refill_rate=0.5)
        assert isinstance(bucket, TokenBucket)
        assert bucket.capacity == 7
        assert bucket.refill_rate == 0.5
