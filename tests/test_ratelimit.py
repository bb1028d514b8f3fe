"""
Tests for the outbound token bucket
"""
from showtracker.ratelimit import RateLimiter


class FakeClock:
    def __init__(self):
        self.t = 100.0

    def __call__(self):
        return self.t


def test_burst_then_refill():
    clock = FakeClock()
    limiter = RateLimiter(rate=1.0, burst=2, clock=clock)
    assert limiter.try_acquire()
    assert limiter.try_acquire()
    assert not limiter.try_acquire()

    clock.t += 1.0
    assert limiter.try_acquire()
    assert not limiter.try_acquire()


def test_wait_sleeps_until_token():
    clock = FakeClock()
    sleeps = []

    def sleep(seconds):
        sleeps.append(seconds)
        clock.t += 0.5

    limiter = RateLimiter(rate=1.0, burst=1, clock=clock, sleep=sleep)
    limiter.wait()
    limiter.wait()
    assert len(sleeps) == 2


def test_zero_rate_disables_limiting():
    limiter = RateLimiter(rate=0)
    assert all(limiter.try_acquire() for _ in range(100))
