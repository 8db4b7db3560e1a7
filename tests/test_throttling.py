import threading
import time

import pytest

from geo_facade.geocoding.throttling import (
    NoOpRateLimiter,
    TokenBucket,
    reset_shared_bucket,
    shared_bucket,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_invalid_parameters():
    with pytest.raises(ValueError):
        TokenBucket(0, 10)
    with pytest.raises(ValueError):
        TokenBucket(5, 0)

    bucket = TokenBucket(2, 10)
    with pytest.raises(ValueError):
        bucket.acquire(0)
    with pytest.raises(ValueError):
        bucket.acquire(3)


def test_refill_never_exceeds_capacity():
    clock = FakeClock()
    bucket = TokenBucket(3, 3600, clock=clock)

    assert bucket.try_acquire()
    assert bucket.try_acquire()
    assert bucket.try_acquire()
    assert not bucket.try_acquire()
    assert bucket.available == pytest.approx(0.0)

    clock.now += 1800  # half the interval refills 1.5 tokens
    assert bucket.available == pytest.approx(1.5)
    assert bucket.try_acquire()
    assert not bucket.try_acquire()

    clock.now += 10 * 3600
    assert bucket.available == pytest.approx(3.0)


def test_concurrent_acquisitions_bounded_by_capacity():
    capacity = 3
    bucket = TokenBucket(capacity, 3600)
    granted = []
    lock = threading.Lock()

    def worker(i):
        bucket.acquire()
        with lock:
            granted.append(i)

    threads = [threading.Thread(target=worker, args=(i,), daemon=True) for i in range(6)]
    for t in threads:
        t.start()
    time.sleep(0.3)

    # Refill is one token per 20 minutes: the other three are still waiting
    assert len(granted) == capacity
    assert len(set(granted)) == capacity
    assert bucket.available < 1


def test_waiters_are_released_by_refill():
    bucket = TokenBucket(2, 0.2)  # 10 tokens per second
    grant_times = []
    lock = threading.Lock()
    start = time.monotonic()

    def worker():
        bucket.acquire()
        with lock:
            grant_times.append(time.monotonic() - start)

    threads = [threading.Thread(target=worker, daemon=True) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert len(grant_times) == 5
    grant_times.sort()
    # Two immediately, then roughly one every 0.1s
    assert grant_times[1] < 0.08
    assert grant_times[4] >= 0.25


def test_waiters_are_served_in_arrival_order():
    bucket = TokenBucket(1, 0.2)
    assert bucket.try_acquire()
    order = []
    lock = threading.Lock()

    def worker(i):
        bucket.acquire()
        with lock:
            order.append(i)

    threads = []
    for i in range(4):
        t = threading.Thread(target=worker, args=(i,), daemon=True)
        t.start()
        threads.append(t)
        time.sleep(0.02)  # let each waiter queue up before the next
    for t in threads:
        t.join(timeout=5)

    assert order == [0, 1, 2, 3]


def test_try_acquire_does_not_jump_the_queue():
    bucket = TokenBucket(1, 0.5)
    assert bucket.try_acquire()

    waiter = threading.Thread(target=bucket.acquire, daemon=True)
    waiter.start()
    time.sleep(0.05)

    assert not bucket.try_acquire()
    waiter.join(timeout=5)
    assert not waiter.is_alive()


def test_noop_limiter():
    limiter = NoOpRateLimiter()
    limiter.wait()
    limiter.acquire(100)


def test_shared_bucket_is_process_wide():
    first = shared_bucket(10, 60)
    assert shared_bucket(10, 60) is first
    assert shared_bucket(99, 1) is first

    reset_shared_bucket()
    assert shared_bucket(10, 60) is not first
