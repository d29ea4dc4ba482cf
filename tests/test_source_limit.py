from aprsgate.source_limit import BlockedEntry, SourceRateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make(threshold=3, timeout=60.0):
    clock = FakeClock()
    return SourceRateLimiter(threshold, timeout, clock=clock), clock


def test_empty_source_always_allowed():
    limiter, _ = make(threshold=1)
    for _ in range(5):
        assert limiter.allow("") == (True, False)
    assert limiter.is_blocked("") is False


def test_trips_after_threshold_and_reports_once():
    limiter, _ = make(threshold=3)
    results = [limiter.allow("N0CALL") for _ in range(3)]
    assert results == [(True, False)] * 3
    assert limiter.allow("N0CALL") == (False, True)
    assert limiter.allow("N0CALL") == (False, False)
    assert limiter.is_blocked("N0CALL") is True


def test_block_expires_to_fresh_window():
    limiter, clock = make(threshold=2, timeout=60.0)
    for _ in range(3):
        limiter.allow("N0CALL")
    assert limiter.is_blocked("N0CALL")
    clock.advance(60.0)
    assert limiter.is_blocked("N0CALL") is False
    assert limiter.allow("N0CALL") == (True, False)
    assert limiter.allow("N0CALL") == (True, False)
    assert limiter.allow("N0CALL") == (False, True)


def test_window_rollover_resets_count():
    limiter, clock = make(threshold=2)
    assert limiter.allow("A") == (True, False)
    assert limiter.allow("A") == (True, False)
    clock.advance(60.0)
    assert limiter.allow("A") == (True, False)
    assert limiter.allow("A") == (True, False)
    assert limiter.is_blocked("A") is False


def test_sources_are_independent():
    limiter, _ = make(threshold=1)
    limiter.allow("A")
    assert limiter.allow("A") == (False, True)
    assert limiter.allow("B") == (True, False)
    assert limiter.is_blocked("B") is False


def test_blocked_sources_sorted_by_expiry():
    limiter, clock = make(threshold=1, timeout=100.0)
    limiter.allow("LATE")
    limiter.allow("EARLY")
    limiter.allow("EARLY")
    clock.advance(10.0)
    limiter.allow("LATE")
    blocked = limiter.blocked_sources()
    assert [b.source for b in blocked] == ["EARLY", "LATE"]
    assert blocked[0].blocked_until < blocked[1].blocked_until
    assert all(isinstance(b, BlockedEntry) for b in blocked)


def test_blocked_sources_excludes_expired():
    limiter, clock = make(threshold=1, timeout=30.0)
    limiter.allow("A")
    limiter.allow("A")
    clock.advance(31.0)
    assert limiter.blocked_sources() == []


def test_idle_buckets_are_evicted():
    limiter, clock = make()
    limiter.allow("A")
    assert len(limiter) == 1
    clock.advance(400.0)
    limiter.allow("B")
    assert len(limiter) == 1
    assert limiter.is_blocked("A") is False


def test_blocked_bucket_survives_cleanup():
    limiter, clock = make(threshold=1, timeout=1000.0)
    limiter.allow("A")
    limiter.allow("A")
    clock.advance(400.0)
    limiter.allow("B")
    assert len(limiter) == 2
    assert limiter.is_blocked("A") is True