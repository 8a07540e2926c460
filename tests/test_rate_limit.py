from __future__ import annotations

from edurpg.core.config import RateLimitRule
from edurpg.core.limits.rate_limit import API_RULE, LOGIN_RULE, SENSITIVE_RULE, RateLimitService, RateLimitStore


def _service(rule, clock):
    return RateLimitService(rule, RateLimitStore(), time_fn=lambda: clock["now"])


def test_presets():
    assert (LOGIN_RULE.window_seconds, LOGIN_RULE.max_attempts, LOGIN_RULE.block_seconds) == (900, 5, 1800)
    assert (API_RULE.window_seconds, API_RULE.max_attempts, API_RULE.block_seconds) == (60, 100, 300)
    assert (SENSITIVE_RULE.window_seconds, SENSITIVE_RULE.max_attempts, SENSITIVE_RULE.block_seconds) == (60, 10, 600)


def test_window_counts_down_and_denies():
    clock = {"now": 1000.0}
    svc = _service(RateLimitRule(window_seconds=60, max_attempts=3), clock)
    assert [svc.check("k").remaining for _ in range(3)] == [2, 1, 0]
    denied = svc.check("k")
    assert not denied.allowed
    assert not denied.blocked
    assert denied.reset_at == 1020.0
    assert denied.retry_after_seconds(clock["now"]) == 20


def test_new_window_resets_count():
    clock = {"now": 0.0}
    svc = _service(RateLimitRule(window_seconds=60, max_attempts=1), clock)
    assert svc.check("k").allowed
    assert not svc.check("k").allowed
    clock["now"] = 61.0
    assert svc.check("k").allowed


def test_block_outlives_window():
    clock = {"now": 0.0}
    svc = _service(RateLimitRule(window_seconds=60, max_attempts=2, block_seconds=300), clock)
    svc.check("ip")
    svc.check("ip")
    res = svc.check("ip")
    assert res.blocked
    assert res.block_expires == 300.0
    assert res.retry_after_seconds(0.0) == 300

    clock["now"] = 120.0
    still = svc.check("ip")
    assert still.blocked and not still.allowed
    assert svc.status("ip").blocked

    clock["now"] = 301.0
    assert svc.check("ip").allowed


def test_keys_are_independent():
    clock = {"now": 0.0}
    svc = _service(RateLimitRule(window_seconds=60, max_attempts=1), clock)
    assert svc.check("a").allowed
    assert svc.check("b").allowed
    assert not svc.check("a").allowed


def test_status_does_not_consume():
    clock = {"now": 0.0}
    svc = _service(RateLimitRule(window_seconds=60, max_attempts=2), clock)
    assert svc.status("k").remaining == 2
    svc.check("k")
    assert svc.status("k").remaining == 1
    assert svc.status("k").remaining == 1


def test_reset_clears_window_and_block():
    clock = {"now": 0.0}
    svc = _service(RateLimitRule(window_seconds=60, max_attempts=1, block_seconds=600), clock)
    svc.check("k")
    assert svc.check("k").blocked
    svc.reset("k")
    assert svc.check("k").allowed


def test_store_is_shared_only_when_passed():
    clock = {"now": 0.0}
    rule = RateLimitRule(window_seconds=60, max_attempts=1)
    shared = RateLimitStore()
    a = RateLimitService(rule, shared, time_fn=lambda: clock["now"])
    b = RateLimitService(rule, shared, time_fn=lambda: clock["now"])
    c = _service(rule, clock)
    assert a.check("k").allowed
    assert not b.check("k").allowed
    assert c.check("k").allowed


def test_cleanup_drops_stale_windows():
    clock = {"now": 0.0}
    store = RateLimitStore()
    svc = RateLimitService(RateLimitRule(window_seconds=60, max_attempts=5), store, time_fn=lambda: clock["now"])
    svc.check("a")
    svc.check("b")
    assert len(store) == 2
    assert store.cleanup(now=10_000.0, max_age_seconds=3600) == 2
    assert len(store) == 0


def test_previous_window_dropped_when_new_one_starts():
    clock = {"now": 0.0}
    store = RateLimitStore()
    svc = RateLimitService(RateLimitRule(window_seconds=60, max_attempts=5), store, time_fn=lambda: clock["now"])
    for i in range(500):
        clock["now"] = i * 60.0
        svc.check("api:1.2.3.4")
    assert len(store) == 1


def test_store_stays_bounded_with_many_clients():
    clock = {"now": 0.0}
    store = RateLimitStore()
    svc = RateLimitService(RateLimitRule(window_seconds=60, max_attempts=5), store, time_fn=lambda: clock["now"], cleanup_every=10)
    for i in range(500):
        clock["now"] = i * 60.0
        svc.check(f"api:10.0.{i // 256}.{i % 256}")
    # one hour of windows plus the checks since the last sweep
    assert len(store) <= 75


def test_periodic_cleanup_keeps_longer_windows_of_a_shared_store():
    clock = {"now": 0.0}
    store = RateLimitStore()
    login = RateLimitService(RateLimitRule(window_seconds=900, max_attempts=1), store, time_fn=lambda: clock["now"])
    api = RateLimitService(RateLimitRule(window_seconds=60, max_attempts=100), store, time_fn=lambda: clock["now"], cleanup_every=1)
    assert login.check("login:kid").allowed
    clock["now"] = 600.0
    api.check("api:1.2.3.4")
    assert not login.check("login:kid").allowed
