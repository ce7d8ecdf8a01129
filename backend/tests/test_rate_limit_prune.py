from types import SimpleNamespace

from newsdesk.utils.rate_limit import SlidingWindowRateLimiter, ai_throttle_key, get_client_ip


def test_rate_limiter_prunes_stale_buckets_on_interval(monkeypatch):
    # Force prune on every call for deterministic behavior.
    rl = SlidingWindowRateLimiter(max_buckets=10_000, prune_interval_seconds=1)

    t = {"now": 1000.0}

    def fake_monotonic():
        return t["now"]

    monkeypatch.setattr("newsdesk.utils.rate_limit.time.monotonic", fake_monotonic)

    for i in range(200):
        ok, _ = rl.allow(f"ai:ip:10.0.0.{i}", limit=1, window_seconds=60)
        assert ok is True
    assert len(rl) == 200

    # Advance beyond window + prune interval and hit a new key to trigger prune.
    t["now"] = 1000.0 + 120.0
    ok, _ = rl.allow("ai:ip:new", limit=1, window_seconds=60)
    assert ok is True
    assert len(rl) == 1

    ok, _ = rl.allow("ai:ip:10.0.0.0", limit=1, window_seconds=60)
    assert ok is True


def test_rate_limiter_blocks_inside_window(monkeypatch):
    rl = SlidingWindowRateLimiter()
    t = {"now": 50.0}
    monkeypatch.setattr("newsdesk.utils.rate_limit.time.monotonic", lambda: t["now"])

    assert rl.allow("k", limit=2, window_seconds=60) == (True, 1)
    assert rl.allow("k", limit=2, window_seconds=60) == (True, 2)
    assert rl.allow("k", limit=2, window_seconds=60) == (False, 2)

    t["now"] = 111.0
    assert rl.allow("k", limit=2, window_seconds=60) == (True, 1)


def test_rate_limiter_disabled_limit_always_allows():
    rl = SlidingWindowRateLimiter()
    assert rl.allow("k", limit=0, window_seconds=60) == (True, 0)


def _request(peer_ip, headers=None):
    return SimpleNamespace(headers=headers or {}, client=SimpleNamespace(host=peer_ip))


def test_client_ip_ignores_forwarded_headers_from_untrusted_peer():
    req = _request("198.51.100.15", {"x-forwarded-for": "203.0.113.9", "x-real-ip": "203.0.113.9"})
    assert get_client_ip(req, ["10.0.0.0/8"]) == "198.51.100.15"


def test_client_ip_uses_forwarded_headers_from_trusted_proxy():
    req = _request("10.1.2.3", {"x-forwarded-for": "1.1.1.1, 203.0.113.9"})
    assert get_client_ip(req, ["10.0.0.0/8"]) == "203.0.113.9"

    req = _request("10.1.2.3", {"x-real-ip": " 203.0.113.7 "})
    assert get_client_ip(req, ["10.0.0.0/8"]) == "203.0.113.7"


def test_client_ip_reads_trusted_proxies_from_settings(monkeypatch):
    monkeypatch.setenv("TRUSTED_PROXY_CIDRS", "10.0.0.0/8")
    req = _request("10.9.9.9", {"x-real-ip": "203.0.113.7"})
    assert get_client_ip(req) == "203.0.113.7"


def test_rate_limiter_sweeps_idle_keys_past_key_cap(monkeypatch):
    rl = SlidingWindowRateLimiter(max_buckets=3, prune_interval_seconds=3600)
    t = {"now": 5000.0}
    monkeypatch.setattr("newsdesk.utils.rate_limit.time.monotonic", lambda: t["now"])

    for i in range(4):
        rl.allow(f"ai:ip:10.0.0.{i}", limit=5, window_seconds=60)
    assert len(rl) == 4

    # Sweep interval not reached, but the key count is over the cap.
    t["now"] = 5061.0
    rl.allow("ai:ip:editor", limit=5, window_seconds=60)
    assert len(rl) == 1


def test_throttle_key_uses_client_ip():
    assert ai_throttle_key(_request("198.51.100.15")) == "ai:ip:198.51.100.15"
    assert ai_throttle_key(SimpleNamespace(headers={}, client=None)) == "ai:ip:unknown"


def test_client_ip_falls_back_to_peer_when_trusted_proxy_sends_no_headers():
    assert get_client_ip(_request("10.1.2.3", {"x-forwarded-for": " , "}), ["10.0.0.0/8"]) == "10.1.2.3"
