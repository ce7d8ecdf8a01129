"""Request throttle for the AI editorial routes.

Every AI route call costs upstream quota, so an editor's client gets a fixed
number of calls per minute (``RATE_LIMIT_AI_PER_MIN``) when
``RATE_LIMIT_AI_ENABLED`` is on. Status and health checks are not throttled.
"""

import ipaddress
import time
from collections import deque
from threading import Lock
from typing import Optional

from fastapi import HTTPException, Request

from newsdesk.core.config import get_settings

_MAX_KEYS = 50_000
_SWEEP_INTERVAL_SECONDS = 60
AI_WINDOW_SECONDS = 60


def _trim(hits: deque[float], cutoff: float) -> None:
    while hits and hits[0] <= cutoff:
        hits.popleft()


class SlidingWindowRateLimiter:
    """Call timestamps per client key, counted over a sliding window.

    Keys whose calls have all aged out are swept on a timer, or at once when
    the key count passes ``max_buckets``, so one-off editor IPs do not pile up.
    """

    def __init__(
        self,
        *,
        max_buckets: int = _MAX_KEYS,
        prune_interval_seconds: int = _SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._hits: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._max_keys = max_buckets
        self._sweep_every = max(1, int(prune_interval_seconds))
        self._last_sweep_at = 0.0

    def allow(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        """Record a call for *key* if it fits; return (allowed, calls in window).

        A non-positive limit or window turns the throttle off.
        """
        if limit <= 0 or window_seconds <= 0:
            return True, 0
        now = time.monotonic()
        cutoff = now - window_seconds
        with self._lock:
            if len(self._hits) > self._max_keys or now - self._last_sweep_at >= self._sweep_every:
                self._drop_idle_keys(cutoff)
                self._last_sweep_at = now

            hits = self._hits.setdefault(key, deque())
            _trim(hits, cutoff)
            if len(hits) >= limit:
                return False, len(hits)
            hits.append(now)
            return True, len(hits)

    def _drop_idle_keys(self, cutoff: float) -> None:
        # Caller holds the lock.
        idle = []
        for key, hits in self._hits.items():
            _trim(hits, cutoff)
            if not hits:
                idle.append(key)
        for key in idle:
            del self._hits[key]

    def __len__(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep_at = 0.0


rate_limiter = SlidingWindowRateLimiter()


def _is_trusted_proxy(peer_ip: str, cidrs: list[str]) -> bool:
    if peer_ip in cidrs:
        return True
    try:
        addr = ipaddress.ip_address(peer_ip)
    except ValueError:
        return False
    for cidr in cidrs:
        try:
            if addr in ipaddress.ip_network(cidr, strict=False):
                return True
        except ValueError:
            continue
    return False


def get_client_ip(request: Request, trusted_proxy_cidrs: Optional[list[str]] = None) -> Optional[str]:
    """Address of the editor's machine.

    Behind the newsroom reverse proxy the socket peer is the proxy itself, so
    ``X-Real-IP`` then ``X-Forwarded-For`` are read, but only when the peer is
    listed in ``TRUSTED_PROXY_CIDRS``. Any other peer is taken at face value.
    """
    peer_ip = request.client.host if request.client else None
    if trusted_proxy_cidrs is None:
        trusted_proxy_cidrs = get_settings().trusted_proxy_cidrs
    if not (peer_ip and trusted_proxy_cidrs and _is_trusted_proxy(peer_ip, trusted_proxy_cidrs)):
        return peer_ip

    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    hops = [hop.strip() for hop in request.headers.get("x-forwarded-for", "").split(",") if hop.strip()]
    # The proxy appends the address it saw last.
    return hops[-1] if hops else peer_ip


def ai_throttle_key(request: Request) -> str:
    return f"ai:ip:{get_client_ip(request) or 'unknown'}"


def enforce_ai_rate_limit(request: Request) -> None:
    """Route dependency: 429 with ``Retry-After`` once a client uses up its minute."""
    settings = get_settings()
    if not settings.rate_limit_ai_enabled:
        return
    allowed, _ = rate_limiter.allow(ai_throttle_key(request), settings.rate_limit_ai_per_min, AI_WINDOW_SECONDS)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many AI requests",
            headers={"Retry-After": str(AI_WINDOW_SECONDS)},
        )
