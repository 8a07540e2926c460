from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from edurpg.core.config.models import RateLimitRule


LOGIN_RULE = RateLimitRule(window_seconds=15 * 60, max_attempts=5, block_seconds=30 * 60)
API_RULE = RateLimitRule(window_seconds=60, max_attempts=100, block_seconds=5 * 60)
SENSITIVE_RULE = RateLimitRule(window_seconds=60, max_attempts=10, block_seconds=10 * 60)


@dataclass
class WindowState:
    attempts: int
    window_start: float
    blocked: bool = False
    block_expires: Optional[float] = None


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    blocked: bool = False
    block_expires: Optional[float] = None

    def retry_after_seconds(self, now: float) -> int:
        until = self.block_expires if self.blocked and self.block_expires else self.reset_at
        return max(0, int(until - now + 0.999))


class RateLimitStore:
    """
    Counter store shared by RateLimitService instances that are handed the
    same object. Nothing here is module-global.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._windows: Dict[str, WindowState] = {}

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    def get(self, key: str) -> Optional[WindowState]:
        return self._windows.get(key)

    def put(self, key: str, state: WindowState) -> None:
        self._windows[key] = state

    def delete(self, key: str) -> None:
        self._windows.pop(key, None)

    def cleanup(self, *, now: float, max_age_seconds: float = 3600.0) -> int:
        with self._lock:
            stale = [
                k
                for k, s in self._windows.items()
                if now > s.window_start + max_age_seconds and not (s.blocked and s.block_expires and now < s.block_expires)
            ]
            for k in stale:
                del self._windows[k]
            return len(stale)

    def __len__(self) -> int:
        return len(self._windows)


class RateLimitService:
    """
    Fixed-window attempt counter per key, with an optional block period once
    the window's budget is exhausted.
    """

    def __init__(
        self,
        rule: RateLimitRule,
        store: RateLimitStore,
        *,
        time_fn: Callable[[], float] = time.time,
        cleanup_every: int = 1000,
    ):
        self.rule = rule
        self.store = store
        self._time = time_fn
        self.cleanup_every = max(1, int(cleanup_every))
        self._checks = 0

    def now(self) -> float:
        return float(self._time())

    def _window_start(self, now: float) -> float:
        w = float(self.rule.window_seconds)
        return (now // w) * w

    def _store_key(self, key: str, window_start: float) -> str:
        return f"{key}:{int(window_start)}"

    @staticmethod
    def _block_key(key: str) -> str:
        # Blocks outlive the window that triggered them.
        return f"{key}:block"

    def _active_block(self, key: str, now: float) -> Optional[WindowState]:
        block = self.store.get(self._block_key(key))
        if block is None:
            return None
        if block.block_expires and now < block.block_expires:
            return block
        self.store.delete(self._block_key(key))
        return None

    def check(self, key: str) -> RateLimitResult:
        result = self._check(key)
        self._checks += 1
        if self._checks % self.cleanup_every == 0:
            # the store may be shared with longer-window rules
            self.store.cleanup(now=self.now(), max_age_seconds=max(float(self.rule.window_seconds), 3600.0))
        return result

    def _check(self, key: str) -> RateLimitResult:
        now = self.now()
        ws = self._window_start(now)
        reset_at = ws + float(self.rule.window_seconds)
        sk = self._store_key(key, ws)
        with self.store.lock:
            block = self._active_block(key, now)
            if block is not None:
                return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at, blocked=True, block_expires=block.block_expires)

            state = self.store.get(sk)
            if state is None:
                # a new window makes the previous one dead weight
                self.store.delete(self._store_key(key, ws - float(self.rule.window_seconds)))
                state = WindowState(attempts=0, window_start=ws)
                self.store.put(sk, state)

            if state.attempts >= self.rule.max_attempts:
                if self.rule.block_seconds:
                    expires = now + float(self.rule.block_seconds)
                    self.store.put(self._block_key(key), WindowState(attempts=state.attempts, window_start=ws, blocked=True, block_expires=expires))
                    return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at, blocked=True, block_expires=expires)
                return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)

            state.attempts += 1
            return RateLimitResult(allowed=True, remaining=self.rule.max_attempts - state.attempts, reset_at=reset_at)

    def status(self, key: str) -> RateLimitResult:
        now = self.now()
        ws = self._window_start(now)
        reset_at = ws + float(self.rule.window_seconds)
        with self.store.lock:
            block = self._active_block(key, now)
            if block is not None:
                return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at, blocked=True, block_expires=block.block_expires)
            state = self.store.get(self._store_key(key, ws))
            if state is None:
                return RateLimitResult(allowed=True, remaining=self.rule.max_attempts, reset_at=reset_at)
            return RateLimitResult(
                allowed=state.attempts < self.rule.max_attempts,
                remaining=max(0, self.rule.max_attempts - state.attempts),
                reset_at=reset_at,
            )

    def reset(self, key: str) -> None:
        now = self.now()
        with self.store.lock:
            self.store.delete(self._store_key(key, self._window_start(now)))
            self.store.delete(self._block_key(key))
