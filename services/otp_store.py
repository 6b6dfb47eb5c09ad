# services/otp_store.py
"""
In-memory, time-bounded store of pending OTP challenges keyed by email.

At most one live challenge exists per email; ``put`` overwrites. Expiry is
tracked with a min-heap of scheduled removal times and enforced three ways:
lazily on read, opportunistically on insert, and eagerly by ``sweep()``
(driven by ``OtpSweeper`` in a background thread). Heap entries that belong
to a challenge already overwritten or removed are skipped when they surface,
so early deletes cost nothing extra.

The store is process-local: a restart drops every pending challenge.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

__all__ = [
    "OTP_TTL_SECONDS",
    "OtpChallenge",
    "OtpStore",
    "OtpSweeper",
    "VerifyOutcome",
    "generate_code",
]

_log = logging.getLogger(__name__)

OTP_TTL_SECONDS = 5 * 60


def generate_code() -> str:
    """Uniform 6-digit code in [100000, 999999]."""
    return str(100_000 + secrets.randbelow(900_000))


@dataclass(frozen=True)
class OtpChallenge:
    code: str
    issued_at: float


class VerifyOutcome:
    OK = "ok"
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"
    EXPIRED = "expired"


class OtpStore:
    def __init__(self, ttl_seconds: float = OTP_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl = float(ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, OtpChallenge] = {}
        # (remove_at, seq, email, challenge); seq keeps ordering total
        self._expiry: list[tuple[float, int, str, OtpChallenge]] = []
        self._seq = itertools.count()

    # ── helpers (caller holds the lock) ─────────────────────────────────────
    def _expired(self, challenge: OtpChallenge, now: float) -> bool:
        return now - challenge.issued_at > self.ttl

    def _sweep_locked(self, now: float) -> int:
        evicted = 0
        while self._expiry and self._expiry[0][0] < now:
            _, _, email, challenge = heapq.heappop(self._expiry)
            if self._entries.get(email) is challenge:
                del self._entries[email]
                evicted += 1
        return evicted

    # ── public API ──────────────────────────────────────────────────────────
    def now(self) -> float:
        return self._clock()

    def put(self, email: str, code: str) -> OtpChallenge:
        """Insert or replace the challenge for ``email``, stamped with the current time."""
        now = self._clock()
        challenge = OtpChallenge(code=code, issued_at=now)
        with self._lock:
            self._sweep_locked(now)
            self._entries[email] = challenge
            heapq.heappush(self._expiry, (now + self.ttl, next(self._seq), email, challenge))
        return challenge

    def get(self, email: str) -> Optional[OtpChallenge]:
        now = self._clock()
        with self._lock:
            challenge = self._entries.get(email)
            if challenge is not None and self._expired(challenge, now):
                del self._entries[email]
                return None
            return challenge

    def consume(self, email: str) -> Optional[OtpChallenge]:
        """Read and remove in one step."""
        now = self._clock()
        with self._lock:
            challenge = self._entries.pop(email, None)
            if challenge is not None and self._expired(challenge, now):
                return None
            return challenge

    def remove(self, email: str) -> None:
        with self._lock:
            self._entries.pop(email, None)

    def verify(self, email: str, code: str) -> str:
        """
        Check ``code`` against the pending challenge for ``email``.

        Order matters: a missing challenge reports NOT_FOUND, a wrong code
        reports MISMATCH and leaves the challenge in place, a matching but
        stale code is removed and reports EXPIRED. A match within the TTL is
        consumed.
        """
        now = self._clock()
        with self._lock:
            challenge = self._entries.get(email)
            if challenge is None:
                return VerifyOutcome.NOT_FOUND
            if not secrets.compare_digest(str(code).encode("utf-8"), challenge.code.encode("utf-8")):
                return VerifyOutcome.MISMATCH
            del self._entries[email]
            if self._expired(challenge, now):
                return VerifyOutcome.EXPIRED
            return VerifyOutcome.OK

    def sweep(self) -> int:
        """Evict every challenge whose removal time has passed; returns the count."""
        now = self._clock()
        with self._lock:
            return self._sweep_locked(now)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._expiry.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, email: object) -> bool:
        with self._lock:
            return email in self._entries


class OtpSweeper:
    """Background thread that calls ``store.sweep()`` every ``interval`` seconds."""

    def __init__(self, store: OtpStore, interval: float = 60):
        self.store = store
        self.interval = float(interval)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="otp-sweeper", daemon=True)
        self._thread.start()
        _log.info("[otp] sweeper started (interval=%ss)", self.interval)

    def stop(self, timeout: float | None = 5) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                evicted = self.store.sweep()
                if evicted:
                    _log.debug("[otp] sweeper evicted %d expired challenge(s)", evicted)
            except Exception:
                _log.exception("[otp] sweep failed")
