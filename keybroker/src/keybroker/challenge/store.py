"""Creation, lookup and single-use redemption of attestation challenges.

Every key request allocates a challenge. The challenge id is the client-facing
locator for the evidence submission, so it is drawn from ``secrets`` rather
than a counter. The store keeps one table guarded by one lock; ``take`` is the
only state transition that matters for correctness and it happens entirely
under that lock, so two submissions racing on the same id cannot both win.

Expiry is lazy: a pending challenge older than the TTL becomes ``EXPIRED`` the
next time it is looked up. :meth:`ChallengeStore.sweep` only reclaims memory:
swept entries leave a tombstone holding their final state, so a late
submission still reports ``EXPIRED`` or ``CONSUMED``. Tombstones are dropped
once they are older than ``retention`` (four TTLs unless configured).
"""
from __future__ import annotations

import secrets
import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, Tuple

import structlog

from ..errors import ChallengeAlreadyConsumed, ChallengeExpired, ChallengeNotFound
from ..messages import PublicWrappingKey
from ..models import Challenge, ChallengeState

logger = structlog.get_logger(__name__)

_ID_BYTES = 16

# Challenge value of the published CCA example token
# (tf-m-tools iat-verifier tests/data/cca_example_token.cbor). Only issued when
# mock challenges are enabled, so that the static token can be replayed.
CCA_EXAMPLE_TOKEN_NONCE = bytes.fromhex(
    "6e86d6d97cc713bc6dd43dbce491a6b40311c027a8bf85a39da63e9ce44c132a"
    "8a119d296fae6a6999e9bf3e4471b0ce01245d889424c31e89793b3b1d6b1504"
)


class ChallengeStore:
    """Thread-safe table of challenges keyed by unguessable id."""

    def __init__(
        self,
        *,
        ttl: float = 300.0,
        nonce_size: int = 32,
        mock_nonce: bytes | None = None,
        retention: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self.retention = max(retention if retention is not None else 4 * ttl, ttl)
        self.nonce_size = nonce_size
        self._mock_nonce = mock_nonce
        self._clock = clock
        self._lock = threading.Lock()
        self._table: Dict[str, Challenge] = {}
        self._tombstones: Dict[str, Tuple[ChallengeState, float]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._table)

    def create(
        self,
        key_name: str,
        wrapping_key: PublicWrappingKey,
        accepted_types: Iterable[str],
    ) -> Challenge:
        nonce = self._mock_nonce if self._mock_nonce is not None else secrets.token_bytes(self.nonce_size)
        now = self._clock()
        if now - self._last_sweep >= self.ttl:
            self.sweep()
        with self._lock:
            challenge_id = secrets.token_urlsafe(_ID_BYTES)
            while challenge_id in self._table:
                challenge_id = secrets.token_urlsafe(_ID_BYTES)
            challenge = Challenge(
                id=challenge_id,
                nonce=nonce,
                key_name=key_name,
                wrapping_key=wrapping_key,
                accepted_types=tuple(accepted_types),
                created_at=now,
            )
            self._table[challenge_id] = challenge
        logger.debug(
            "challenge.created",
            challenge_id=challenge_id,
            key_name=key_name,
            nonce_size=len(nonce),
        )
        return replace(challenge)

    def get(self, challenge_id: str) -> Challenge:
        """Return a copy of a still-pending challenge without consuming it."""
        with self._lock:
            challenge = self._lookup_locked(challenge_id)
            return replace(challenge)

    def take(self, challenge_id: str) -> Challenge:
        """Atomically move a pending challenge to ``CONSUMED`` and return it.

        Raises
        ------
        ChallengeNotFound
            The id was never issued, or its tombstone outlived the retention.
        ChallengeAlreadyConsumed
            An earlier submission already redeemed the challenge.
        ChallengeExpired
            The challenge outlived the TTL.
        """

        with self._lock:
            challenge = self._lookup_locked(challenge_id)
            challenge.state = ChallengeState.CONSUMED
            taken = replace(challenge)
        logger.debug("challenge.consumed", challenge_id=challenge_id)
        return taken

    def sweep(self) -> int:
        """Compact every entry older than the TTL; returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [c for c in self._table.values() if now - c.created_at > self.ttl]
            for challenge in stale:
                final = challenge.state
                if final is ChallengeState.PENDING:
                    final = ChallengeState.EXPIRED
                self._tombstones[challenge.id] = (final, challenge.created_at)
                del self._table[challenge.id]
            forgotten = [cid for cid, (_, created) in self._tombstones.items() if now - created > self.retention]
            for cid in forgotten:
                del self._tombstones[cid]
            self._last_sweep = now
        if stale or forgotten:
            logger.debug("challenge.swept", count=len(stale), forgotten=len(forgotten))
        return len(stale)

    def _lookup_locked(self, challenge_id: str) -> Challenge:
        challenge = self._table.get(challenge_id)
        if challenge is None:
            tombstone = self._tombstones.get(challenge_id)
            if tombstone is None:
                raise ChallengeNotFound()
            if tombstone[0] is ChallengeState.CONSUMED:
                raise ChallengeAlreadyConsumed()
            raise ChallengeExpired()
        if challenge.state is ChallengeState.CONSUMED:
            raise ChallengeAlreadyConsumed()
        if challenge.state is ChallengeState.PENDING and self._clock() - challenge.created_at > self.ttl:
            challenge.state = ChallengeState.EXPIRED
        if challenge.state is ChallengeState.EXPIRED:
            raise ChallengeExpired()
        return challenge


__all__ = ["CCA_EXAMPLE_TOKEN_NONCE", "ChallengeStore"]
