"""Shared domain models used across the key broker."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from .messages import PublicWrappingKey


class ChallengeState(str, Enum):
    PENDING = "pending"
    CONSUMED = "consumed"
    EXPIRED = "expired"


class SessionState(str, Enum):
    INIT = "init"
    CHALLENGE_ISSUED = "challenge_issued"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self not in {SessionState.INIT, SessionState.CHALLENGE_ISSUED}


@dataclass(slots=True)
class Challenge:
    """A single-use attestation challenge bound to one key request."""

    id: str
    nonce: bytes = field(repr=False)
    key_name: str
    wrapping_key: PublicWrappingKey = field(repr=False)
    accepted_types: Tuple[str, ...]
    created_at: float
    state: ChallengeState = ChallengeState.PENDING


@dataclass(slots=True, frozen=True)
class Evidence:
    data: bytes = field(repr=False)
    content_type: str


@dataclass(slots=True, frozen=True)
class AttestationVerdict:
    trusted: bool
    reason: str


__all__ = [
    "ChallengeState",
    "SessionState",
    "Challenge",
    "Evidence",
    "AttestationVerdict",
]
