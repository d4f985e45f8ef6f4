"""Evidence producers used by the attester client."""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional, Protocol, Tuple

from keybroker.attestation.mock import EXAMPLE_TOKEN_MEDIA_TYPE, encode_example_token
from keybroker.challenge.store import CCA_EXAMPLE_TOKEN_NONCE
from keybroker.config import CCA_MEDIA_TYPE
from keybroker.utils.media import constant_time_compare

from .errors import EvidenceGenerationError

DEFAULT_MEASUREMENT = hashlib.sha256(b"keybroker example platform").digest()


class EvidenceProducer(Protocol):
    media_types: Tuple[str, ...]
    challenge_length: Optional[int]

    def produce(self, nonce: bytes, media_type: str) -> bytes:  # pragma: no cover - protocol
        ...


class ExampleTokenProducer:
    """Builds the unsigned example token understood by the mock verifier."""

    media_types: Tuple[str, ...] = (EXAMPLE_TOKEN_MEDIA_TYPE,)
    challenge_length: Optional[int] = None

    def __init__(self, measurement: bytes = DEFAULT_MEASUREMENT, platform: str = "example") -> None:
        self.measurement = measurement
        self.platform = platform

    def produce(self, nonce: bytes, media_type: str) -> bytes:
        return encode_example_token(nonce, self.measurement, self.platform)


class StaticEvidenceProducer:
    """Replays pre-recorded evidence such as a published example token.

    Recorded evidence embeds a fixed nonce, so it is only useful against a
    broker that issues that same nonce. When ``expected_nonce`` is set, any
    other challenge is refused instead of submitting evidence doomed to fail.
    """

    def __init__(self, data: bytes, media_type: str, *, expected_nonce: bytes | None = None) -> None:
        if not data:
            raise EvidenceGenerationError("static evidence is empty")
        self._data = data
        self.media_types = (media_type,)
        self.expected_nonce = expected_nonce
        self.challenge_length = len(expected_nonce) if expected_nonce is not None else None

    @classmethod
    def from_file(
        cls, path: Path, media_type: str, *, expected_nonce: bytes | None = None
    ) -> "StaticEvidenceProducer":
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise EvidenceGenerationError(f"cannot read evidence from {path}: {exc}") from exc
        return cls(data, media_type, expected_nonce=expected_nonce)

    @classmethod
    def cca_example(cls, path: Path) -> "StaticEvidenceProducer":
        return cls.from_file(path, CCA_MEDIA_TYPE, expected_nonce=CCA_EXAMPLE_TOKEN_NONCE)

    def produce(self, nonce: bytes, media_type: str) -> bytes:
        if self.expected_nonce is not None and not constant_time_compare(nonce, self.expected_nonce):
            raise EvidenceGenerationError("challenge does not match the nonce embedded in the static evidence")
        return self._data


__all__ = [
    "DEFAULT_MEASUREMENT",
    "EvidenceProducer",
    "ExampleTokenProducer",
    "StaticEvidenceProducer",
]
