"""In-process verifier for the example attestation token.

The example token is a small JSON document::

    {"nonce": "<base64>", "platform": "example", "measurement": "<base64>"}

It carries no signature and proves nothing; it exists so the full key broker
flow can be exercised without attestation hardware or a verification service.
"""
from __future__ import annotations

import json
import time
from typing import Callable, Tuple

import structlog

from ..errors import EvidenceRefused
from ..utils.b64 import std_b64d, std_b64e
from ..utils.media import constant_time_compare, media_type_in
from .ear import EAR_PROFILE, Appraisal, AttestationResult, TrustTier
from .verifier import VerificationRequest

logger = structlog.get_logger(__name__)

EXAMPLE_TOKEN_MEDIA_TYPE = "application/example-attestation-token"
EXAMPLE_SUBMOD = "EXAMPLE"
MOCK_VERIFIER_ID = {"developer": "keybroker", "build": "mock-verifier"}


def encode_example_token(nonce: bytes, measurement: bytes, platform: str = "example") -> bytes:
    document = {
        "nonce": std_b64e(nonce),
        "platform": platform,
        "measurement": std_b64e(measurement),
    }
    return json.dumps(document, separators=(",", ":")).encode("utf-8")


def decode_example_token(data: bytes) -> Tuple[bytes, str, bytes]:
    """Return ``(nonce, platform, measurement)``; raises ``ValueError`` when malformed."""

    try:
        document = json.loads(data.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ValueError(f"example token is not UTF-8: {exc}") from exc
    if not isinstance(document, dict):
        raise ValueError("example token must be a JSON object")
    for name in ("nonce", "platform", "measurement"):
        if not isinstance(document.get(name), str):
            raise ValueError(f"example token lacks string field {name!r}")
    return std_b64d(document["nonce"]), document["platform"], std_b64d(document["measurement"])


class MockVerifier:
    """Appraises example tokens locally.

    The single ``EXAMPLE`` submodule is affirming when the token's nonce equals
    the challenge nonce and contraindicated otherwise. The measurement is
    reported as an annotated evidence claim so policies can match it against
    reference values.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def verify(self, request: VerificationRequest) -> AttestationResult:
        if not media_type_in(request.media_type, (EXAMPLE_TOKEN_MEDIA_TYPE,)):
            raise EvidenceRefused(f"mock verifier cannot appraise {request.media_type}")
        try:
            nonce, platform, measurement = decode_example_token(request.evidence)
        except ValueError as exc:
            raise EvidenceRefused(f"malformed example token: {exc}") from exc

        fresh = constant_time_compare(nonce, request.nonce)
        if not fresh:
            logger.info("mock_verifier.nonce_mismatch", platform=platform)
        status = TrustTier.AFFIRMING if fresh else TrustTier.CONTRAINDICATED
        appraisal = Appraisal(
            status=status,
            trust_vector={"instance-identity": int(status)},
            annotated_evidence={"platform": platform, "measurement": std_b64e(measurement)},
            policy_id="policy:mock",
        )
        return AttestationResult(
            profile=EAR_PROFILE,
            issued_at=int(self._clock()),
            verifier_id=dict(MOCK_VERIFIER_ID),
            submods={EXAMPLE_SUBMOD: appraisal},
        )


__all__ = [
    "EXAMPLE_TOKEN_MEDIA_TYPE",
    "EXAMPLE_SUBMOD",
    "encode_example_token",
    "decode_example_token",
    "MockVerifier",
]
