"""EAT Attestation Results (EAR) as returned by the verifier.

An EAR is a JWT whose ``submods`` claim maps each attested component to an
appraisal: a trust tier (``ear.status``), an optional trustworthiness vector,
and the evidence claims the verifier extracted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Mapping, Optional, Sequence

import jwt

from ..errors import VerifierError

EAR_PROFILE = "tag:github.com,2023:veraison/ear"
ANNOTATED_EVIDENCE_CLAIM = "ear.veraison.annotated-evidence"


class TrustTier(IntEnum):
    NONE = 0
    AFFIRMING = 2
    WARNING = 32
    CONTRAINDICATED = 96

    @classmethod
    def from_claim(cls, value: Any) -> "TrustTier":
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown trust tier: {value!r}") from None
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        raise ValueError(f"Unknown trust tier: {value!r}")

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(slots=True)
class Appraisal:
    status: TrustTier
    trust_vector: Dict[str, int] = field(default_factory=dict)
    annotated_evidence: Dict[str, Any] = field(default_factory=dict)
    policy_id: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Appraisal":
        if "ear.status" not in claims:
            raise ValueError("submodule appraisal lacks ear.status")
        vector = claims.get("ear.trustworthiness-vector") or {}
        evidence = claims.get(ANNOTATED_EVIDENCE_CLAIM) or {}
        if not isinstance(vector, Mapping) or not isinstance(evidence, Mapping):
            raise ValueError("malformed submodule appraisal")
        return cls(
            status=TrustTier.from_claim(claims["ear.status"]),
            trust_vector={str(k): int(v) for k, v in vector.items()},
            annotated_evidence=dict(evidence),
            policy_id=claims.get("ear.appraisal-policy-id"),
        )


@dataclass(slots=True)
class AttestationResult:
    profile: str
    issued_at: Optional[int]
    verifier_id: Dict[str, Any]
    submods: Dict[str, Appraisal]

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "AttestationResult":
        """Parse a decoded EAR claims-set; raises ``ValueError`` when malformed."""

        submods = claims.get("submods")
        if not isinstance(submods, Mapping) or not submods:
            raise ValueError("attestation result has no submodules")
        parsed: Dict[str, Appraisal] = {}
        for name, appraisal in submods.items():
            if not isinstance(appraisal, Mapping):
                raise ValueError(f"submodule {name} is not an object")
            parsed[str(name)] = Appraisal.from_claims(appraisal)
        return cls(
            profile=str(claims.get("eat_profile", "")),
            issued_at=claims.get("iat"),
            verifier_id=dict(claims.get("ear.verifier-id") or {}),
            submods=parsed,
        )


def decode_ear(
    token: str,
    verification_key: Mapping[str, Any],
    algorithms: Sequence[str] = ("ES256",),
) -> AttestationResult:
    """Check the signature of an EAR JWT and parse its claims.

    A bad signature or malformed result means the verifier's answer cannot be
    trusted at all, which is an infrastructure failure rather than a verdict.
    """

    try:
        key = jwt.PyJWK(dict(verification_key)).key
        claims = jwt.decode(
            token,
            key=key,
            algorithms=list(algorithms),
            options={"verify_aud": False, "require": ["iat"]},
        )
    except jwt.PyJWTError as exc:
        raise VerifierError(f"attestation result rejected: {exc}") from exc
    try:
        return AttestationResult.from_claims(claims)
    except (TypeError, ValueError) as exc:
        raise VerifierError(f"malformed attestation result: {exc}") from exc


__all__ = [
    "EAR_PROFILE",
    "ANNOTATED_EVIDENCE_CLAIM",
    "TrustTier",
    "Appraisal",
    "AttestationResult",
    "decode_ear",
]
