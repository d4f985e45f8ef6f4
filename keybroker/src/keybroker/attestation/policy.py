"""Appraisal policy documents and their evaluation against an EAR."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import PolicyError
from ..models import AttestationVerdict
from ..paths import builtin_policy_path
from .ear import AttestationResult, TrustTier
from .reference_values import ReferenceValues


def _parse_tiers(values: List[object]) -> List[TrustTier]:
    tiers = [TrustTier.from_claim(value) for value in values]
    if TrustTier.CONTRAINDICATED in tiers:
        raise ValueError("contraindicated can never be an acceptable status")
    return tiers


class SubmoduleRule(BaseModel):
    accept: List[TrustTier] = Field(default_factory=lambda: [TrustTier.AFFIRMING], min_length=1)
    reference_claim: Optional[str] = None
    required: bool = True

    model_config = ConfigDict(extra="forbid")

    @field_validator("accept", mode="before")
    @classmethod
    def _validate_accept(cls, value: object) -> List[TrustTier]:
        if not isinstance(value, list):
            raise ValueError("accept must be a list of statuses")
        return _parse_tiers(value)


class AppraisalPolicy(BaseModel):
    name: str = Field(default="default")
    description: str = Field(default="")
    profile: Optional[str] = None
    default_accept: List[TrustTier] = Field(default_factory=lambda: [TrustTier.AFFIRMING])
    submods: Dict[str, SubmoduleRule] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    @field_validator("default_accept", mode="before")
    @classmethod
    def _validate_default_accept(cls, value: object) -> List[TrustTier]:
        if not isinstance(value, list):
            raise ValueError("default_accept must be a list of statuses")
        return _parse_tiers(value)

    @property
    def needs_reference_values(self) -> bool:
        return any(rule.reference_claim for rule in self.submods.values())

    def appraise(
        self,
        result: AttestationResult,
        reference_values: ReferenceValues | None = None,
    ) -> AttestationVerdict:
        """Reduce an attestation result to a trusted/untrusted verdict.

        A submodule passes only when its status is one this policy accepts for
        it; declared reference claims must also be known-good digests. The first
        failing check becomes the verdict reason.
        """

        if self.profile and result.profile != self.profile:
            return _untrusted(f"unexpected result profile {result.profile!r}")

        for name, rule in self.submods.items():
            appraisal = result.submods.get(name)
            if appraisal is None:
                if rule.required:
                    return _untrusted(f"submodule {name} missing from attestation result")
                continue
            if appraisal.status not in rule.accept:
                return _untrusted(_status_reason(name, appraisal.status, rule.accept))
            if rule.reference_claim:
                claim = appraisal.annotated_evidence.get(rule.reference_claim)
                if claim is None:
                    return _untrusted(f"submodule {name} lacks claim {rule.reference_claim}")
                if reference_values is None or not reference_values.contains_b64(claim):
                    return _untrusted(
                        f"submodule {name} claim {rule.reference_claim} matches no reference value"
                    )

        for name, appraisal in result.submods.items():
            if name in self.submods:
                continue
            if appraisal.status not in self.default_accept:
                return _untrusted(_status_reason(name, appraisal.status, self.default_accept))

        return AttestationVerdict(trusted=True, reason=f"all submodules acceptable under policy {self.name}")


def _status_reason(name: str, status: TrustTier, accepted: List[TrustTier]) -> str:
    allowed = ", ".join(tier.label for tier in accepted)
    return f"submodule {name} status {status.label} not in [{allowed}]"


def _untrusted(reason: str) -> AttestationVerdict:
    return AttestationVerdict(trusted=False, reason=reason)


def load_policy(path: Path) -> AppraisalPolicy:
    try:
        with path.open("r", encoding="utf-8") as handle:
            if path.suffix.lower() in {".yaml", ".yml"}:
                raw = yaml.safe_load(handle)
            else:
                raw = json.load(handle)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise PolicyError(f"Cannot read policy {path}: {exc}") from exc
    try:
        return AppraisalPolicy.model_validate(raw or {})
    except ValidationError as exc:
        raise PolicyError(f"Invalid policy {path}: {exc}") from exc


def builtin_policy(name: str) -> AppraisalPolicy:
    path = builtin_policy_path(name)
    if not path.is_file():
        raise PolicyError(f"No built-in policy named {name!r}")
    return load_policy(path)


def resolve_policy(reference: str, *, base_dir: Path | None = None) -> AppraisalPolicy:
    """Resolve a policy reference: a built-in name or a path to a document."""
    if builtin_policy_path(reference).is_file():
        return builtin_policy(reference)
    candidate = Path(reference).expanduser()
    if not candidate.is_absolute() and base_dir is not None:
        candidate = base_dir / candidate
    if not candidate.is_file():
        raise PolicyError(f"Policy {reference!r} is neither built-in nor a readable file")
    return load_policy(candidate)


__all__ = [
    "AppraisalPolicy",
    "SubmoduleRule",
    "load_policy",
    "builtin_policy",
    "resolve_policy",
]
