"""Attestation: verifier clients, result parsing and appraisal."""
from .ear import EAR_PROFILE, Appraisal, AttestationResult, TrustTier, decode_ear
from .mock import EXAMPLE_TOKEN_MEDIA_TYPE, MockVerifier, decode_example_token, encode_example_token
from .orchestrator import AttestationOrchestrator
from .policy import AppraisalPolicy, SubmoduleRule, builtin_policy, load_policy, resolve_policy
from .reference_values import ReferenceValues, load_reference_values
from .verifier import VeraisonVerifier, VerificationRequest, Verifier

__all__ = [
    "EAR_PROFILE",
    "EXAMPLE_TOKEN_MEDIA_TYPE",
    "Appraisal",
    "AttestationResult",
    "TrustTier",
    "decode_ear",
    "MockVerifier",
    "encode_example_token",
    "decode_example_token",
    "AttestationOrchestrator",
    "AppraisalPolicy",
    "SubmoduleRule",
    "builtin_policy",
    "load_policy",
    "resolve_policy",
    "ReferenceValues",
    "load_reference_values",
    "VeraisonVerifier",
    "VerificationRequest",
    "Verifier",
]
