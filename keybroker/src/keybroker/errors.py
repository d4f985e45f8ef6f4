"""Central exception hierarchy for the key broker."""
from __future__ import annotations

from .models import SessionState

PROBLEM_BASE = "tag:keybroker,2024:problem:"


class KeyBrokerError(Exception):
    """Base exception for all key broker failures"""


class ConfigurationError(KeyBrokerError):
    """Raised when configuration cannot be loaded or is inconsistent"""


class ReferenceValuesError(ConfigurationError):
    """Raised for a missing or malformed reference-values file"""


class PolicyError(ConfigurationError):
    """Raised when an appraisal policy document is invalid"""


class DecryptError(KeyBrokerError):
    """Raised when wrapped key data cannot be unwrapped"""


class VerifierError(KeyBrokerError):
    """Raised by a verifier on transport or protocol failure"""

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out


class EvidenceRefused(VerifierError):
    """The verifier processed the evidence and refused to appraise it"""


class SessionError(KeyBrokerError):
    """Failure that terminates a key broker session.

    Subclasses describe how the failure is presented to the client, so the HTTP
    layer renders any of them without knowing the concrete class.
    """

    terminal_state: SessionState = SessionState.ERROR
    problem: str = "protocol-error"
    http_status: int = 400
    public_detail: str = "The request could not be processed."
    retryable: bool = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_detail)

    @property
    def problem_type(self) -> str:
        return PROBLEM_BASE + self.problem


class ProtocolError(SessionError):
    """Client protocol error or infrastructure failure; the session ends in error"""


class ChallengeNotFound(ProtocolError):
    problem = "challenge-not-found"
    http_status = 404
    public_detail = "Reference to a challenge that does not exist."


class ChallengeAlreadyConsumed(ProtocolError):
    problem = "challenge-consumed"
    http_status = 409
    public_detail = "The challenge has already been used."


class MalformedEvidence(ProtocolError):
    problem = "unsupported-evidence-type"
    http_status = 415
    public_detail = "The evidence content type is not acceptable for this challenge."


class InvalidWrappingKey(ProtocolError):
    problem = "invalid-wrapping-key"
    http_status = 400
    public_detail = "The wrapping key is not supported."


class MalformedRequest(ProtocolError):
    problem = "malformed-request"
    http_status = 400
    public_detail = "The request body is malformed."


class VerifierUnreachable(ProtocolError):
    problem = "verifier-unavailable"
    http_status = 502
    public_detail = "The attestation verifier is unavailable; request a new challenge and retry."
    retryable = True

    def __init__(self, message: str | None = None, *, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out
        if timed_out:
            self.http_status = 504


class ExpiredError(SessionError):
    terminal_state = SessionState.EXPIRED
    problem = "challenge-expired"
    http_status = 410
    public_detail = "The challenge has expired."


class ChallengeExpired(ExpiredError):
    """The challenge outlived its TTL before evidence was submitted"""


class RejectedError(SessionError):
    """The verdict was untrusted; ``reason`` is for operators only"""

    terminal_state = SessionState.REJECTED
    problem = "attestation-failure"
    http_status = 403
    public_detail = "The attestation failed."

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class KeyNotFound(ProtocolError):
    """Requested key is not in the store.

    Presented to the client exactly like :class:`RejectedError` so that key names
    cannot be enumerated.
    """

    problem = RejectedError.problem
    http_status = RejectedError.http_status
    public_detail = RejectedError.public_detail


__all__ = [
    "PROBLEM_BASE",
    "KeyBrokerError",
    "ConfigurationError",
    "ReferenceValuesError",
    "PolicyError",
    "DecryptError",
    "VerifierError",
    "EvidenceRefused",
    "SessionError",
    "ProtocolError",
    "ChallengeNotFound",
    "ChallengeAlreadyConsumed",
    "MalformedEvidence",
    "InvalidWrappingKey",
    "MalformedRequest",
    "VerifierUnreachable",
    "ExpiredError",
    "ChallengeExpired",
    "RejectedError",
    "KeyNotFound",
]
