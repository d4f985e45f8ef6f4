"""Errors raised by the key broker client.

Only :class:`AttestationFailure` means the broker appraised the evidence and
said no. Everything else is a :class:`ClientRuntimeError`: the flow broke down
before a verdict could be obtained or used.
"""
from __future__ import annotations


class ClientError(Exception):
    """Base class for key broker client failures"""


class AttestationFailure(ClientError):
    def __init__(self, reason: str, detail: str) -> None:
        super().__init__(f"Attestation failure: {reason} ({detail})")
        self.reason = reason
        self.detail = detail


class ClientRuntimeError(ClientError):
    """Connectivity, protocol or cryptographic failure"""


class ConnectionFailed(ClientRuntimeError):
    def __init__(self, url: str, error: str) -> None:
        super().__init__(f"HTTP connection to {url} failed with error: {error}")
        self.url = url


class UnexpectedResponse(ClientRuntimeError):
    def __init__(self, message: str, *, status: int | None = None, problem_type: str | None = None) -> None:
        super().__init__(f"Unhandled HTTP response: {message}")
        self.status = status
        self.problem_type = problem_type


class MissingLocation(ClientRuntimeError):
    def __init__(self) -> None:
        super().__init__("Missing Location header in the key request response")


class ChallengeLengthError(ClientRuntimeError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Challenge length error, expecting {expected} but got {actual} instead")
        self.expected = expected
        self.actual = actual


class NoAcceptableEvidenceType(ClientRuntimeError):
    def __init__(self, offered: list[str], accepted: list[str]) -> None:
        super().__init__(f"None of {offered} is accepted by the broker (accepts {accepted})")


class EvidenceGenerationError(ClientRuntimeError):
    pass


class UnwrapError(ClientRuntimeError):
    pass


__all__ = [
    "ClientError",
    "AttestationFailure",
    "ClientRuntimeError",
    "ConnectionFailed",
    "UnexpectedResponse",
    "MissingLocation",
    "ChallengeLengthError",
    "NoAcceptableEvidenceType",
    "EvidenceGenerationError",
    "UnwrapError",
]
