"""Verifier capability and its Veraison challenge-response implementation."""
from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence

import httpx
import structlog

from ..errors import EvidenceRefused, VerifierError
from .ear import AttestationResult, decode_ear
from .policy import AppraisalPolicy
from .reference_values import ReferenceValues

logger = structlog.get_logger(__name__)

DISCOVERY_PATH = "/.well-known/veraison/verification"
NEW_SESSION_ENDPOINT = "newChallengeResponseSession"
SESSION_MEDIA_TYPE = "application/vnd.veraison.challenge-response-session+json"

_PENDING_STATES = {"waiting", "processing"}
_REFUSAL_CODES = {400, 415, 422}


@dataclass(slots=True, frozen=True)
class VerificationRequest:
    """Everything a verifier needs to appraise one evidence submission.

    ``policy`` and ``reference_values`` are passed through untouched; a remote
    verifier may ignore them when it holds its own copy.
    """

    nonce: bytes = field(repr=False)
    evidence: bytes = field(repr=False)
    media_type: str
    policy: Optional[AppraisalPolicy] = None
    reference_values: Optional[ReferenceValues] = None


class Verifier(Protocol):
    def verify(self, request: VerificationRequest) -> AttestationResult:  # pragma: no cover - protocol
        """Return the verifier's attestation result or raise :class:`VerifierError`."""
        ...


@dataclass(slots=True)
class _Discovery:
    new_session_url: str
    verification_key: Dict[str, Any]


class VeraisonVerifier:
    """Synchronous client for a Veraison verification service.

    Each call discovers the service, opens a challenge-response session bound
    to the challenge nonce, posts the evidence, and checks the signed result.
    Nothing is retried: a transport failure or timeout surfaces as
    :class:`VerifierError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        poll_attempts: int = 5,
        poll_interval: float = 0.5,
        algorithms: Sequence[str] = ("ES256",),
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.algorithms = tuple(algorithms)
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def verify(self, request: VerificationRequest) -> AttestationResult:
        try:
            discovery = self._discover()
            session_url = self._new_session(discovery.new_session_url, request.nonce)
            try:
                token = self._challenge_response(session_url, request)
            finally:
                self._delete_session(session_url)
        except httpx.TimeoutException as exc:
            raise VerifierError(f"verifier timed out: {exc}", timed_out=True) from exc
        except httpx.HTTPError as exc:
            raise VerifierError(f"verifier request failed: {exc}") from exc
        except ValueError as exc:
            raise VerifierError(f"verifier sent a malformed response: {exc}") from exc
        return decode_ear(token, discovery.verification_key, self.algorithms)

    def _discover(self) -> _Discovery:
        response = self._client.get(self.base_url + DISCOVERY_PATH)
        response.raise_for_status()
        document = _json_object(response)
        endpoints = document.get("api-endpoints") or {}
        relative = endpoints.get(NEW_SESSION_ENDPOINT) if isinstance(endpoints, Mapping) else None
        if not relative:
            raise VerifierError(
                f"No {NEW_SESSION_ENDPOINT} endpoint was found on the verifier"
            )
        key = document.get("ear-verification-key")
        if not isinstance(key, Mapping):
            raise VerifierError("Verifier did not publish an EAR verification key")
        return _Discovery(new_session_url=self.base_url + relative, verification_key=dict(key))

    def _new_session(self, url: str, nonce: bytes) -> str:
        response = self._client.post(
            url,
            params={"nonce": base64.urlsafe_b64encode(nonce).decode("ascii")},
            headers={"Accept": SESSION_MEDIA_TYPE},
        )
        response.raise_for_status()
        if response.status_code != 201:
            raise VerifierError(f"unexpected status {response.status_code} creating a session")
        location = response.headers.get("location")
        if not location:
            raise VerifierError("verifier session has no Location")
        return str(response.url.join(location))

    def _challenge_response(self, session_url: str, request: VerificationRequest) -> str:
        response = self._client.post(
            session_url,
            content=request.evidence,
            headers={"Content-Type": request.media_type, "Accept": SESSION_MEDIA_TYPE},
        )
        if response.status_code in _REFUSAL_CODES:
            raise EvidenceRefused(_problem_detail(response))
        response.raise_for_status()
        session = _json_object(response)
        attempts = 0
        while session.get("status") in _PENDING_STATES:
            if attempts >= self.poll_attempts:
                raise VerifierError("verifier did not complete the session in time", timed_out=True)
            attempts += 1
            time.sleep(self.poll_interval)
            response = self._client.get(session_url, headers={"Accept": SESSION_MEDIA_TYPE})
            response.raise_for_status()
            session = _json_object(response)

        status = session.get("status")
        if status == "failed":
            raise EvidenceRefused(str(session.get("detail") or "verification session failed"))
        if status != "complete":
            raise VerifierError(f"unexpected session status {status!r}")
        result = session.get("result")
        if not isinstance(result, str) or not result:
            raise VerifierError("completed session carries no attestation result")
        return result

    def _delete_session(self, session_url: str) -> None:
        try:
            self._client.delete(session_url)
        except httpx.HTTPError as exc:
            logger.warning("verifier.session_delete_failed", session=session_url, error=str(exc))


def _json_object(response: httpx.Response) -> Dict[str, Any]:
    body = response.json()
    if not isinstance(body, dict):
        raise ValueError("expected a JSON object")
    return body


def _problem_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"verifier refused evidence ({response.status_code})"
    if isinstance(body, Mapping) and body.get("detail"):
        return str(body["detail"])
    return f"verifier refused evidence ({response.status_code})"


__all__ = [
    "DISCOVERY_PATH",
    "NEW_SESSION_ENDPOINT",
    "VerificationRequest",
    "Verifier",
    "VeraisonVerifier",
]
