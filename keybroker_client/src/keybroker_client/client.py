"""HTTP client implementing the attester side of the key broker protocol."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from keybroker.crypto.wrapping import DEFAULT_ALGORITHM, WrappingKeyPair
from keybroker.errors import PROBLEM_BASE, DecryptError
from keybroker.messages import (
    API_PREFIX,
    KEY_REQUEST_MEDIA_TYPE,
    AttestationChallenge,
    BackgroundCheckKeyRequest,
    ErrorInformation,
    PublicWrappingKey,
    WrappedKeyData,
)
from keybroker.utils.b64 import std_b64d
from keybroker.utils.media import media_type_in

from .errors import (
    AttestationFailure,
    ChallengeLengthError,
    ConnectionFailed,
    MissingLocation,
    NoAcceptableEvidenceType,
    UnexpectedResponse,
    UnwrapError,
)
from .evidence import EvidenceProducer

logger = structlog.get_logger(__name__)

ATTESTATION_FAILURE = PROBLEM_BASE + "attestation-failure"


@dataclass(slots=True)
class KeyChallenge:
    nonce: bytes = field(repr=False)
    accept: List[str]
    location: str


class KeyBrokerClient:
    """Talks to one key broker endpoint.

    :meth:`get_key` runs the whole flow with a fresh wrapping key pair; the
    individual steps are public so callers can drive them separately.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        http_client: httpx.Client | None = None,
        timeout: float = 10.0,
        key_bits: int = 3072,
        alg: str = DEFAULT_ALGORITHM,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.key_bits = key_bits
        self.alg = alg
        self._http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "KeyBrokerClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def request_key(self, key_name: str, wrapping_key: PublicWrappingKey) -> KeyChallenge:
        url = f"{self.endpoint}{API_PREFIX}/key/{quote(key_name, safe='')}"
        body = BackgroundCheckKeyRequest(pubkey=wrapping_key).model_dump_json()
        response = self._post(url, content=body, headers={"Content-Type": KEY_REQUEST_MEDIA_TYPE})
        if response.status_code != 201:
            _raise_for_problem(response)
        location = response.headers.get("location")
        if not location:
            raise MissingLocation()
        challenge = _parse(response, AttestationChallenge)
        try:
            nonce = std_b64d(challenge.challenge)
        except ValueError as exc:
            raise UnexpectedResponse(f"challenge is not base64: {exc}", status=response.status_code) from exc
        logger.debug("challenge.received", nonce_size=len(nonce), accept=challenge.accept)
        return KeyChallenge(nonce=nonce, accept=challenge.accept, location=str(response.url.join(location)))

    def submit_evidence(self, location: str, evidence: bytes, media_type: str) -> bytes:
        response = self._post(location, content=evidence, headers={"Content-Type": media_type})
        if response.status_code != 200:
            _raise_for_problem(response)
        wrapped = _parse(response, WrappedKeyData)
        try:
            return std_b64d(wrapped.data)
        except ValueError as exc:
            raise UnexpectedResponse(f"wrapped key is not base64: {exc}", status=response.status_code) from exc

    def get_key(self, key_name: str, producer: EvidenceProducer) -> bytes:
        """Request ``key_name``, attest with ``producer`` and return the plaintext key.

        The key comes back as the immutable ``bytes`` produced by OAEP
        decryption and cannot be zeroed; copy it into a ``bytearray`` under
        :func:`keybroker.crypto.wrapping.scoped_secret` if it must not linger.
        """

        key_pair = WrappingKeyPair.generate(self.key_bits, self.alg)
        challenge = self.request_key(key_name, key_pair.public_jwk())

        media_type = next(
            (offered for offered in producer.media_types if media_type_in(offered, challenge.accept)),
            None,
        )
        if media_type is None:
            raise NoAcceptableEvidenceType(list(producer.media_types), challenge.accept)
        if producer.challenge_length is not None and len(challenge.nonce) != producer.challenge_length:
            raise ChallengeLengthError(producer.challenge_length, len(challenge.nonce))

        evidence = producer.produce(challenge.nonce, media_type)
        wrapped = self.submit_evidence(challenge.location, evidence, media_type)
        try:
            return key_pair.unwrap(wrapped)
        except DecryptError as exc:
            raise UnwrapError(str(exc)) from exc

    def _post(self, url: str, **kwargs) -> httpx.Response:
        try:
            return self._http.post(url, **kwargs)
        except httpx.HTTPError as exc:
            raise ConnectionFailed(url, str(exc)) from exc


def _parse(response: httpx.Response, model):
    try:
        return model.model_validate_json(response.content)
    except ValidationError as exc:
        raise UnexpectedResponse(
            f"cannot parse {model.__name__}: {exc.error_count()} error(s)", status=response.status_code
        ) from exc


def _raise_for_problem(response: httpx.Response) -> None:
    try:
        problem = ErrorInformation.model_validate_json(response.content)
    except ValidationError:
        raise UnexpectedResponse(f"status {response.status_code}", status=response.status_code) from None
    if response.status_code == 403 and problem.type == ATTESTATION_FAILURE:
        raise AttestationFailure(problem.type, problem.detail)
    raise UnexpectedResponse(
        f"status {response.status_code}: {problem.detail}",
        status=response.status_code,
        problem_type=problem.type,
    )


__all__ = ["KeyBrokerClient", "KeyChallenge"]
