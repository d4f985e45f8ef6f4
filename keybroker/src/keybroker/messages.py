"""Wire models exchanged between the attester client and the broker."""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

KEY_REQUEST_MEDIA_TYPE = "application/vnd.veraison.keybroker.background-check-key-request+json"
PROBLEM_MEDIA_TYPE = "application/problem+json"
API_PREFIX = "/keys/v1"


class PublicWrappingKey(BaseModel):
    """A JSON Web Key formatted RSA public key."""

    kty: str = Field(description="Key Type")
    alg: str = Field(description="Key Algorithm")
    n: str = Field(description="Key modulus, base64url")
    e: str = Field(description="Key exponent, base64url")

    model_config = ConfigDict(frozen=True, extra="ignore")


class BackgroundCheckKeyRequest(BaseModel):
    pubkey: PublicWrappingKey

    model_config = ConfigDict(extra="forbid")


class AttestationChallenge(BaseModel):
    challenge: str = Field(description="Base64-encoded nonce the evidence must embed")
    accept: List[str] = Field(description="Acceptable evidence media types")


class WrappedKeyData(BaseModel):
    data: str = Field(description="Base64-encoded key data wrapped under the requester's key")


class ErrorInformation(BaseModel):
    """Problem Details (RFC 9457) payload."""

    type: str
    detail: str


__all__ = [
    "API_PREFIX",
    "KEY_REQUEST_MEDIA_TYPE",
    "PROBLEM_MEDIA_TYPE",
    "PublicWrappingKey",
    "BackgroundCheckKeyRequest",
    "AttestationChallenge",
    "WrappedKeyData",
    "ErrorInformation",
]
