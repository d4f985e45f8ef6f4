"""RSA-OAEP key wrapping under a requester-supplied JSON Web Key.

The broker side only ever calls :func:`wrap`; :class:`WrappingKeyPair` and
:func:`unwrap` are the attester's counterpart. Plaintext never leaves these
functions except as their return value, and nothing here logs.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..errors import DecryptError, InvalidWrappingKey
from ..messages import PublicWrappingKey
from ..utils.b64 import b64d, b64e

DEFAULT_ALGORITHM = "RSA-OAEP-256"
MIN_MODULUS_BITS = 2048

_OAEP_HASHES: Dict[str, type[hashes.HashAlgorithm]] = {
    "RSA-OAEP": hashes.SHA1,
    "RSA-OAEP-256": hashes.SHA256,
    "RSA-OAEP-384": hashes.SHA384,
    "RSA-OAEP-512": hashes.SHA512,
}


def _oaep(alg: str) -> padding.OAEP:
    try:
        hash_cls = _OAEP_HASHES[alg]
    except KeyError:
        raise InvalidWrappingKey(f"Unsupported wrapping key algorithm: {alg}") from None
    return padding.OAEP(mgf=padding.MGF1(algorithm=hash_cls()), algorithm=hash_cls(), label=None)


def public_key_from_jwk(jwk: PublicWrappingKey) -> rsa.RSAPublicKey:
    """Build an RSA public key from ``jwk``, rejecting anything unsupported."""

    if jwk.kty != "RSA":
        raise InvalidWrappingKey(f"Unsupported wrapping key type: {jwk.kty}")
    if jwk.alg not in _OAEP_HASHES:
        raise InvalidWrappingKey(f"Unsupported wrapping key algorithm: {jwk.alg}")
    try:
        n = int.from_bytes(b64d(jwk.n), "big")
        e = int.from_bytes(b64d(jwk.e), "big")
        key = rsa.RSAPublicNumbers(e, n).public_key()
    except ValueError as exc:
        raise InvalidWrappingKey(f"Malformed wrapping key: {exc}") from exc
    if key.key_size < MIN_MODULUS_BITS:
        raise InvalidWrappingKey(
            f"Wrapping key modulus too small: {key.key_size} < {MIN_MODULUS_BITS} bits"
        )
    return key


def jwk_from_public_key(key: rsa.RSAPublicKey, alg: str = DEFAULT_ALGORITHM) -> PublicWrappingKey:
    numbers = key.public_numbers()

    def encode(value: int) -> str:
        return b64e(value.to_bytes((value.bit_length() + 7) // 8, "big"))

    return PublicWrappingKey(kty="RSA", alg=alg, n=encode(numbers.n), e=encode(numbers.e))


def wrap(plaintext: bytes | bytearray, wrapping_key: PublicWrappingKey) -> bytes:
    """Encrypt ``plaintext`` under ``wrapping_key``; a fresh ciphertext every call."""

    key = public_key_from_jwk(wrapping_key)
    try:
        return key.encrypt(plaintext, _oaep(wrapping_key.alg))
    except ValueError as exc:
        # Plaintext longer than the OAEP capacity of the modulus.
        raise InvalidWrappingKey(f"Wrapping key cannot carry this key: {exc}") from exc


def unwrap(ciphertext: bytes, private_key: rsa.RSAPrivateKey, alg: str = DEFAULT_ALGORITHM) -> bytes:
    try:
        return private_key.decrypt(ciphertext, _oaep(alg))
    except (ValueError, InvalidWrappingKey) as exc:
        raise DecryptError(f"Failed to unwrap key data: {exc}") from exc


@contextmanager
def scoped_secret(secret: bytearray) -> Iterator[bytearray]:
    """Yield ``secret`` and zero it on every exit path."""
    try:
        yield secret
    finally:
        for index in range(len(secret)):
            secret[index] = 0


class WrappingKeyPair:
    """Ephemeral RSA key pair an attester generates per key request."""

    def __init__(self, private: rsa.RSAPrivateKey, alg: str = DEFAULT_ALGORITHM):
        _oaep(alg)
        self._priv = private
        self.alg = alg

    @staticmethod
    def generate(bits: int = 3072, alg: str = DEFAULT_ALGORITHM) -> "WrappingKeyPair":
        priv = rsa.generate_private_key(public_exponent=65537, key_size=bits)
        return WrappingKeyPair(priv, alg)

    def public_jwk(self) -> PublicWrappingKey:
        return jwk_from_public_key(self._priv.public_key(), self.alg)

    def unwrap(self, ciphertext: bytes) -> bytes:
        """Decrypt ``ciphertext``; the result is immutable and cannot be zeroed in place."""
        return unwrap(ciphertext, self._priv, self.alg)


__all__ = [
    "DEFAULT_ALGORITHM",
    "MIN_MODULUS_BITS",
    "public_key_from_jwk",
    "jwk_from_public_key",
    "wrap",
    "unwrap",
    "scoped_secret",
    "WrappingKeyPair",
]
