"""Key wrapping primitives."""
from .wrapping import (
    DEFAULT_ALGORITHM,
    WrappingKeyPair,
    jwk_from_public_key,
    public_key_from_jwk,
    scoped_secret,
    unwrap,
    wrap,
)

__all__ = [
    "DEFAULT_ALGORITHM",
    "WrappingKeyPair",
    "jwk_from_public_key",
    "public_key_from_jwk",
    "scoped_secret",
    "unwrap",
    "wrap",
]
