"""Base64 helpers for wire and configuration values."""
from __future__ import annotations

import base64
import binascii


def b64e(data: bytes) -> str:
    """URL-safe base64 encode without padding (JWK style)."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64d(value: str) -> bytes:
    """URL-safe base64 decode that tolerates missing padding."""
    pad = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + pad).encode("ascii"))


def std_b64e(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def std_b64d(value: str) -> bytes:
    """Strict standard base64 decode; raises ``ValueError`` on bad input."""
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"invalid base64 value: {exc}") from exc


__all__ = ["b64e", "b64d", "std_b64e", "std_b64d"]
