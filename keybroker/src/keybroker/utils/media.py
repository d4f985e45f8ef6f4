"""Media type comparison for evidence content types."""
from __future__ import annotations

import secrets
from email.message import Message


def normalize_media_type(value: str) -> str:
    """Return a canonical form of ``value`` suitable for equality checks.

    Type and subtype are lower-cased, parameters are sorted by name and their
    values are unquoted, so ``application/eat-collection; profile="x"`` and
    ``application/eat-collection;profile=x`` compare equal.
    """

    value = value.strip()
    if not value:
        return ""
    message = Message()
    message["content-type"] = value
    params = message.get_params() or []
    base = params[0][0].lower() if params else value.lower()
    rest = sorted((name.lower(), str(param).strip()) for name, param in params[1:])
    if not rest:
        return base
    return base + "".join(f";{name}={param}" for name, param in rest)


def media_type_in(value: str, accepted: tuple[str, ...] | list[str]) -> bool:
    candidate = normalize_media_type(value)
    return any(candidate == normalize_media_type(item) for item in accepted)


def constant_time_compare(lhs: bytes | str, rhs: bytes | str) -> bool:
    """Compare two byte sequences without leaking timing information"""
    if isinstance(lhs, str):
        lhs = lhs.encode("utf-8")
    if isinstance(rhs, str):
        rhs = rhs.encode("utf-8")
    return secrets.compare_digest(lhs, rhs)


__all__ = ["normalize_media_type", "media_type_in", "constant_time_compare"]
