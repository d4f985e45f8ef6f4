"""Known-good measurement digests loaded once at startup."""
from __future__ import annotations

import json
from pathlib import Path
from typing import FrozenSet, Iterable

from ..errors import ReferenceValuesError
from ..utils.b64 import std_b64d
from ..utils.validation import resolve_and_check_path

DIGEST_SIZE = 32
_COLLECTION_KEY = "reference-values"


class ReferenceValues:
    """Immutable set of fixed-length digests."""

    def __init__(self, digests: Iterable[bytes], *, digest_size: int = DIGEST_SIZE) -> None:
        values = frozenset(bytes(d) for d in digests)
        if not values:
            raise ReferenceValuesError("at least one reference value is required")
        for digest in values:
            if len(digest) != digest_size:
                raise ReferenceValuesError(
                    f"reference value has {len(digest)} bytes, expected {digest_size}"
                )
        self._values: FrozenSet[bytes] = values
        self.digest_size = digest_size

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, digest: object) -> bool:
        return isinstance(digest, (bytes, bytearray)) and bytes(digest) in self._values

    def contains_b64(self, value: object) -> bool:
        """Membership test for a base64 claim value; malformed input is never a member."""
        if not isinstance(value, str):
            return False
        try:
            return std_b64d(value) in self
        except ValueError:
            return False

    @classmethod
    def from_strings(cls, entries: Iterable[str], *, digest_size: int = DIGEST_SIZE) -> "ReferenceValues":
        digests = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, str):
                raise ReferenceValuesError(f"reference value #{index} is not a string")
            try:
                digests.append(std_b64d(entry))
            except ValueError as exc:
                raise ReferenceValuesError(f"reference value #{index}: {exc}") from exc
        return cls(digests, digest_size=digest_size)


def load_reference_values(path: Path | str, *, digest_size: int = DIGEST_SIZE) -> ReferenceValues:
    """Load ``{"reference-values": [...]}`` or a bare JSON list of base64 digests."""

    try:
        resolved = resolve_and_check_path(path, must_exist=True, require_file=True)
        with resolved.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except (OSError, ValueError) as exc:
        raise ReferenceValuesError(f"Cannot read reference values from {path}: {exc}") from exc
    if isinstance(raw, dict):
        raw = raw.get(_COLLECTION_KEY)
    if not isinstance(raw, list):
        raise ReferenceValuesError(f"{path}: expected a list of reference values")
    return ReferenceValues.from_strings(raw, digest_size=digest_size)


__all__ = ["DIGEST_SIZE", "ReferenceValues", "load_reference_values"]
