"""In-memory store of the secrets the broker can release."""
from __future__ import annotations

from typing import Dict, Iterable, Mapping

from .config import KeyEntry
from .crypto.wrapping import scoped_secret, wrap
from .errors import ConfigurationError, KeyNotFound
from .messages import PublicWrappingKey
from .utils.b64 import std_b64d


class KeyStore:
    """Named secrets loaded from configuration.

    Secrets are kept as immutable ``bytes`` and only ever leave the store
    wrapped under a requester's key. Nothing is persisted.
    """

    def __init__(self) -> None:
        self._keys: Dict[str, bytes] = {}

    @classmethod
    def from_config(cls, entries: Mapping[str, KeyEntry]) -> "KeyStore":
        store = cls()
        for name, entry in entries.items():
            if entry.encoding == "base64":
                try:
                    data = std_b64d(entry.data)
                except ValueError as exc:
                    raise ConfigurationError(f"key {name!r} is not valid base64") from exc
            else:
                data = entry.data.encode("utf-8")
            store.store_key(name, data)
        return store

    def store_key(self, name: str, data: bytes) -> None:
        if not name:
            raise ConfigurationError("key name must not be empty")
        if not data:
            raise ConfigurationError(f"key {name!r} has no data")
        self._keys[name] = bytes(data)

    def __contains__(self, name: object) -> bool:
        return name in self._keys

    def names(self) -> Iterable[str]:
        return sorted(self._keys)

    def wrap_key(self, key_name: str, wrapping_key: PublicWrappingKey) -> bytes:
        """Return the named secret freshly encrypted under ``wrapping_key``."""
        stored = self._keys.get(key_name)
        if stored is None:
            raise KeyNotFound(f"no key named {key_name!r}")
        with scoped_secret(bytearray(stored)) as plaintext:
            return wrap(plaintext, wrapping_key)


__all__ = ["KeyStore"]
