"""Attestation-gated key broker."""
from .version import __version__

__all__ = ["__version__"]
