"""Challenge lifecycle management."""
from .store import CCA_EXAMPLE_TOKEN_NONCE, ChallengeStore

__all__ = ["CCA_EXAMPLE_TOKEN_NONCE", "ChallengeStore"]
