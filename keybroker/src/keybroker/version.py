"""Version information for the key broker."""

__version__ = "0.1.0"
