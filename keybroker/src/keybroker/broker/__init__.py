"""Key broker protocol engine exports."""
from .engine import KeyBroker

__all__ = ["KeyBroker"]
