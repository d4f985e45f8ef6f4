"""Utility exports."""
from .b64 import b64d, b64e, std_b64d, std_b64e
from .media import constant_time_compare, media_type_in, normalize_media_type
from .validation import resolve_and_check_path

__all__ = [
    "b64e",
    "b64d",
    "std_b64e",
    "std_b64d",
    "constant_time_compare",
    "media_type_in",
    "normalize_media_type",
    "resolve_and_check_path",
]
