"""Validation helpers for operator-supplied file paths."""
from __future__ import annotations

from pathlib import Path


def resolve_and_check_path(path: Path | str, *, must_exist: bool = False, require_file: bool = False) -> Path:
    """Expand and resolve ``path``.

    Relative paths may not climb out of the working directory with ``..``.

    Raises
    ------
    ValueError
        If any of the constraints is violated.
    """

    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        if ".." in candidate.parts:
            raise ValueError(f"Path traversal is not allowed: {path}")
        candidate = Path.cwd() / candidate
    resolved = candidate.resolve(strict=False)

    if must_exist and not resolved.exists():
        raise ValueError(f"Path does not exist: {resolved}")
    if require_file and resolved.exists() and not resolved.is_file():
        raise ValueError(f"Expected a file but found a directory: {resolved}")
    return resolved


__all__ = ["resolve_and_check_path"]
