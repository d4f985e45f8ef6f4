"""Shared filesystem path helpers for the key broker."""
from __future__ import annotations

import sys
from pathlib import Path

from platformdirs import PlatformDirs

_APP_NAME = "Key Broker"
_LINUX_APP_NAME = "keybroker"

POLICY_DIR = Path(__file__).resolve().parent / "policies"


def runtime_config_dir() -> Path:
    """Return the per-user runtime configuration directory."""
    if sys.platform in {"win32", "darwin"}:
        dirs = PlatformDirs(appname=_APP_NAME, appauthor=None, roaming=True)
    else:
        dirs = PlatformDirs(appname=_LINUX_APP_NAME, appauthor=None, roaming=False)
    return Path(dirs.user_config_path)


def builtin_policy_path(name: str) -> Path:
    """Return the location of a policy shipped with the package."""
    return POLICY_DIR / f"{name}.yaml"
