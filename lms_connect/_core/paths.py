"""
Platform-resolved locations of files owned by the LM Studio app.
"""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_cache_dir


def get_lmstudio_home() -> Path:
    """
    Get the LM Studio home directory.

    Environment Variables:
        LMSTUDIO_HOME: Overrides the resolved location

    Falls back from ~/.lmstudio to the legacy per-user cache directory
    (e.g. ~/.cache/lm-studio on Linux).
    """
    override = os.environ.get("LMSTUDIO_HOME")
    if override:
        return Path(override).expanduser()

    home = Path.home() / ".lmstudio"
    if home.exists():
        return home

    return Path(user_cache_dir("lm-studio", appauthor=False))


def get_internal_dir() -> Path:
    return get_lmstudio_home() / ".internal"


def get_install_location_path() -> Path:
    """Path of the JSON install pointer written by the installer."""
    return get_internal_dir() / "app-install-location.json"


def get_lms_key2_path() -> Path:
    """Path of the rotating second half of the privileged passkey."""
    return get_internal_dir() / "lms-key-2"
