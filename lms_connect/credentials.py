"""
Client credential selection.

Three kinds of credentials exist:
- Remote: random "lms-cli-remote-..." identifier, never privileged
- DevLocal: fixed "lms-cli-dev" identifier of a development build
- ProdLocal: fixed "lms-cli" identifier plus a passkey made of the key
  embedded at build time and a rotating secret stored by LM Studio

The rotating secret may change while we wait for a freshly launched server,
so derive_credentials() is a pure function that callers invoke again with a
re-read secret instead of caching its result.

Usage:
    build = BuildConfig.from_env()
    credentials = await select_credentials(ConnectionMode.LOCAL, build)
"""

from __future__ import annotations

import asyncio
import base64
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from lms_connect._core.paths import get_lms_key2_path
from lms_connect._core.version import (
    DEV_CLIENT_ID,
    FORCE_PROD_ENV,
    PRIVILEGED_CLIENT_ID,
    REMOTE_CLIENT_ID_PREFIX,
)
from lms_connect.errors import CredentialError
from lms_connect.types import ConnectionMode, CredentialKind, Credentials

logger = logging.getLogger(__name__)

# Replaced by the release build; the placeholder means "not injected"
EMBEDDED_LMS_KEY = "<LMS-CLI-LMS-KEY>"

# Random bytes in a remote client identifier (144 bits)
REMOTE_ID_BYTES = 18


def _is_injected(key: Optional[str]) -> bool:
    return bool(key) and not key.startswith("<")


@dataclass
class BuildConfig:
    """
    Build-time credential configuration.

    Attributes:
        lms_key: Key embedded by the release build (None for dev builds)
        force_prod: Use privileged credentials even without an embedded key
    """
    lms_key: Optional[str] = None
    force_prod: bool = False

    @classmethod
    def from_env(cls) -> "BuildConfig":
        """
        Build configuration for this installation.

        Environment Variables:
            LMS_FORCE_PROD: Any non-empty value forces production credentials
        """
        return cls(
            lms_key=EMBEDDED_LMS_KEY if _is_injected(EMBEDDED_LMS_KEY) else None,
            force_prod=bool(os.environ.get(FORCE_PROD_ENV)),
        )

    @property
    def is_production(self) -> bool:
        return _is_injected(self.lms_key) or self.force_prod


def generate_remote_identifier() -> str:
    """Fresh random identifier for an unprivileged remote client."""
    random_bytes = os.urandom(REMOTE_ID_BYTES)
    return REMOTE_CLIENT_ID_PREFIX + base64.b64encode(random_bytes).decode("ascii")


def read_lms_key2(path: Optional[Path] = None) -> str:
    """
    Read the rotating half of the privileged passkey.

    Raises:
        CredentialError: If the secret file cannot be read or decoded
    """
    path = path or get_lms_key2_path()
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise CredentialError(f"Cannot read client secret at {path}: {e}") from e


async def read_lms_key2_async(path: Optional[Path] = None) -> str:
    """Async wrapper for read_lms_key2."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, read_lms_key2, path)


def derive_credentials(
    mode: ConnectionMode,
    raw_secret: Optional[str] = None,
    build: Optional[BuildConfig] = None,
) -> Credentials:
    """
    Compute credentials for a connection mode.

    Performs no I/O: the secret is read by the caller.

    Args:
        mode: LOCAL or REMOTE
        raw_secret: Contents of the rotating secret (required for production)
        build: Build configuration (default: BuildConfig())

    Returns:
        Credentials of the matching kind

    Raises:
        CredentialError: If production credentials are needed but no secret
            was supplied
    """
    build = build or BuildConfig()

    if mode == ConnectionMode.REMOTE:
        return Credentials(
            kind=CredentialKind.REMOTE,
            client_identifier=generate_remote_identifier(),
        )

    if not build.is_production:
        return Credentials(kind=CredentialKind.DEV_LOCAL, client_identifier=DEV_CLIENT_ID)

    if raw_secret is None:
        raise CredentialError("Production credentials require the client secret")

    lms_key = build.lms_key if _is_injected(build.lms_key) else ""
    return Credentials(
        kind=CredentialKind.PROD_LOCAL,
        client_identifier=PRIVILEGED_CLIENT_ID,
        client_passkey=lms_key + raw_secret.strip(),
    )


async def select_credentials(
    mode: ConnectionMode,
    build: Optional[BuildConfig] = None,
    secret_path: Optional[Path] = None,
) -> Credentials:
    """
    Select credentials for a connection attempt, reading the secret if needed.

    Warns when a development build falls back to unprivileged credentials.
    """
    build = build or BuildConfig.from_env()

    if mode == ConnectionMode.REMOTE:
        return derive_credentials(mode, build=build)

    if not build.is_production:
        logger.warning(
            "You are using a development build of lms-cli. Privileged features "
            'such as "lms push" will not work.'
        )
        return derive_credentials(mode, build=build)

    raw_secret = await read_lms_key2_async(secret_path)
    return derive_credentials(mode, raw_secret, build)


async def refresh_credentials(
    credentials: Credentials,
    build: Optional[BuildConfig] = None,
    secret_path: Optional[Path] = None,
) -> Credentials:
    """
    Re-derive privileged credentials from the current secret.

    Non-privileged credentials are returned unchanged.
    """
    if not credentials.is_privileged:
        return credentials

    build = build or BuildConfig.from_env()
    if not build.is_production:
        build = BuildConfig(lms_key=build.lms_key, force_prod=True)

    raw_secret = await read_lms_key2_async(secret_path)
    return derive_credentials(ConnectionMode.LOCAL, raw_secret, build)
