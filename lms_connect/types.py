"""
Type definitions for lms-connect.

Defines enums and dataclasses used across the package for:
- Connection requests and the local/remote mode they select
- Client credentials (remote, development, privileged)
- The install pointer used to relaunch LM Studio
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from lms_connect.errors import HostFormatError, InvalidPortError, LaunchError


def is_valid_port(port: Any) -> bool:
    """Check that a port number fits in the TCP port range."""
    return isinstance(port, int) and not isinstance(port, bool) and 0 <= port <= 65535


def client_options(
    client_identifier: str,
    client_passkey: Optional[str] = None,
) -> Dict[str, Any]:
    """Keyword arguments for the RPC client constructor."""
    options: Dict[str, Any] = {"client_identifier": client_identifier}
    if client_passkey is not None:
        options["client_passkey"] = client_passkey
    return options


# =============================================================================
# Connection Types
# =============================================================================


class ConnectionMode(str, Enum):
    """
    Connection strategy, decided solely by whether a host was given.

    - LOCAL: No host; discover (and if needed launch) the local server
    - REMOTE: Explicit host; connect to it directly, unprivileged
    """
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class ConnectionRequest:
    """
    What the caller asked to connect to.

    Attributes:
        host: Hostname or IP without protocol or port (None = local mode)
        port: Explicit port (None = discover locally, or 1234 for a host)
    """
    host: Optional[str] = None
    port: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate request on creation."""
        self.validate()

    def validate(self) -> None:
        """Reject malformed hosts and out-of-range ports."""
        if self.host is not None:
            if "://" in self.host:
                raise HostFormatError(self.host, "Host should not include the protocol.")
            if ":" in self.host:
                raise HostFormatError(
                    self.host,
                    "Host should not include the port number. Use --port instead.",
                )
        if self.port is not None and not is_valid_port(self.port):
            raise InvalidPortError(self.port)

    @property
    def mode(self) -> ConnectionMode:
        """Presence of a host forces remote mode, even for 127.0.0.1."""
        return ConnectionMode.LOCAL if self.host is None else ConnectionMode.REMOTE


@dataclass(frozen=True)
class DiscoveredEndpoint:
    """Port found by a successful sweep. Never persisted."""
    port: int

    def base_url(self, host: str) -> str:
        return f"ws://{host}:{self.port}"


# =============================================================================
# Credential Types
# =============================================================================


class CredentialKind(str, Enum):
    """
    Which kind of client identity is presented to the server.

    - REMOTE: Random identifier, never privileged
    - DEV_LOCAL: Fixed identifier of a development build, unprivileged
    - PROD_LOCAL: Fixed identifier plus passkey, privileged
    """
    REMOTE = "remote"
    DEV_LOCAL = "dev_local"
    PROD_LOCAL = "prod_local"


@dataclass(frozen=True)
class Credentials:
    """
    Client credentials selected once per connection attempt.

    Attributes:
        kind: Credential variant
        client_identifier: Identifier sent to the server
        client_passkey: Embedded key + rotating secret (PROD_LOCAL only)
    """
    kind: CredentialKind
    client_identifier: str
    client_passkey: Optional[str] = field(default=None, repr=False)

    @property
    def is_privileged(self) -> bool:
        return self.kind == CredentialKind.PROD_LOCAL

    def as_client_options(self) -> Dict[str, Any]:
        """Keyword arguments for the RPC client constructor."""
        return client_options(self.client_identifier, self.client_passkey)


# =============================================================================
# Install Pointer
# =============================================================================


@dataclass(frozen=True)
class InstallPointer:
    """
    How to relaunch the installed LM Studio application.

    Written by the LM Studio installer; lms-connect only reads it.

    Attributes:
        path: Executable path
        argv: Original invocation arguments (argv[0] is the executable)
        cwd: Working directory for the launched process
    """
    path: str
    argv: List[str]
    cwd: str

    @property
    def is_dev_checkout(self) -> bool:
        """A development checkout is launched as `<electron> . ...`."""
        return len(self.argv) > 1 and self.argv[1] == "."

    @classmethod
    def from_dict(cls, data: Any) -> "InstallPointer":
        if not isinstance(data, dict):
            raise LaunchError("Install pointer must be a JSON object")

        path = data.get("path")
        argv = data.get("argv")
        cwd = data.get("cwd")

        if not isinstance(path, str) or not path:
            raise LaunchError("Install pointer is missing 'path'")
        if not isinstance(argv, list) or not all(isinstance(a, str) for a in argv):
            raise LaunchError("Install pointer 'argv' must be a list of strings")
        if not isinstance(cwd, str):
            raise LaunchError("Install pointer is missing 'cwd'")

        return cls(path=path, argv=list(argv), cwd=cwd)

    @classmethod
    def from_json(cls, text: str) -> "InstallPointer":
        """
        Parse the install pointer file contents.

        Raises:
            LaunchError: If the text is not a valid install pointer
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise LaunchError(f"Install pointer is not valid JSON: {e}") from e
        return cls.from_dict(data)
