"""
lms-connect: Find, wake up and connect to LM Studio.

This package provides:
- Discovery of the local LM Studio API server across its well-known ports
- Headless launch of the installed app when nothing answers
- Credential selection (remote, development, privileged)
- Construction of a client bound to the resolved ws:// address

Installation:
    pip install lms-connect

Quickstart:
    from lms_connect import create_client

    handle = await create_client()
    print(handle.base_url)          # ws://127.0.0.1:41343

Remote:
    handle = await create_client(host="gpu-box.local", port=1234)
    print(handle.client_identifier) # lms-cli-remote-...

With your own RPC client:
    client = await create_client(client_factory=MyRpcClient)
"""

from lms_connect.types import (
    ConnectionMode,
    ConnectionRequest,
    CredentialKind,
    Credentials,
    DiscoveredEndpoint,
    InstallPointer,
)
from lms_connect.errors import (
    LMSConnectError,
    UserInputError,
    HostFormatError,
    InvalidPortError,
    NotLMStudioServerError,
    ServerUnreachableError,
    LaunchError,
    ConnectConfigError,
    CredentialError,
)
from lms_connect.credentials import (
    BuildConfig,
    derive_credentials,
    select_credentials,
)
from lms_connect.client import (
    ClientFactory,
    ClientHandle,
)
from lms_connect.connect import (
    ConnectConfig,
    connect,
    create_client,
    create_client_sync,
)
from lms_connect._core.probe import find_local_api_server
from lms_connect._core.launcher import wake_up_service
from lms_connect._core.version import LMS_CONNECT_VERSION

__version__ = LMS_CONNECT_VERSION

__all__ = [
    # Version
    "__version__",
    # Types
    "ConnectionMode",
    "ConnectionRequest",
    "CredentialKind",
    "Credentials",
    "DiscoveredEndpoint",
    "InstallPointer",
    # Errors
    "LMSConnectError",
    "UserInputError",
    "HostFormatError",
    "InvalidPortError",
    "NotLMStudioServerError",
    "ServerUnreachableError",
    "LaunchError",
    "ConnectConfigError",
    "CredentialError",
    # Credentials
    "BuildConfig",
    "derive_credentials",
    "select_credentials",
    # Client
    "ClientFactory",
    "ClientHandle",
    # Connect
    "ConnectConfig",
    "connect",
    "create_client",
    "create_client_sync",
    # Discovery
    "find_local_api_server",
    "wake_up_service",
]
