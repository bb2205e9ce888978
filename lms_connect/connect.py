"""
Connection bootstrap for the LM Studio API server.

Decides between local and remote mode, selects credentials, discovers the
local server (launching it if needed) and constructs the client.

Local mode, no explicit port:

    Start -> Sweeping -> Connected
                      -> Launching -> Polling -> Connected
                                              -> Exhausted (ServerUnreachableError)

Explicit port or remote host: a single liveness check, then the client is
constructed against that exact address whatever the check said.

Usage:
    from lms_connect import create_client

    handle = await create_client()                      # local, auto-discover
    handle = await create_client(host="example.com")    # ws://example.com:1234
    handle = await create_client(port=9999)             # ws://127.0.0.1:9999
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Tuple

from lms_connect._core.launcher import wake_up_service
from lms_connect._core.probe import (
    PROBE_TIMEOUT,
    check_http_server,
    find_local_api_server,
)
from lms_connect._core.version import (
    API_SERVER_PORTS,
    DEFAULT_API_SERVER_PORT,
    LOCAL_HOST,
)
from lms_connect.client import ClientFactory, ClientHandle, build_client
from lms_connect.credentials import BuildConfig, refresh_credentials, select_credentials
from lms_connect.errors import ConnectConfigError, ServerUnreachableError, UserInputError
from lms_connect.types import (
    ConnectionMode,
    ConnectionRequest,
    DiscoveredEndpoint,
    is_valid_port,
)

logger = logging.getLogger(__name__)


@dataclass
class ConnectConfig:
    """
    Discovery and polling configuration.

    Attributes:
        candidate_ports: Ports swept for the local API server
        default_port: Port used for a host given without a port
        poll_interval: Seconds between sweeps after waking the service
        max_poll_attempts: Sweeps before giving up
        probe_timeout: Seconds before a single greeting request is abandoned
    """
    candidate_ports: Tuple[int, ...] = field(default_factory=lambda: tuple(API_SERVER_PORTS))
    default_port: int = DEFAULT_API_SERVER_PORT
    poll_interval: float = 1.0
    max_poll_attempts: int = 60
    probe_timeout: float = PROBE_TIMEOUT

    def __post_init__(self) -> None:
        """Validate configuration on creation."""
        self.candidate_ports = tuple(self.candidate_ports)
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.candidate_ports:
            raise ConnectConfigError("candidate_ports must not be empty")

        for port in self.candidate_ports:
            if not is_valid_port(port):
                raise ConnectConfigError(f"Invalid candidate port: {port!r}")

        if not is_valid_port(self.default_port):
            raise ConnectConfigError(f"Invalid default_port: {self.default_port!r}")

        if self.poll_interval < 0:
            raise ConnectConfigError(
                f"poll_interval must be >= 0, got {self.poll_interval}"
            )

        if self.max_poll_attempts < 1:
            raise ConnectConfigError(
                f"max_poll_attempts must be >= 1, got {self.max_poll_attempts}"
            )

        if self.probe_timeout <= 0:
            raise ConnectConfigError(
                f"probe_timeout must be > 0, got {self.probe_timeout}"
            )


def resolve_target(request: ConnectionRequest) -> Tuple[ConnectionMode, str]:
    """Connection mode and effective host of a request."""
    if request.mode == ConnectionMode.LOCAL:
        return ConnectionMode.LOCAL, LOCAL_HOST
    return ConnectionMode.REMOTE, request.host  # type: ignore[return-value]


async def wait_for_local_server(
    config: Optional[ConnectConfig] = None,
) -> Optional[DiscoveredEndpoint]:
    """
    Poll the candidate ports until the local API server answers.

    Sleeps poll_interval before every sweep, for at most max_poll_attempts
    sweeps. No backoff, no jitter.

    Returns:
        The discovered endpoint, or None when the budget is exhausted
    """
    config = config or ConnectConfig()

    for attempt in range(1, config.max_poll_attempts + 1):
        await asyncio.sleep(config.poll_interval)
        logger.debug(f"Polling the API server... (attempt {attempt})")

        port = await find_local_api_server(
            config.candidate_ports,
            timeout=config.probe_timeout,
        )
        if port is not None:
            return DiscoveredEndpoint(port=port)

    return None


async def connect(
    request: ConnectionRequest,
    *,
    config: Optional[ConnectConfig] = None,
    build: Optional[BuildConfig] = None,
    client_factory: ClientFactory[Any] = ClientHandle,
    secret_path: Optional[Path] = None,
    pointer_path: Optional[Path] = None,
) -> Any:
    """
    Connect according to an already validated request.

    Args:
        request: Validated connection request
        config: Discovery configuration (default: ConnectConfig())
        build: Build credential configuration (default: BuildConfig.from_env())
        client_factory: RPC client constructor (default: ClientHandle)
        secret_path: Client secret file (default: platform-resolved location)
        pointer_path: Install pointer file (default: platform-resolved location)

    Returns:
        Whatever client_factory built for the resolved ws:// address

    Raises:
        ServerUnreachableError: If the local server never came up after
            waking the service
        CredentialError: If privileged credentials are needed but the
            client secret cannot be read
    """
    config = config or ConnectConfig()
    build = build or BuildConfig.from_env()

    mode, host = resolve_target(request)
    credentials = await select_credentials(mode, build, secret_path=secret_path)

    if request.port is None and host == LOCAL_HOST:
        local_port = await find_local_api_server(
            config.candidate_ports,
            timeout=config.probe_timeout,
        )
        if local_port is not None:
            base_url = DiscoveredEndpoint(port=local_port).base_url(host)
            logger.debug(f"Found local API server at {base_url}")
            return build_client(client_factory, base_url, credentials)

        if mode == ConnectionMode.LOCAL:
            # The launch outcome does not gate polling: the service may be
            # starting on its own.
            await wake_up_service(pointer_path)

            endpoint = await wait_for_local_server(config)
            if endpoint is None:
                logger.error(
                    "LM Studio did not start within "
                    f"{config.max_poll_attempts * config.poll_interval:g}s. "
                    "Please launch LM Studio and try again."
                )
                raise ServerUnreachableError(host, config.max_poll_attempts)

            base_url = endpoint.base_url(host)
            logger.debug(f"Found local API server at {base_url}")

            # The secret may have been rotated by the freshly started server
            credentials = await refresh_credentials(
                credentials, build, secret_path=secret_path
            )
            return build_client(client_factory, base_url, credentials)

    port = request.port if request.port is not None else config.default_port

    logger.debug(f"Connecting to server at {host}:{port}")
    if not await check_http_server(port, host=host, timeout=config.probe_timeout):
        logger.error(
            f"The server does not appear to be running at {host}:{port}. Please "
            "make sure the server is running and accessible at the specified address."
        )

    base_url = f"ws://{host}:{port}"
    return build_client(client_factory, base_url, credentials)


async def create_client(
    host: Optional[str] = None,
    port: Optional[int] = None,
    **kwargs: Any,
) -> Any:
    """
    Validate user input and connect to LM Studio.

    Malformed input (a host with a protocol or port, a port outside
    0-65535) is reported and terminates the process with exit code 1
    before any network or file access.

    Args:
        host: Remote host (None = local LM Studio)
        port: Explicit port (None = discover locally / 1234 for a host)
        **kwargs: Passed to connect()

    Returns:
        The constructed client (ClientHandle by default)
    """
    try:
        request = ConnectionRequest(host=host, port=port)
    except UserInputError as e:
        logger.error(str(e))
        sys.exit(1)

    return await connect(request, **kwargs)


def create_client_sync(
    host: Optional[str] = None,
    port: Optional[int] = None,
    **kwargs: Any,
) -> Any:
    """
    Sync wrapper for create_client.

    See create_client() for full documentation.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(create_client(host, port, **kwargs))

    raise RuntimeError(
        "create_client_sync() cannot be called from a running event loop; "
        "use 'await create_client()' instead"
    )
