"""
Greeting probes for locating the LM Studio API server.

A port is "ours" only when GET /lmstudio-greeting answers 200 with a JSON
object whose "lmstudio" field is exactly true. Everything else is folded
into NotLMStudioServerError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Iterable, List, Optional, TypeVar

import requests

from lms_connect._core.version import (
    API_SERVER_PORTS,
    GREETING_MARKER,
    GREETING_PATH,
    LOCAL_HOST,
)
from lms_connect.errors import NotLMStudioServerError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Seconds before a single greeting request is abandoned
PROBE_TIMEOUT = 2.0


def get_greeting_url(port: int, host: str = LOCAL_HOST) -> str:
    return f"http://{host}:{port}{GREETING_PATH}"


def probe_port_sync(
    port: int,
    host: str = LOCAL_HOST,
    timeout: float = PROBE_TIMEOUT,
) -> int:
    """
    Check whether the LM Studio API server is listening on a port.

    Args:
        port: Port to probe
        host: Host to probe (default: loopback)
        timeout: Request timeout in seconds

    Returns:
        The port, if it answered the greeting affirmatively

    Raises:
        NotLMStudioServerError: For any other outcome
    """
    url = get_greeting_url(port, host)

    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise NotLMStudioServerError(f"No response from {url}: {e}", port=port) from e

    if response.status_code != 200:
        raise NotLMStudioServerError("Status is not 200.", port=port)

    try:
        body = response.json()
    except ValueError as e:
        raise NotLMStudioServerError("Greeting is not JSON.", port=port) from e

    if not isinstance(body, dict) or body.get(GREETING_MARKER) is not True:
        raise NotLMStudioServerError("Not an LM Studio server.", port=port)

    return port


async def probe_port(
    port: int,
    host: str = LOCAL_HOST,
    timeout: float = PROBE_TIMEOUT,
) -> int:
    """
    Async wrapper for probe_port_sync.

    Runs in the default executor so several probes can be in flight at once.
    """
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, probe_port_sync, port, host, timeout)


def _discard_outcome(task: "asyncio.Future") -> None:
    """Mark a losing task's result as retrieved so nothing is reported for it."""
    if not task.cancelled():
        task.exception()


async def first_success(aws: Iterable[Awaitable[T]]) -> T:
    """
    Return the result of whichever awaitable succeeds first.

    Losing awaitables are neither cancelled nor awaited: they keep running
    after this returns and their outcomes are discarded. Ordering among
    them is whatever the scheduler produces, not the input order.

    Raises:
        NotLMStudioServerError: If every awaitable failed (or none were given),
            with the individual failures in ``failures``
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        raise NotLMStudioServerError("Nothing to probe")

    for task in tasks:
        task.add_done_callback(_discard_outcome)

    failures: List[BaseException] = []
    for next_done in asyncio.as_completed(tasks):
        try:
            return await next_done
        except Exception as e:
            failures.append(e)

    raise NotLMStudioServerError(
        "No LM Studio server answered on any candidate port",
        failures=failures,
    )


async def find_local_api_server(
    ports: Iterable[int] = API_SERVER_PORTS,
    timeout: float = PROBE_TIMEOUT,
) -> Optional[int]:
    """
    Sweep all candidate ports concurrently for the local API server.

    Args:
        ports: Candidate ports (default: API_SERVER_PORTS)
        timeout: Per-probe timeout in seconds

    Returns:
        The first port that answered the greeting, or None. Never raises.
    """
    try:
        return await first_success(probe_port(port, timeout=timeout) for port in ports)
    except NotLMStudioServerError:
        return None


async def check_http_server(
    port: int,
    host: str = LOCAL_HOST,
    timeout: float = PROBE_TIMEOUT,
) -> bool:
    """
    Single liveness check against an explicit host:port.

    Returns:
        True if LM Studio answered the greeting there
    """
    try:
        await probe_port(port, host=host, timeout=timeout)
    except NotLMStudioServerError as e:
        logger.debug(f"Liveness check against {host}:{port} failed: {e}")
        return False
    return True
