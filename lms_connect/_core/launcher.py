"""
Headless launch of the installed LM Studio application.

Handles:
- Reading the install pointer written by the installer
- Rebuilding the launch invocation (development checkouts, headless flag)
- Platform environment adjustments
- Spawning the process detached, then abandoning it
"""

from __future__ import annotations

import asyncio
import logging
import os
import platform
import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from lms_connect._core.paths import get_install_location_path
from lms_connect._core.version import DEV_CHECKOUT_MARKER, HEADLESS_FLAG
from lms_connect.errors import LaunchError
from lms_connect.types import InstallPointer

logger = logging.getLogger(__name__)

# Display server assumed for headless Linux hosts
DEFAULT_DISPLAY = ":0"


def read_install_pointer(path: Optional[Path] = None) -> InstallPointer:
    """
    Read and parse the install pointer.

    Args:
        path: Pointer file (default: platform-resolved location)

    Raises:
        LaunchError: If the file is missing, unreadable or malformed
    """
    path = path or get_install_location_path()
    logger.debug(f"Resolved install pointer path: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LaunchError(f"Cannot read install pointer at {path}: {e}") from e

    pointer = InstallPointer.from_json(text)
    logger.debug(f"Read install pointer: {pointer}")
    return pointer


def build_launch_args(pointer: InstallPointer) -> List[str]:
    """
    Arguments for relaunching the app as a headless service.

    A development checkout needs "." again so the right entry point is
    selected; the headless flag is always appended.
    """
    args: List[str] = []
    if pointer.is_dev_checkout:
        args.append(DEV_CHECKOUT_MARKER)
    args.append(HEADLESS_FLAG)
    return args


def build_child_env(
    base_env: Optional[Mapping[str, str]] = None,
    system: Optional[str] = None,
) -> Dict[str, str]:
    """
    Environment for the launched process.

    On Linux, DISPLAY defaults to ":0" so the graphical runtime can start on
    headless hosts; an existing DISPLAY wins. Other platforms get the
    environment unchanged.
    """
    env = dict(os.environ if base_env is None else base_env)
    system = (system or platform.system()).lower()
    if system == "linux":
        env.setdefault("DISPLAY", DEFAULT_DISPLAY)
    return env


def spawn_detached(
    executable: str,
    args: List[str],
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    """
    Start a process that outlives this one, and let go of it.

    Standard streams go to DEVNULL and the child gets its own session (or
    process group on Windows). The Popen handle is dropped: the caller never
    waits for, reaps or terminates the child.

    Returns:
        PID of the spawned process

    Raises:
        LaunchError: If the process could not be started
    """
    kwargs: Dict[str, object] = {}
    if os.name == "nt":
        kwargs["creationflags"] = (
            subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
        )
    else:
        kwargs["start_new_session"] = True

    try:
        process = subprocess.Popen(
            [executable, *args],
            cwd=cwd or None,
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            close_fds=True,
            **kwargs,
        )
    except (OSError, ValueError) as e:
        raise LaunchError(f"Failed to spawn {executable}: {e}") from e

    return process.pid


def wake_up_service_sync(pointer_path: Optional[Path] = None) -> bool:
    """
    Launch LM Studio headlessly from its install pointer.

    Args:
        pointer_path: Install pointer file (default: platform-resolved location)

    Returns:
        True if the process was spawned, False on any failure. Failures are
        logged at debug level and never raised.
    """
    logger.info("Waking up LM Studio service...")

    try:
        pointer = read_install_pointer(pointer_path)
        args = build_launch_args(pointer)
        env = build_child_env()

        logger.debug(f"Spawning process: path={pointer.path} args={args} cwd={pointer.cwd}")
        pid = spawn_detached(pointer.path, args, cwd=pointer.cwd, env=env)

        logger.debug(f"Process spawned (PID: {pid})")
        return True

    except LaunchError as e:
        logger.debug(f"Failed to launch application: {e}")
        return False


async def wake_up_service(pointer_path: Optional[Path] = None) -> bool:
    """
    Async wrapper for wake_up_service_sync.

    File reads and the spawn run in the default executor.
    """
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, wake_up_service_sync, pointer_path)
