"""
Local service discovery and launch for lms-connect.

This module handles:
- Greeting probes and concurrent port sweeps
- Headless launch of the installed LM Studio app
- Platform-resolved paths and protocol constants
"""

from lms_connect._core.version import (
    LMS_CONNECT_VERSION,
    API_SERVER_PORTS,
    DEFAULT_API_SERVER_PORT,
    GREETING_PATH,
)
from lms_connect._core.probe import (
    probe_port,
    probe_port_sync,
    first_success,
    find_local_api_server,
    check_http_server,
)
from lms_connect._core.launcher import (
    read_install_pointer,
    build_launch_args,
    build_child_env,
    spawn_detached,
    wake_up_service,
    wake_up_service_sync,
)
from lms_connect._core.paths import (
    get_lmstudio_home,
    get_install_location_path,
    get_lms_key2_path,
)

__all__ = [
    # Version
    "LMS_CONNECT_VERSION",
    "API_SERVER_PORTS",
    "DEFAULT_API_SERVER_PORT",
    "GREETING_PATH",
    # Probe
    "probe_port",
    "probe_port_sync",
    "first_success",
    "find_local_api_server",
    "check_http_server",
    # Launcher
    "read_install_pointer",
    "build_launch_args",
    "build_child_env",
    "spawn_detached",
    "wake_up_service",
    "wake_up_service_sync",
    # Paths
    "get_lmstudio_home",
    "get_install_location_path",
    "get_lms_key2_path",
]
