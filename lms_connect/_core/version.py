"""
Version and protocol constants for lms-connect.

lms-connect talks to the LM Studio API server, which can be identified by:
- API_SERVER_PORTS: Well-known ports the local server binds to
- GREETING_PATH / GREETING_MARKER: The endpoint proving "this is LM Studio"
- DEFAULT_API_SERVER_PORT: Port assumed for explicit or remote targets
"""

from __future__ import annotations

from typing import Tuple

# lms-connect version (user-facing semver)
LMS_CONNECT_VERSION = "0.1.0"

# Candidate ports of the local API server, probed concurrently
API_SERVER_PORTS: Tuple[int, ...] = (41343, 52993, 16141, 39414, 22931)

# Used when a host is given without a port
DEFAULT_API_SERVER_PORT = 1234

LOCAL_HOST = "127.0.0.1"

# Greeting endpoint served only by LM Studio
GREETING_PATH = "/lmstudio-greeting"
GREETING_MARKER = "lmstudio"

# Launch invocation details
HEADLESS_FLAG = "--run-as-service"
DEV_CHECKOUT_MARKER = "."

# Client identifiers
PRIVILEGED_CLIENT_ID = "lms-cli"
DEV_CLIENT_ID = "lms-cli-dev"
REMOTE_CLIENT_ID_PREFIX = "lms-cli-remote-"

# Environment variable forcing production credentials in any build
FORCE_PROD_ENV = "LMS_FORCE_PROD"

