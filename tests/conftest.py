"""
Pytest configuration for lms-connect tests.
"""

import json

import pytest
from unittest.mock import MagicMock

from lms_connect.connect import ConnectConfig
from lms_connect.credentials import BuildConfig

# Note: With pytest-asyncio in auto mode, no event_loop fixture needed


def make_response(status_code=200, body=None, json_error=False):
    """Build a mock requests.Response for the greeting endpoint."""
    response = MagicMock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def response_factory():
    """Factory for mock greeting responses."""
    return make_response


@pytest.fixture
def greeting_response():
    """Affirmative LM Studio greeting."""
    return make_response(200, {"lmstudio": True})


@pytest.fixture
def fast_config():
    """ConnectConfig that polls without sleeping."""
    return ConnectConfig(poll_interval=0, max_poll_attempts=3, probe_timeout=0.5)


@pytest.fixture
def dev_build():
    """Development build: no embedded key, not forced."""
    return BuildConfig(lms_key=None, force_prod=False)


@pytest.fixture
def prod_build():
    """Release build with an embedded key."""
    return BuildConfig(lms_key="embedded-key-", force_prod=False)


@pytest.fixture
def secret_file(tmp_path):
    """Client secret file with surrounding whitespace."""
    path = tmp_path / "lms-key-2"
    path.write_text("  rotating-secret\n", encoding="utf-8")
    return path


@pytest.fixture
def install_pointer_file(tmp_path):
    """Install pointer of a packaged LM Studio app."""
    path = tmp_path / "app-install-location.json"
    path.write_text(
        json.dumps({
            "path": "/opt/LM Studio/lm-studio",
            "argv": ["/opt/LM Studio/lm-studio"],
            "cwd": "/opt/LM Studio",
        }),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def dev_install_pointer_file(tmp_path):
    """Install pointer of a development checkout (electron .)."""
    path = tmp_path / "app-install-location.json"
    path.write_text(
        json.dumps({
            "path": "/home/dev/lmstudio/node_modules/.bin/electron",
            "argv": ["/home/dev/lmstudio/node_modules/.bin/electron", ".", "--inspect"],
            "cwd": "/home/dev/lmstudio",
        }),
        encoding="utf-8",
    )
    return path
