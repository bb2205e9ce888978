"""Tests for lms_connect._core.probe module."""

import asyncio
import json
import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import patch
import pytest
import requests

from lms_connect._core.probe import (
    check_http_server,
    find_local_api_server,
    first_success,
    get_greeting_url,
    probe_port,
    probe_port_sync,
)
from lms_connect._core.version import API_SERVER_PORTS
from lms_connect.errors import NotLMStudioServerError


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def greeting_server():
    """Real HTTP server on 127.0.0.1 answering with a configurable greeting."""
    state = {"status": 200, "body": json.dumps({"lmstudio": True}).encode()}

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            if self.path != "/lmstudio-greeting":
                self.send_response(404)
                self.end_headers()
                return
            self.send_response(state["status"])
            self.send_header("Content-Type", "application/json")
            self.end_headers()
            self.wfile.write(state["body"])

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server.server_address[1], state
    finally:
        server.shutdown()
        server.server_close()


class TestGetGreetingUrl:
    """Tests for get_greeting_url function."""

    def test_default_host(self):
        assert get_greeting_url(1234) == "http://127.0.0.1:1234/lmstudio-greeting"

    def test_custom_host(self):
        assert get_greeting_url(99, "example.com") == "http://example.com:99/lmstudio-greeting"


class TestProbePortSync:
    """Tests for probe_port_sync function."""

    @patch("requests.get")
    def test_affirmative_greeting(self, mock_get, greeting_response):
        """200 with lmstudio=true should return the port."""
        mock_get.return_value = greeting_response

        assert probe_port_sync(41343) == 41343

        url = mock_get.call_args[0][0]
        assert url == "http://127.0.0.1:41343/lmstudio-greeting"
        assert "timeout" in mock_get.call_args[1]

    @patch("requests.get")
    def test_non_200_status(self, mock_get, response_factory):
        """Any status other than 200 is a miss."""
        mock_get.return_value = response_factory(204, {"lmstudio": True})

        with pytest.raises(NotLMStudioServerError) as exc_info:
            probe_port_sync(41343)

        assert exc_info.value.port == 41343

    @patch("requests.get")
    def test_non_json_body(self, mock_get, response_factory):
        """A body that is not JSON is a miss."""
        mock_get.return_value = response_factory(200, json_error=True)

        with pytest.raises(NotLMStudioServerError):
            probe_port_sync(41343)

    @pytest.mark.parametrize("body", [
        {"lmstudio": False},
        {"lmstudio": "true"},
        {"lmstudio": 1},
        {"greeting": True},
        [True],
        None,
    ])
    @patch("requests.get")
    def test_marker_must_be_exactly_true(self, mock_get, body, response_factory):
        """Only a boolean true marker identifies LM Studio."""
        mock_get.return_value = response_factory(200, body)

        with pytest.raises(NotLMStudioServerError):
            probe_port_sync(41343)

    @patch("requests.get")
    def test_connection_refused(self, mock_get):
        """Transport errors are folded into the same miss."""
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(NotLMStudioServerError):
            probe_port_sync(41343)

    @patch("requests.get")
    def test_timeout(self, mock_get):
        """Timeouts are folded into the same miss."""
        mock_get.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(NotLMStudioServerError):
            probe_port_sync(41343, timeout=0.1)


class TestProbePortAgainstRealServer:
    """probe_port_sync against an HTTP server on loopback."""

    def test_lmstudio_server(self, greeting_server):
        port, _ = greeting_server
        assert probe_port_sync(port) == port

    def test_unrelated_server(self, greeting_server):
        """A different JSON service on the port is not mistaken for LM Studio."""
        port, state = greeting_server
        state["body"] = json.dumps({"status": "ok"}).encode()

        with pytest.raises(NotLMStudioServerError):
            probe_port_sync(port)

    def test_html_server(self, greeting_server):
        port, state = greeting_server
        state["body"] = b"<html>hello</html>"

        with pytest.raises(NotLMStudioServerError):
            probe_port_sync(port)

    def test_error_status(self, greeting_server):
        port, state = greeting_server
        state["status"] = 500

        with pytest.raises(NotLMStudioServerError):
            probe_port_sync(port)

    def test_nothing_listening(self):
        with pytest.raises(NotLMStudioServerError):
            probe_port_sync(_free_port(), timeout=1.0)


class TestProbePort:
    """Tests for probe_port async wrapper."""

    @pytest.mark.asyncio
    async def test_runs_sync_probe(self):
        with patch("lms_connect._core.probe.probe_port_sync", return_value=16141) as mock_probe:
            result = await probe_port(16141)

        assert result == 16141
        mock_probe.assert_called_once()
        assert mock_probe.call_args[0][0] == 16141

    @pytest.mark.asyncio
    async def test_propagates_miss(self):
        with patch(
            "lms_connect._core.probe.probe_port_sync",
            side_effect=NotLMStudioServerError("nope", port=16141),
        ):
            with pytest.raises(NotLMStudioServerError):
                await probe_port(16141)


class TestFirstSuccess:
    """Tests for first_success combinator."""

    @pytest.mark.asyncio
    async def test_returns_only_success(self):
        """The single succeeding awaitable wins regardless of position."""
        async def fail():
            raise NotLMStudioServerError("miss")

        async def succeed():
            await asyncio.sleep(0.01)
            return "winner"

        result = await first_success([fail(), fail(), succeed()])
        assert result == "winner"

    @pytest.mark.asyncio
    async def test_fastest_success_wins(self):
        async def after(delay, value):
            await asyncio.sleep(delay)
            return value

        result = await first_success([after(0.2, "slow"), after(0.01, "fast")])
        assert result == "fast"

    @pytest.mark.asyncio
    async def test_losers_not_cancelled(self):
        """Losing awaitables keep running after the winner is returned."""
        finished = []

        async def winner():
            await asyncio.sleep(0.01)
            return "winner"

        async def slow_loser():
            await asyncio.sleep(0.2)
            finished.append("slow")
            raise NotLMStudioServerError("late miss")

        result = await first_success([slow_loser(), winner()])

        assert result == "winner"
        assert finished == []

        await asyncio.sleep(0.3)
        assert finished == ["slow"]

    @pytest.mark.asyncio
    async def test_all_fail(self):
        """Every failure is collected when nothing succeeds."""
        async def fail(n):
            raise NotLMStudioServerError(f"miss {n}")

        with pytest.raises(NotLMStudioServerError) as exc_info:
            await first_success([fail(1), fail(2), fail(3)])

        assert len(exc_info.value.failures) == 3

    @pytest.mark.asyncio
    async def test_empty(self):
        with pytest.raises(NotLMStudioServerError):
            await first_success([])


class TestFindLocalApiServer:
    """Tests for find_local_api_server sweep."""

    @pytest.mark.asyncio
    async def test_probes_all_candidate_ports(self):
        probed = []

        async def fake_probe(port, timeout=None):
            probed.append(port)
            raise NotLMStudioServerError("miss", port=port)

        with patch("lms_connect._core.probe.probe_port", side_effect=fake_probe):
            result = await find_local_api_server()

        assert result is None
        assert sorted(probed) == sorted(API_SERVER_PORTS)

    @pytest.mark.parametrize("responder", list(API_SERVER_PORTS))
    @pytest.mark.asyncio
    async def test_single_responder_any_position(self, responder):
        """The one true responder is found wherever it sits in the list."""
        async def fake_probe(port, timeout=None):
            await asyncio.sleep(0.01)
            if port == responder:
                return port
            raise NotLMStudioServerError("miss", port=port)

        with patch("lms_connect._core.probe.probe_port", side_effect=fake_probe):
            result = await find_local_api_server()

        assert result == responder

    @pytest.mark.asyncio
    async def test_probes_run_concurrently(self):
        """A full miss takes about one probe duration, not one per port."""
        async def slow_miss(port, timeout=None):
            await asyncio.sleep(0.2)
            raise NotLMStudioServerError("miss", port=port)

        with patch("lms_connect._core.probe.probe_port", side_effect=slow_miss):
            start = time.monotonic()
            result = await find_local_api_server()
            elapsed = time.monotonic() - start

        assert result is None
        assert elapsed < 0.2 * len(API_SERVER_PORTS) / 2

    @pytest.mark.asyncio
    async def test_never_raises(self):
        async def broken(port, timeout=None):
            raise RuntimeError("unexpected")

        with patch("lms_connect._core.probe.probe_port", side_effect=broken):
            assert await find_local_api_server([1, 2]) is None

    @pytest.mark.asyncio
    async def test_custom_ports(self):
        async def fake_probe(port, timeout=None):
            if port == 5555:
                return port
            raise NotLMStudioServerError("miss", port=port)

        with patch("lms_connect._core.probe.probe_port", side_effect=fake_probe):
            assert await find_local_api_server([4444, 5555]) == 5555


class TestCheckHttpServer:
    """Tests for check_http_server liveness check."""

    @pytest.mark.asyncio
    async def test_alive(self):
        with patch("lms_connect._core.probe.probe_port_sync", return_value=1234) as mock_probe:
            assert await check_http_server(1234, host="example.com") is True

        args = mock_probe.call_args[0]
        assert args[0] == 1234
        assert args[1] == "example.com"

    @pytest.mark.asyncio
    async def test_unreachable(self):
        with patch(
            "lms_connect._core.probe.probe_port_sync",
            side_effect=NotLMStudioServerError("miss", port=9999),
        ):
            assert await check_http_server(9999) is False
