"""
Exception types for lms-connect.

Provides typed exceptions for:
- User input errors (malformed host or port)
- Local server discovery (probe misses, exhausted polling)
- Service launch failures
- Credential and configuration errors
"""

from __future__ import annotations

from typing import List, Optional


class LMSConnectError(Exception):
    """Base exception for all lms-connect errors."""
    pass


# =============================================================================
# User Input Errors
# =============================================================================


class UserInputError(LMSConnectError):
    """
    Raised when the connection request itself is malformed.

    These are never retried and never enter the polling path. The
    orchestrator reports them and terminates the process with exit code 1.
    """
    pass


class HostFormatError(UserInputError):
    """
    Raised when a host includes a protocol or a port number.

    Example:
        try:
            ConnectionRequest(host="ws://localhost:1234")
        except HostFormatError as e:
            logger.error(str(e))
    """

    def __init__(self, host: str, detail: str):
        self.host = host
        self.detail = detail
        super().__init__(detail)

    def __repr__(self) -> str:
        return f"HostFormatError(host={self.host!r}, detail={self.detail!r})"


class InvalidPortError(UserInputError):
    """Raised when a port is outside 0-65535."""

    def __init__(self, port: object):
        self.port = port
        super().__init__(f"Port must be an integer between 0 and 65535, got {port!r}")


# =============================================================================
# Discovery Errors
# =============================================================================


class NotLMStudioServerError(LMSConnectError):
    """
    Raised when a port does not answer the greeting as LM Studio.

    Covers every kind of miss alike: non-200 status, non-JSON body, missing
    or false marker, connection refused, timeout. Only an affirmative
    greeting identifies the target.
    """

    def __init__(
        self,
        message: str,
        port: Optional[int] = None,
        failures: Optional[List[BaseException]] = None,
    ):
        self.port = port
        self.failures = failures or []
        super().__init__(message)


class ServerUnreachableError(LMSConnectError):
    """
    Raised when the local API server never became reachable.

    The service was woken up and the candidate ports were polled for the
    whole budget without a single positive greeting.
    """

    def __init__(self, host: str, attempts: int):
        self.host = host
        self.attempts = attempts
        super().__init__(
            f"LM Studio API server did not become reachable at {host} "
            f"after {attempts} attempts"
        )

    def __repr__(self) -> str:
        return f"ServerUnreachableError(host={self.host!r}, attempts={self.attempts!r})"


# =============================================================================
# Launch Errors
# =============================================================================


class LaunchError(LMSConnectError):
    """
    Raised when the LM Studio application cannot be launched.

    This includes:
    - Install pointer file missing, unreadable or not UTF-8
    - Install pointer with malformed contents
    - Process spawn failures

    Launch failures should not block discovery, so this error is
    typically logged rather than raised to callers.
    """
    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConnectConfigError(LMSConnectError):
    """
    Raised when connection configuration is invalid.

    This includes:
    - Empty candidate port list or ports out of range
    - Non-positive poll interval or attempt budget
    """
    pass


class CredentialError(LMSConnectError):
    """Raised when the privileged client secret cannot be read."""
    pass
