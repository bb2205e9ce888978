"""
Client handle produced by the connection orchestrator.

The RPC client itself lives outside lms-connect. The orchestrator only needs
a constructor taking a base URL and credential keywords, described by
ClientFactory. ClientHandle is the default: a plain record of where and as
whom to connect, which callers can hand to their RPC client.

Usage:
    handle = await create_client()
    rpc = MyRpcClient(handle.base_url, **handle.client_options)

    # Or let the orchestrator build the RPC client directly
    rpc = await create_client(client_factory=MyRpcClient)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, TypeVar

from lms_connect.types import Credentials, client_options

ClientT = TypeVar("ClientT", covariant=True)


class ClientFactory(Protocol[ClientT]):
    """Constructor of an RPC client bound to ws://host:port."""

    def __call__(
        self,
        base_url: str,
        client_identifier: str,
        client_passkey: Optional[str] = None,
    ) -> ClientT:
        ...


@dataclass(frozen=True)
class ClientHandle:
    """
    Where and as whom to connect.

    Attributes:
        base_url: Websocket URL of the API server (ws://host:port)
        client_identifier: Identifier presented to the server
        client_passkey: Passkey of privileged clients
    """
    base_url: str
    client_identifier: str
    client_passkey: Optional[str] = field(default=None, repr=False)

    @property
    def client_options(self) -> Dict[str, Any]:
        return client_options(self.client_identifier, self.client_passkey)


def build_client(
    factory: ClientFactory[ClientT],
    base_url: str,
    credentials: Credentials,
) -> ClientT:
    """Construct a client from a base URL and selected credentials."""
    return factory(base_url, **credentials.as_client_options())
