"""Request construction and HTTP transport for the database gateway.

build_request    — addresses a gateway endpoint with embedded basic auth.
GatewayTransport — sends one request to the configured backend and returns the body.
"""

from __future__ import annotations

import base64
import logging
from typing import Optional

import httpx

from psdb._version import __version__
from psdb.credentials import ConnectionConfig
from psdb.exceptions import (
    HttpStatusError,
    InterfaceError,
    QueryCancelledError,
    TransportError,
)

logger = logging.getLogger("psdb.gateway")

# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

EXECUTE_PATH = "/psdb.v1alpha1.Database/Execute"
SESSION_PATH = "/psdb.v1alpha1.Database/CreateSession"

_METHOD = "POST"

DEFAULT_USER_AGENT = f"psdb-python/{__version__}"

# Seconds; applied to connect, read, write and pool acquisition alike.
DEFAULT_TIMEOUT: float = 10.0


# ---------------------------------------------------------------------------
# Request builder
# ---------------------------------------------------------------------------


def basic_auth(username: str, password: str) -> str:
    """Return the ``Authorization`` header value for *username*/*password*."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def build_request(
    config: ConnectionConfig,
    endpoint: str,
    body: bytes,
    *,
    user_agent: str = DEFAULT_USER_AGENT,
) -> httpx.Request:
    """Build a POST to ``https://{username}:{password}@{host}{endpoint}``."""
    try:
        url = httpx.URL(f"https://{config.host}{endpoint}").copy_with(
            username=config.username,
            password=config.password,
        )
    except httpx.InvalidURL as exc:
        raise InterfaceError(f"Cannot build gateway URL for host {config.host!r}: {exc}") from exc

    headers = {
        "Host": config.host,
        "Content-Type": "application/json",
        "User-Agent": user_agent,
        "Authorization": basic_auth(config.username, config.password),
    }
    return httpx.Request(_METHOD, url, headers=headers, content=body)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


def _split_backend(backend: str) -> tuple[str, Optional[int]]:
    """Split ``host[:port]``; IPv6 literals come bare or as ``[addr]:port``."""
    if backend.startswith("["):
        addr, sep, rest = backend[1:].partition("]")
        if sep and not rest:
            return addr, None
        if sep and rest[:1] == ":" and rest[1:].isdigit():
            return addr, int(rest[1:])
        return backend, None
    host, sep, port = backend.rpartition(":")
    if sep and ":" not in host and port.isdigit():
        return host, int(port)
    return backend, None


class GatewayTransport:
    """Sends built requests to a gateway backend.

    A fresh ``httpx.Client`` is used for every call so a connection holds no
    sockets between queries.  *transport* lets callers (and tests) plug in any
    ``httpx.BaseTransport``, e.g. ``httpx.MockTransport``.
    """

    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._transport = transport

    # -- public ------------------------------------------------------------

    def send(
        self,
        request: httpx.Request,
        backend: str,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ) -> bytes:
        """Send *request* via *backend* and return the raw 200 response body.

        *timeout* is the caller's deadline in seconds; ``None`` waits forever.
        """
        if not backend:
            raise TransportError("no backend configured")

        try:
            self._route(request, backend)
        except httpx.InvalidURL as exc:
            raise TransportError(f"Invalid gateway backend {backend!r}: {exc}") from exc
        # Client-level timeouts only reach requests built by the client itself.
        request.extensions["timeout"] = httpx.Timeout(timeout).as_dict()

        logger.debug("POST %s via %s", request.url.path, backend)

        try:
            with httpx.Client(transport=self._transport) as client:
                resp = client.send(request)
        except httpx.TimeoutException as exc:
            raise QueryCancelledError(
                f"Gateway request to {request.url.path} cancelled: deadline of {timeout}s exceeded"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to reach gateway backend {backend}: {exc}") from exc

        if resp.status_code != 200:
            raise HttpStatusError(resp.status_code, resp.text)

        logger.debug("Gateway answered %s with %d bytes", request.url.path, len(resp.content))
        return resp.content

    # -- private -----------------------------------------------------------

    @staticmethod
    def _route(request: httpx.Request, backend: str) -> None:
        """Dial *backend* while keeping the logical host in ``Host`` and TLS SNI."""
        host, port = _split_backend(backend)
        if host == request.url.host and port in (None, request.url.port):
            return
        request.extensions["sni_hostname"] = request.url.host
        request.url = request.url.copy_with(host=host, port=port)
