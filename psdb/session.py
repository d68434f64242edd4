"""Gateway session tracking.

Every Execute call carries the session the gateway handed out last.  The
session is kept as the exact bytes received and is never interpreted.

States::

    NoSession ──ensure_session()──▶ HasSession(token)
    HasSession(token) ──observe(envelope with session)──▶ HasSession(new token)
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import httpx

from psdb.codec import ResultEnvelope, decode_session
from psdb.credentials import ConnectionConfig
from psdb.gateway import SESSION_PATH, GatewayTransport, build_request

logger = logging.getLogger("psdb.session")

# Token stored when CreateSession answers without a session object.
EMPTY_SESSION = b"null"

RequestFactory = Callable[[ConnectionConfig, str, bytes], httpx.Request]


class SessionManager:
    """Owns the opaque session token of one connection.

    Not thread-safe on its own: the owning connection serializes calls.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        transport: GatewayTransport,
        request_factory: RequestFactory = build_request,
    ) -> None:
        self._config = config
        self._transport = transport
        self._request_factory = request_factory
        self._token: Optional[bytes] = None

    # -- properties --------------------------------------------------------

    @property
    def token(self) -> Optional[bytes]:
        """The current session bytes, or ``None`` before the first session."""
        return self._token

    @property
    def has_session(self) -> bool:
        return self._token is not None

    # -- public ------------------------------------------------------------

    def ensure_session(self, *, timeout: Optional[float]) -> bytes:
        """Create a session on the gateway unless one is already held."""
        if self._token is not None:
            return self._token

        request = self._request_factory(self._config, SESSION_PATH, b"{}")
        body = self._transport.send(request, self._config.backend, timeout=timeout)

        session = decode_session(body)
        if session is None:
            logger.debug("CreateSession returned no session object")
            session = EMPTY_SESSION

        self._token = session
        logger.info("Gateway session created for user=%s", self._config.username)
        return session

    def observe(self, envelope: ResultEnvelope) -> None:
        """Adopt the session carried by *envelope*, if it has one."""
        if envelope.session is not None:
            self._token = envelope.session
            logger.debug("Gateway session updated (%d bytes)", len(envelope.session))

    def reset(self) -> None:
        """Forget the current session."""
        self._token = None
