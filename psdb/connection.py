"""Gateway connection and driver.

Usage::

    from psdb import Driver

    conn = Driver().open("username=...&password=...&host=...&backend=...")
    for row in conn.query("SELECT id, name FROM user"):
        print(row)
    conn.close()
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Optional

import httpx

from psdb.base import BaseConnection
from psdb.codec import ErrorResult, QueryResult, decode_envelope, encode_execute_body
from psdb.credentials import ConnectionConfig, parse_dsn
from psdb.exceptions import QueryCancelledError
from psdb.gateway import (
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    EXECUTE_PATH,
    GatewayTransport,
    build_request,
)
from psdb.rows import RowSet
from psdb.session import SessionManager

logger = logging.getLogger("psdb.connection")


def _remaining(deadline: Optional[float], timeout: Optional[float]) -> Optional[float]:
    """Seconds left before *deadline*; ``None`` when there is no deadline."""
    if deadline is None:
        return None
    left = deadline - time.monotonic()
    if left <= 0:
        raise QueryCancelledError(f"Query cancelled: deadline of {timeout}s exceeded")
    return left


class Connection(BaseConnection):
    """DB-API connection that runs statements through the HTTP gateway.

    Parameters
    ----------
    config:
        Parsed credentials and addressing.
    timeout:
        Default per-request deadline in seconds; ``None`` waits forever.
    user_agent:
        ``User-Agent`` sent with every request.
    transport:
        Optional ``httpx.BaseTransport`` used instead of the network.
    """

    _label = "psdb"

    def __init__(
        self,
        config: ConnectionConfig,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__()
        self._config = config
        self._timeout = timeout
        self._request_factory = functools.partial(build_request, user_agent=user_agent)
        self._transport = GatewayTransport(transport)
        self._session = SessionManager(config, self._transport, self._request_factory)

    # -- properties --------------------------------------------------------

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def session(self) -> SessionManager:
        return self._session

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    # -- BaseConnection hooks ----------------------------------------------

    def _execute(self, sql: str, timeout: Optional[float]) -> RowSet:
        if timeout is None:
            timeout = self._timeout
        # One budget covers CreateSession and Execute together.
        deadline = None if timeout is None else time.monotonic() + timeout

        token = self._session.ensure_session(timeout=_remaining(deadline, timeout))

        request = self._request_factory(self._config, EXECUTE_PATH, encode_execute_body(sql, token))
        body = self._transport.send(
            request, self._config.backend, timeout=_remaining(deadline, timeout)
        )

        envelope = decode_envelope(body)
        self._session.observe(envelope)

        if isinstance(envelope, ErrorResult):
            raise envelope.exception()
        if not isinstance(envelope, QueryResult):
            # Session update only: the statement produced no result set.
            return RowSet((), ())

        logger.debug(
            "Query returned %d rows (%d affected)", len(envelope.rows), envelope.rows_affected
        )
        return RowSet(
            envelope.columns,
            envelope.rows,
            rows_affected=envelope.rows_affected,
            insert_id=envelope.insert_id,
        )

    def _close(self) -> None:
        self._session.reset()


class Driver:
    """Opens :class:`Connection` objects from connection descriptors.

    Keyword arguments given here become defaults for every opened connection.
    """

    def __init__(
        self,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport

    def open(self, descriptor: str) -> Connection:
        """Parse *descriptor* and return a connection.  No request is sent yet."""
        config = parse_dsn(descriptor)
        logger.debug("Opening connection to host=%s via backend=%s", config.host, config.backend)
        return Connection(
            config,
            timeout=self._timeout,
            user_agent=self._user_agent,
            transport=self._transport,
        )
