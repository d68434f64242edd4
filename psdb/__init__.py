"""psdb: PEP 249 driver for SQL databases behind an HTTP gateway.

Quick start::

    import psdb

    with psdb.connect("username=...&password=...&host=...&backend=...") as conn:
        cur = conn.cursor()
        cur.execute("SELECT id, name FROM user")
        for id_, name in cur:
            print(id_, name)

Without a descriptor, :func:`connect` reads it from ``$PSDB_DSN``.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from psdb._version import __version__
from psdb.base import BaseConnection
from psdb.codec import ColumnDescriptor, RowRecord
from psdb.connection import Connection, Driver
from psdb.credentials import ConnectionConfig, dsn_from_env, parse_dsn
from psdb.cursor import Cursor
from psdb.exceptions import (
    CodecError,
    DatabaseError,
    DataError,
    Error,
    HttpStatusError,
    IntegrityError,
    InterfaceError,
    InternalError,
    NotSupportedError,
    OperationalError,
    ParseError,
    ProgrammingError,
    ProtocolError,
    QueryCancelledError,
    TransportError,
    UnknownProtocolError,
    UnsupportedOperationError,
    Warning,
)
from psdb.gateway import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from psdb.rows import RowSet
from psdb.types import (
    BINARY,
    DATETIME,
    NUMBER,
    ROWID,
    STRING,
    Binary,
    Date,
    DateFromTicks,
    Time,
    TimeFromTicks,
    Timestamp,
    TimestampFromTicks,
)

logger = logging.getLogger("psdb")

# PEP 249 module globals
apilevel = "2.0"
threadsafety = 2  # connections may be shared; queries are serialized per connection
paramstyle = "format"  # declared for compliance; parameters are rejected


def connect(
    dsn: Optional[str] = None,
    *,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
    transport: Optional[httpx.BaseTransport] = None,
) -> Connection:
    """Open a connection from a descriptor (or ``$PSDB_DSN`` when omitted).

    Parameters
    ----------
    dsn : str, optional
        ``username=...&password=...&host=...&backend=...``.
    timeout : float, optional
        Default per-request deadline in seconds (default: 10).
    user_agent : str, optional
        ``User-Agent`` header value.
    transport : httpx.BaseTransport, optional
        Transport to use instead of the network.

    Returns
    -------
    Connection
        A connection; no request is sent until the first query.
    """
    if dsn is None:
        dsn = dsn_from_env()
    driver = Driver(timeout=timeout, user_agent=user_agent, transport=transport)
    return driver.open(dsn)


__all__ = [
    # Entry points
    "connect",
    "Driver",
    "Connection",
    "BaseConnection",
    "Cursor",
    "RowSet",
    # Data
    "ConnectionConfig",
    "ColumnDescriptor",
    "RowRecord",
    "parse_dsn",
    "dsn_from_env",
    # PEP 249 globals, types and constructors
    "apilevel",
    "threadsafety",
    "paramstyle",
    "STRING",
    "BINARY",
    "NUMBER",
    "DATETIME",
    "ROWID",
    "Date",
    "Time",
    "Timestamp",
    "Binary",
    "DateFromTicks",
    "TimeFromTicks",
    "TimestampFromTicks",
    # Exceptions
    "Warning",
    "Error",
    "InterfaceError",
    "DatabaseError",
    "DataError",
    "OperationalError",
    "IntegrityError",
    "InternalError",
    "ProgrammingError",
    "NotSupportedError",
    "ParseError",
    "CodecError",
    "TransportError",
    "QueryCancelledError",
    "HttpStatusError",
    "ProtocolError",
    "UnknownProtocolError",
    "UnsupportedOperationError",
]
