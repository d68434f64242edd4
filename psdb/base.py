"""Abstract connection that every gateway driver inherits from.

``BaseConnection`` carries the DB-API surface that does not depend on the
wire protocol:

    query()  → check open → take the connection lock → ``_execute``
    close()  → mark closed → ``_close``

Subclasses only implement two hooks:
    ``_execute``  — run one statement and return a :class:`RowSet`
    ``_close``    — drop whatever per-connection state they hold

Capabilities the gateway does not offer (prepared statements, transactions)
fail explicitly with :class:`UnsupportedOperationError`.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from psdb.exceptions import InterfaceError, UnsupportedOperationError
from psdb.rows import RowSet

if TYPE_CHECKING:
    from psdb.cursor import Cursor

logger = logging.getLogger("psdb.base")


class BaseConnection(ABC):
    """Abstract base for gateway connections.

    Queries on one connection run one at a time; a lock serializes callers
    sharing the connection across threads.
    """

    # Subclasses should set this to a human-friendly label for logging.
    _label: str = "unknown"

    def __init__(self) -> None:
        self._closed = False
        self._lock = threading.Lock()

    # -- abstract hooks (subclass contract) --------------------------------

    @abstractmethod
    def _execute(self, sql: str, timeout: Optional[float]) -> RowSet:
        """Run *sql* and return its result.  Called with the lock held."""

    @abstractmethod
    def _close(self) -> None:
        """Release per-connection state.  Called once."""

    # -- properties --------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    # -- public API --------------------------------------------------------

    def query(self, sql: str, *, timeout: Optional[float] = None) -> RowSet:
        """Execute *sql* and return a forward-only :class:`RowSet`."""
        with self._lock:
            self._check_open()
            return self._execute(sql, timeout)

    def cursor(self) -> Cursor:
        """Return a new DB-API cursor bound to this connection."""
        from psdb.cursor import Cursor

        self._check_open()
        return Cursor(self)

    def close(self) -> None:
        """Close the connection.  Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._close()
        logger.info("%s connection closed", self._label)

    def commit(self) -> None:
        """No-op: every statement is committed by the gateway as it runs."""
        self._check_open()

    def rollback(self) -> None:
        raise UnsupportedOperationError("Rollback method not implemented")

    def begin(self) -> None:
        raise UnsupportedOperationError("Begin method not implemented")

    def prepare(self, sql: str) -> None:
        raise UnsupportedOperationError("Prepare method not implemented")

    # -- context manager ---------------------------------------------------

    def __enter__(self) -> BaseConnection:
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.close()

    # -- private -----------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise InterfaceError(f"{self._label} connection has already been closed")
