"""PEP 249 cursor over :meth:`BaseConnection.query`."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Optional, Sequence

from psdb.exceptions import InterfaceError, ProgrammingError, UnsupportedOperationError
from psdb.rows import Row, RowSet

if TYPE_CHECKING:
    from psdb.base import BaseConnection

logger = logging.getLogger("psdb.cursor")


class Cursor:
    """Executes statements and fetches their rows.

    Statements are sent as-is; parameter binding is not offered.
    """

    def __init__(self, connection: BaseConnection) -> None:
        self.connection = connection
        self.arraysize = 1
        self._result: Optional[RowSet] = None
        self._closed = False

    # -- properties --------------------------------------------------------

    @property
    def description(self) -> Optional[list[tuple[Any, ...]]]:
        if self._result is None:
            return None
        return self._result.description

    @property
    def rowcount(self) -> int:
        """Rows returned by a SELECT, rows affected otherwise, -1 before execute."""
        if self._result is None:
            return -1
        if self._result.columns:
            return len(self._result)
        return self._result.rows_affected

    @property
    def lastrowid(self) -> Optional[int]:
        if self._result is None or not self._result.insert_id:
            return None
        return self._result.insert_id

    @property
    def closed(self) -> bool:
        return self._closed

    # -- execution ---------------------------------------------------------

    def execute(
        self,
        operation: str,
        parameters: Optional[Any] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Cursor:
        """Run *operation*.  *timeout* overrides the connection's deadline."""
        self._check_open()
        if parameters:
            raise UnsupportedOperationError("query parameters are not supported")
        self._result = None
        self._result = self.connection.query(operation, timeout=timeout)
        return self

    def executemany(self, operation: str, seq_of_parameters: Iterable[Any]) -> Cursor:
        for parameters in seq_of_parameters:
            self.execute(operation, parameters)
        return self

    # -- fetching ----------------------------------------------------------

    def fetchone(self) -> Optional[Row]:
        return next(self._rows(), None)

    def fetchmany(self, size: Optional[int] = None) -> list[Row]:
        if size is None:
            size = self.arraysize
        rows = self._rows()
        out: list[Row] = []
        for _ in range(size):
            row = next(rows, None)
            if row is None:
                break
            out.append(row)
        return out

    def fetchall(self) -> list[Row]:
        return list(self._rows())

    def __iter__(self) -> Iterator[Row]:
        return self._rows()

    # -- DB-API no-ops -----------------------------------------------------

    def setinputsizes(self, sizes: Sequence[Any]) -> None:
        pass

    def setoutputsize(self, size: int, column: Optional[int] = None) -> None:
        pass

    def close(self) -> None:
        self._closed = True
        self._result = None

    # -- context manager ---------------------------------------------------

    def __enter__(self) -> Cursor:
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.close()

    # -- private -----------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise InterfaceError("cursor has already been closed")
        if self.connection.closed:
            raise InterfaceError("connection has already been closed")

    def _rows(self) -> RowSet:
        self._check_open()
        if self._result is None:
            raise ProgrammingError("no statement has been executed")
        if not self._result.columns:
            raise ProgrammingError("previous statement produced no result set")
        return self._result
