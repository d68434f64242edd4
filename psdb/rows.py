"""Forward-only cursor over a decoded result set."""

from __future__ import annotations

from typing import Any, Iterator, Optional, Sequence

from psdb.codec import ColumnDescriptor, RowRecord
from psdb.exceptions import DataError
from psdb.types import NOT_NULL_FLAG, convert

Row = tuple[Any, ...]


class RowSet:
    """Single-pass iterator of typed rows with column metadata.

    Rows are converted lazily as they are consumed.  Once exhausted the set
    cannot be restarted.
    """

    def __init__(
        self,
        columns: Sequence[ColumnDescriptor],
        rows: Sequence[RowRecord],
        *,
        rows_affected: int = 0,
        insert_id: int = 0,
    ) -> None:
        self.columns: tuple[ColumnDescriptor, ...] = tuple(columns)
        self.rows_affected = rows_affected
        self.insert_id = insert_id
        self._records = iter(rows)
        self._count = len(rows)
        self._consumed = 0

    def __len__(self) -> int:
        """Number of rows the gateway returned, consumed or not."""
        return self._count

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        record = next(self._records)
        self._consumed += 1
        return self._convert(record)

    # -- properties --------------------------------------------------------

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    @property
    def remaining(self) -> int:
        return self._count - self._consumed

    @property
    def description(self) -> Optional[list[tuple[Any, ...]]]:
        """PEP 249 ``cursor.description`` for this result, ``None`` without columns."""
        if not self.columns:
            return None
        return [
            (
                column.name,
                column.type,
                None,
                column.column_length,
                None,
                column.decimals,
                not column.flags & NOT_NULL_FLAG,
            )
            for column in self.columns
        ]

    # -- private -----------------------------------------------------------

    def _convert(self, record: RowRecord) -> Row:
        raw_values = record.split()
        if len(raw_values) != len(self.columns):
            raise DataError(
                f"row has {len(raw_values)} values for {len(self.columns)} columns"
            )
        return tuple(convert(column, raw) for column, raw in zip(self.columns, raw_values))
