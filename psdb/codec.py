"""JSON codec for the gateway's Execute and CreateSession calls.

Request bodies are assembled byte-wise so the session blob returned by the
gateway is echoed back exactly as received.  Response envelopes are parsed
member by member for the same reason: the raw text of ``session`` is kept
alongside its decoded value.

Envelope shapes::

    {"error": {"message": "..."}}
    {"session": {...}, "result": {"fields": [...], "rows": [...]}}
    {"session": {...}}
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from json.decoder import scanstring
from typing import Any, Optional, Union

from psdb.exceptions import CodecError, ProtocolError, UnknownProtocolError

logger = logging.getLogger("psdb.codec")

# Length entry marking a SQL NULL column value.
NULL_LENGTH = -1

_MAX_UINT64 = 2**64 - 1

_WS = re.compile(r"[ \t\n\r]*")
_INTEGER = re.compile(r"-?[0-9]+")

_decoder = json.JSONDecoder()


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """One result column as described by the gateway."""

    name: str
    type: str
    table: str = ""
    column_length: int = 0
    charset: int = 0
    flags: int = 0
    decimals: int = 0


@dataclass(frozen=True, slots=True)
class RowRecord:
    """One result row: packed column values plus the byte length of each.

    A ``None`` length marks a SQL NULL, which occupies no bytes in *values*.
    """

    lengths: tuple[Optional[int], ...]
    values: bytes

    def split(self) -> list[Optional[bytes]]:
        """Return the raw bytes of each column, ``None`` for NULL."""
        out: list[Optional[bytes]] = []
        offset = 0
        for length in self.lengths:
            if length is None:
                out.append(None)
                continue
            out.append(self.values[offset : offset + length])
            offset += length
        return out


@dataclass(frozen=True, slots=True)
class SessionUpdate:
    """Envelope carrying only a new session."""

    session: bytes


@dataclass(frozen=True, slots=True)
class ErrorResult:
    """Envelope reporting a query error.  *message* is ``None`` when omitted."""

    message: Optional[str]
    session: Optional[bytes] = None

    def exception(self) -> ProtocolError:
        if self.message is None:
            return UnknownProtocolError()
        return ProtocolError(self.message)


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Envelope carrying a decoded result set."""

    columns: tuple[ColumnDescriptor, ...]
    rows: tuple[RowRecord, ...]
    session: Optional[bytes] = None
    rows_affected: int = 0
    insert_id: int = 0


ResultEnvelope = Union[SessionUpdate, ErrorResult, QueryResult]


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode_execute_body(query: str, session: Optional[bytes]) -> bytes:
    """Return ``{"query":...,"session":...}`` with *session* spliced in verbatim."""
    encoded_query = json.dumps(query).encode("utf-8")
    return b'{"query":' + encoded_query + b',"session":' + (session or b"null") + b"}"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def decode_session(body: bytes) -> Optional[bytes]:
    """Return the raw ``session`` object of a CreateSession response, if any."""
    members = _parse_members(body)
    return _raw_object(members, "session")


def decode_envelope(body: bytes) -> ResultEnvelope:
    """Decode an Execute response body.

    Raises
    ------
    CodecError
        On malformed JSON, a missing ``result`` (with no error and no
        session), missing ``fields``, or a malformed row.
    """
    members = _parse_members(body)
    session = _raw_object(members, "session")

    error = _object(members, "error")
    if error is not None:
        message = error.get("message")
        return ErrorResult(
            message=None if message is None else str(message),
            session=session,
        )

    result = _object(members, "result")
    if result is None:
        if session is not None:
            return SessionUpdate(session)
        raise CodecError("no result")

    if "fields" not in result:
        raise CodecError("missing fields")
    columns = tuple(_decode_field(entry) for entry in _array(result, "fields"))
    # The gateway omits empty arrays, so a missing "rows" is an empty result.
    rows = tuple(_decode_row(entry) for entry in _array(result, "rows"))
    if columns:
        for index, row in enumerate(rows):
            if len(row.lengths) != len(columns):
                raise CodecError(
                    f"row {index} has {len(row.lengths)} values for {len(columns)} columns"
                )

    logger.debug("Decoded result with %d columns and %d rows", len(columns), len(rows))
    return QueryResult(
        columns=columns,
        rows=rows,
        session=session,
        rows_affected=_uint(result.get("rowsAffected", 0), "rowsAffected"),
        insert_id=_uint(result.get("insertId", 0), "insertId"),
    )


# -- helpers ----------------------------------------------------------------


def _parse_members(body: bytes) -> dict[str, tuple[Any, str]]:
    """Parse a top-level JSON object into ``{key: (value, raw_text)}``."""
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CodecError(f"response is not valid UTF-8: {exc}") from exc

    try:
        return _scan_object(text)
    except ValueError as exc:  # JSONDecodeError included
        raise CodecError(f"malformed JSON response: {exc}") from exc


def _scan_object(text: str) -> dict[str, tuple[Any, str]]:
    idx = _WS.match(text, 0).end()
    if text[idx : idx + 1] != "{":
        raise ValueError("expected a JSON object")
    idx = _WS.match(text, idx + 1).end()

    members: dict[str, tuple[Any, str]] = {}
    if text[idx : idx + 1] == "}":
        idx = _WS.match(text, idx + 1).end()
    else:
        while True:
            if text[idx : idx + 1] != '"':
                raise ValueError(f"expected a member name at offset {idx}")
            key, idx = scanstring(text, idx + 1)
            idx = _WS.match(text, idx).end()
            if text[idx : idx + 1] != ":":
                raise ValueError(f"expected ':' at offset {idx}")
            start = _WS.match(text, idx + 1).end()
            value, idx = _decoder.raw_decode(text, start)
            members[key] = (value, text[start:idx])
            idx = _WS.match(text, idx).end()
            sep = text[idx : idx + 1]
            idx = _WS.match(text, idx + 1).end()
            if sep == "}":
                break
            if sep != ",":
                raise ValueError(f"expected ',' or '}}' at offset {idx}")

    if idx != len(text):
        raise ValueError(f"trailing data at offset {idx}")
    return members


def _object(members: dict[str, tuple[Any, str]], key: str) -> Optional[dict[str, Any]]:
    value = members.get(key, (None, ""))[0]
    return value if isinstance(value, dict) else None


def _raw_object(members: dict[str, tuple[Any, str]], key: str) -> Optional[bytes]:
    value, raw = members.get(key, (None, ""))
    return raw.encode("utf-8") if isinstance(value, dict) else None


def _array(obj: dict[str, Any], key: str) -> list[Any]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise CodecError(f"{key} is not an array")
    return value


def _uint(value: Any, what: str) -> int:
    """Parse an unsigned integer sent as a JSON number or decimal string."""
    if isinstance(value, bool):
        raise CodecError(f"invalid {what}: {value!r}")
    if isinstance(value, str):
        if not _INTEGER.fullmatch(value):
            raise CodecError(f"invalid {what}: {value!r}")
        value = int(value)
    if not isinstance(value, int) or not 0 <= value <= _MAX_UINT64:
        raise CodecError(f"invalid {what}: {value!r}")
    return value


def _decode_field(entry: Any) -> ColumnDescriptor:
    if not isinstance(entry, dict):
        raise CodecError(f"field is not an object: {entry!r}")
    # Zero values are omitted on the wire.
    return ColumnDescriptor(
        name=str(entry.get("name", "")),
        type=str(entry.get("type", "NULL_TYPE")),
        table=str(entry.get("table", "")),
        column_length=_uint(entry.get("columnLength", 0), "columnLength"),
        charset=_uint(entry.get("charset", 0), "charset"),
        flags=_uint(entry.get("flags", 0), "flags"),
        decimals=_uint(entry.get("decimals", 0), "decimals"),
    )


def _decode_length(value: Any) -> Optional[int]:
    if value == str(NULL_LENGTH) or (type(value) is int and value == NULL_LENGTH):
        return None
    return _uint(value, "row length")


def _decode_row(entry: Any) -> RowRecord:
    if not isinstance(entry, dict):
        raise CodecError(f"row is not an object: {entry!r}")

    lengths = tuple(_decode_length(value) for value in _array(entry, "lengths"))

    encoded = entry.get("values", "")
    if not isinstance(encoded, str):
        raise CodecError("row values are not a base64 string")
    try:
        values = base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise CodecError(f"row values are not valid base64: {exc}") from exc

    if sum(length for length in lengths if length is not None) > len(values):
        raise CodecError("row lengths exceed the packed values")
    return RowRecord(lengths=lengths, values=values)
