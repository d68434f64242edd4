"""Connection descriptor parsing.

A descriptor is a flat query string::

    username=...&password=...&host=aws.connect.psdb.cloud&backend=aws.connect.psdb.cloud

Missing keys resolve to the empty string.  An empty ``host`` or ``backend``
is not rejected here; it fails later when the request is sent.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional
from urllib.parse import parse_qsl

from psdb.exceptions import ParseError

logger = logging.getLogger("psdb.credentials")

DSN_ENV_VAR = "PSDB_DSN"

_KEYS = ("username", "password", "host", "backend")

# A "%" that does not start a two-digit hex escape.
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Credentials and addressing for one gateway connection."""

    username: str = ""
    password: str = field(default="", repr=False)
    host: str = ""
    backend: str = ""


def parse_dsn(descriptor: str) -> ConnectionConfig:
    """Parse a ``key=value&...`` descriptor into a :class:`ConnectionConfig`.

    Raises
    ------
    ParseError
        If the descriptor has a malformed percent escape, a field without
        ``=``, or does not decode as UTF-8.
    """
    if _BAD_ESCAPE.search(descriptor):
        raise ParseError("error parsing dsn: invalid percent-encoding")

    try:
        pairs = parse_qsl(
            descriptor,
            keep_blank_values=True,
            strict_parsing=True,
            errors="strict",
        )
    except (ValueError, UnicodeDecodeError) as exc:
        # The message can echo the offending field, which may be the password.
        raise ParseError("error parsing dsn: malformed query string") from exc

    values: dict[str, str] = {}
    for key, value in pairs:
        # First occurrence wins.
        values.setdefault(key, value)

    config = ConnectionConfig(**{key: values.get(key, "") for key in _KEYS})
    logger.debug("Parsed dsn for user=%s host=%s", config.username, config.host)
    return config


def dsn_from_env(var: str = DSN_ENV_VAR, environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the descriptor stored in environment variable *var*."""
    env = os.environ if environ is None else environ
    try:
        return env[var]
    except KeyError:
        raise ParseError(f"no connection descriptor given and ${var} is not set") from None
