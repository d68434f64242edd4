#!/usr/bin/env python3
"""Example usage of the psdb driver.

Connections are lazy: no request is sent until the first query, which first
creates a gateway session and then runs the statement.  The descriptor is read
from ``$PSDB_DSN`` when not passed explicitly.
"""

import logging
import sys

import psdb

logging.basicConfig(level=logging.DEBUG)

QUERY = "SELECT * FROM user"

# ── DB-API cursor ───────────────────────────────────────────────────────
try:
    conn = psdb.connect(timeout=5)
except psdb.ParseError as exc:
    sys.exit(f"cannot open connection: {exc}")

try:
    cur = conn.cursor()
    cur.execute(QUERY)
    print("columns:", [col[0] for col in cur.description or []])
    for id_, name in cur:
        print(id_, name)
except psdb.Error as exc:
    # Gateway errors, HTTP failures and decode problems all land here.
    print("query failed:", exc, file=sys.stderr)
finally:
    conn.close()

# ── RowSet directly, context-manager style ──────────────────────────────
with psdb.connect() as conn:
    rows = conn.query("SELECT COUNT(*) AS n FROM user")
    print(rows.column_names, next(rows))
