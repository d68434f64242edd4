"""Shared fixtures: an in-process fake of the HTTP gateway."""

from __future__ import annotations

import json
from typing import Any, Union

import httpx
import pytest

import psdb
from psdb.gateway import EXECUTE_PATH, SESSION_PATH

HOST = "aws.connect.psdb.cloud"
DSN = f"username=alice&password=s3cret&host={HOST}&backend={HOST}"

SESSION_BODY = b'{"session": {"signature": "sig-1", "vitessSession": {"autocommit": true}}}'
SESSION_RAW = b'{"signature": "sig-1", "vitessSession": {"autocommit": true}}'

Reply = Union[httpx.Response, bytes, dict[str, Any], Exception]


class FakeGateway:
    """Answers CreateSession and Execute from queued replies and records requests."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.replies: dict[str, list[Reply]] = {SESSION_PATH: [], EXECUTE_PATH: []}

    def on_session(self, reply: Reply) -> FakeGateway:
        self.replies[SESSION_PATH].append(reply)
        return self

    def on_execute(self, reply: Reply) -> FakeGateway:
        self.replies[EXECUTE_PATH].append(reply)
        return self

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [req for req in self.requests if req.url.path == path]

    def execute_bodies(self) -> list[bytes]:
        return [req.content for req in self.requests_to(EXECUTE_PATH)]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.replies[request.url.path]
        assert queue, f"unexpected request to {request.url.path}"
        reply = queue.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        if isinstance(reply, dict):
            reply = json.dumps(reply).encode("utf-8")
        return httpx.Response(200, content=reply)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def transport(gateway: FakeGateway) -> httpx.MockTransport:
    return httpx.MockTransport(gateway)


@pytest.fixture
def conn(transport: httpx.MockTransport):
    connection = psdb.connect(DSN, transport=transport)
    yield connection
    connection.close()


def result(fields: list[dict[str, Any]], rows: list[dict[str, Any]], **extra: Any) -> dict[str, Any]:
    """Build an Execute reply carrying a result set."""
    return {"result": {"fields": fields, "rows": rows}, **extra}
