"""Shared fixtures: a scripted gateway transport and a fresh cache."""

import json

import pytest

from bunny_client.cache import InMemorySharedCache
from bunny_client.errors import BunnyConnectionError
from bunny_client.transport import TransportResponse


def reply(payload: dict, status: int = 200) -> TransportResponse:
    return TransportResponse(status=status, body=json.dumps(payload).encode())


def opened(token: str, id: int = 1) -> TransportResponse:
    return reply({"version": "1.1", "id": id, "result": {"service": token}})


def ok(result=None, id: int = 2) -> TransportResponse:
    return reply({"version": "1.1", "id": id, "result": [] if result is None else result})


def rpc_error(code: int, message: str = "error", id: int = 2) -> TransportResponse:
    return reply({"version": "1.1", "id": id, "error": {"code": code, "message": message}})


def http_status(status: int, body: str = "") -> TransportResponse:
    return TransportResponse(status=status, body=body.encode())


class FakeGateway:
    """Transport double that answers per RPC method.

    ``open_replies`` / ``cast_replies`` are consumed in order. When a
    queue is empty, ``open`` returns a new token (``tok-1``, ``tok-2``...)
    and ``cast`` returns an empty result. Exceptions in a queue are raised.
    """

    def __init__(self, open_replies=None, cast_replies=None):
        self.open_replies = list(open_replies or [])
        self.cast_replies = list(cast_replies or [])
        self.calls: list[tuple[str, dict]] = []
        self.resets = 0
        self.closed = False
        self._tokens = 0

    def post(self, url: str, body: bytes) -> TransportResponse:
        payload = json.loads(body)
        self.calls.append((url, payload))
        if payload["method"] == "open":
            if self.open_replies:
                return self._answer(self.open_replies.pop(0))
            self._tokens += 1
            return opened(f"tok-{self._tokens}", id=payload["id"])
        if self.cast_replies:
            return self._answer(self.cast_replies.pop(0))
        return ok(id=payload["id"])

    def reset(self) -> None:
        self.resets += 1

    def close(self) -> None:
        self.closed = True

    @staticmethod
    def _answer(item):
        if isinstance(item, Exception):
            raise item
        return item

    def calls_for(self, method: str) -> list[tuple[str, dict]]:
        return [c for c in self.calls if c[1]["method"] == method]

    @property
    def opens(self) -> list[tuple[str, dict]]:
        return self.calls_for("open")

    @property
    def casts(self) -> list[tuple[str, dict]]:
        return self.calls_for("cast")


class DeadGateway(FakeGateway):
    """Every call fails as if the host were unreachable."""

    def post(self, url: str, body: bytes) -> TransportResponse:
        self.calls.append((url, json.loads(body)))
        raise BunnyConnectionError("Could not connect to the gateway")


@pytest.fixture()
def cache():
    return InMemorySharedCache()


@pytest.fixture()
def gateway():
    return FakeGateway()
