# =============================================================================
# Bunny Client -- Type Definitions
# =============================================================================

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

import orjson

from .constants import (
    BASIC_PUBLISH,
    CACHE_KEY_PREFIX,
    DEFAULT_HOST,
    DEFAULT_PASSWORD,
    DEFAULT_PORT,
    DEFAULT_TICKET,
    DEFAULT_USER,
    DEFAULT_VHOST,
    MAX_RETRIES,
    REQUEST_TIMEOUT,
    SESSION_TIMEOUT,
)
from .errors import BunnyConfigError, BunnyValidationError


class SessionState(str, Enum):
    """Session lifecycle state for one cache key.

    Typical flow: NO_TOKEN -> OPENING -> TOKEN_VALID -> INVALIDATED -> OPENING.
    INVALIDATED behaves like NO_TOKEN.
    """

    NO_TOKEN = "no-token"
    OPENING = "opening"
    TOKEN_VALID = "token-valid"
    INVALIDATED = "invalidated"


@dataclass(frozen=True, slots=True)
class BrokerIdentity:
    """Connection identity of a broker session.

    Two clients with equal identities share a session token and a
    request-id sequence.
    """

    host: str
    port: int = DEFAULT_PORT
    vhost: str = DEFAULT_VHOST
    user: str = DEFAULT_USER
    password: str = field(default=DEFAULT_PASSWORD, repr=False)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}/rpc/"


@dataclass
class ClientConfig:
    """Configuration for :class:`~bunny_client.client.PublishClient`.

    Attributes:
        host: Gateway host name.
        port: Gateway HTTP port (default 55672).
        user: Broker user sent with the ``open`` call.
        password: Broker password sent with the ``open`` call.
        vhost: Broker virtual host.
        session_timeout: Session lifetime requested from the broker (seconds).
        request_timeout: Transport timeout per HTTP call (seconds).
        max_retries: Retry budget for session open and stale-session publish.
        cache_prefix: Namespace prepended to shared cache keys.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    user: str = DEFAULT_USER
    password: str = field(default=DEFAULT_PASSWORD, repr=False)
    vhost: str = DEFAULT_VHOST
    session_timeout: int = SESSION_TIMEOUT
    request_timeout: float = REQUEST_TIMEOUT
    max_retries: int = MAX_RETRIES
    cache_prefix: str = CACHE_KEY_PREFIX

    def __post_init__(self) -> None:
        if not self.host:
            raise BunnyConfigError("host is required")
        if not 0 < int(self.port) < 65536:
            raise BunnyConfigError(f"port out of range: {self.port}")
        if self.session_timeout <= 0:
            raise BunnyConfigError("session_timeout must be positive")
        if self.request_timeout <= 0:
            raise BunnyConfigError("request_timeout must be positive")
        if self.max_retries < 0:
            raise BunnyConfigError("max_retries must be >= 0")

    @property
    def identity(self) -> BrokerIdentity:
        return BrokerIdentity(
            host=self.host,
            port=int(self.port),
            vhost=self.vhost,
            user=self.user,
            password=self.password,
        )

    @classmethod
    def from_env(cls, prefix: str = "BUNNY_", **overrides: Any) -> ClientConfig:
        """Build a config from ``<prefix>HOST``, ``<prefix>PORT`` etc.

        Explicit keyword *overrides* win over the environment.
        """
        casts = {
            "port": int,
            "session_timeout": int,
            "request_timeout": float,
            "max_retries": int,
        }
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            try:
                values[f.name] = casts.get(f.name, str)(raw)
            except ValueError as exc:
                raise BunnyConfigError(
                    f"invalid {prefix}{f.name.upper()}: {raw!r}"
                ) from exc
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True, slots=True)
class SessionToken:
    """An opaque broker session token and its cache lifetime."""

    value: str
    ttl: float
    acquired_at: float = field(default_factory=time.time)

    @property
    def expires_at(self) -> float:
        return self.acquired_at + self.ttl


@dataclass(frozen=True, slots=True)
class MessageProperties:
    """AMQP basic properties in wire order.

    The field order is the position order the gateway expects and must
    not be rearranged.
    """

    content_type: str | None = None
    content_encoding: str | None = None
    headers: dict[str, Any] | None = None
    delivery_mode: int | None = None
    priority: int | None = None
    correlation_id: str | None = None
    reply_to: str | None = None
    expiration: str | None = None
    message_id: str | None = None
    timestamp: int | None = None
    type: str | None = None
    user_id: str | None = None
    app_id: str | None = None
    cluster_id: str | None = None

    def to_wire(self) -> list[Any]:
        return [getattr(self, f.name) for f in fields(self)]


@dataclass(frozen=True, slots=True)
class PublishRequest:
    """A single ``basic.publish`` request.

    Attributes:
        exchange: Target exchange, may be empty for the default exchange.
        routing_key: Routing key, may be empty when an exchange is given.
        body: Message body. Already encoded by the caller and not JSON.
        properties: Message properties (see :class:`MessageProperties`).
        ticket: Access ticket, always 0 on modern brokers.
        mandatory: Set the mandatory bit.
        immediate: Set the immediate bit.
    """

    exchange: str
    routing_key: str
    body: str
    properties: MessageProperties = field(default_factory=MessageProperties)
    ticket: int = DEFAULT_TICKET
    mandatory: bool = False
    immediate: bool = False

    def validate(self) -> None:
        """Raise :class:`BunnyValidationError` if the request can't be sent."""
        if not self.body:
            raise BunnyValidationError("message required")
        try:
            self.body.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise BunnyValidationError("message is not valid UTF-8") from exc
        if _parses_as_json(self.body):
            raise BunnyValidationError("body must not be JSON-encoded")
        if not self.exchange and not self.routing_key:
            raise BunnyValidationError("need exchange or routing key")

    def to_params(self) -> list[Any]:
        return [
            BASIC_PUBLISH,
            [
                self.ticket,
                self.exchange,
                self.routing_key,
                self.mandatory,
                self.immediate,
            ],
            self.body,
            self.properties.to_wire(),
        ]


def _parses_as_json(body: str) -> bool:
    try:
        orjson.loads(body)
    except orjson.JSONDecodeError:
        return False
    return True


@dataclass(frozen=True, slots=True)
class RPCResponse:
    """A decoded gateway reply.

    ``has_result`` records whether the ``result`` member was present,
    since an empty or null result still counts as success.
    """

    id: Any = None
    result: Any = None
    has_result: bool = False
    error_code: int | None = None
    error_message: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error_code is not None or self.error_message is not None


@dataclass
class PublishStats:
    """Counters for a single client instance."""

    published: int = 0
    publish_attempts: int = 0
    stale_session_retries: int = 0
    errors: int = 0
    last_error: str | None = None
