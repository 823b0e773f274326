"""Publishing client for the RabbitMQ JSON-RPC channel gateway.

Usage::

    from bunny_client import InMemorySharedCache, PublishClient

    with PublishClient(host="localhost", cache=InMemorySharedCache()) as client:
        client.publish("", "test", "Hello World!")

Sharing a session across processes::

    from bunny_client import PublishClient, RedisSharedCache

    cache = RedisSharedCache.from_url("redis://localhost:6379/0")
    client = PublishClient(host="rabbit1", cache=cache)

Optional extras::

    pip install bunny-client[redis]   # RedisSharedCache
"""

from ._version import __version__
from .cache import InMemorySharedCache, RedisSharedCache, SharedCache, cache_key
from .client import PublishClient
from .envelope import RequestEnvelope, decode_response
from .errors import (
    BunnyConfigError,
    BunnyConnectionError,
    BunnyError,
    BunnyHTTPError,
    BunnyProtocolError,
    BunnyRPCError,
    BunnyTimeoutError,
    BunnyValidationError,
)
from .sequencer import IdSequencer
from .session import SessionManager
from .transport import HTTPXTransport, Transport, TransportResponse
from .types import (
    BrokerIdentity,
    ClientConfig,
    MessageProperties,
    PublishRequest,
    PublishStats,
    RPCResponse,
    SessionState,
    SessionToken,
)

__all__ = [
    "__version__",
    "PublishClient",
    "SessionManager",
    "IdSequencer",
    "RequestEnvelope",
    "decode_response",
    "SharedCache",
    "InMemorySharedCache",
    "RedisSharedCache",
    "cache_key",
    "Transport",
    "TransportResponse",
    "HTTPXTransport",
    "BrokerIdentity",
    "ClientConfig",
    "MessageProperties",
    "PublishRequest",
    "PublishStats",
    "RPCResponse",
    "SessionState",
    "SessionToken",
    "BunnyError",
    "BunnyConfigError",
    "BunnyValidationError",
    "BunnyConnectionError",
    "BunnyTimeoutError",
    "BunnyHTTPError",
    "BunnyRPCError",
    "BunnyProtocolError",
]
