# =============================================================================
# Bunny Client -- Publish Client
# =============================================================================
#
# Primary public API. Validates publish input, drives the basic.publish
# cast through the session manager and retries once per stale session,
# up to max_retries.
# =============================================================================

from __future__ import annotations

from dataclasses import asdict, replace
from typing import Any

from ._logging import logger
from .cache import SharedCache
from .constants import (
    DEFAULT_MIMETYPE,
    DELIVERY_MODE_TRANSIENT,
    HTTP_OK,
    METHOD_CAST,
    STALE_SESSION_CODES,
)
from .envelope import RequestEnvelope, decode_response
from .errors import (
    BunnyConfigError,
    BunnyError,
    BunnyHTTPError,
    BunnyProtocolError,
    BunnyRPCError,
    BunnyValidationError,
)
from .sequencer import IdSequencer
from .session import SessionManager
from .transport import HTTPXTransport, Transport
from .types import ClientConfig, MessageProperties, PublishRequest, PublishStats


class PublishClient:
    """Publish messages through the RabbitMQ JSON-RPC channel gateway.

    Args:
        config: Connection and retry settings. Keyword arguments build a
            :class:`ClientConfig` when *config* is omitted.
        cache: Shared store for the session token and request ids.
            Required; clients that share a store and an identity also
            share the session.
        transport: HTTP channel. Defaults to :class:`HTTPXTransport` with
            the configured request timeout.

    Example::

        cache = InMemorySharedCache()
        with PublishClient(ClientConfig(host="rabbit1"), cache=cache) as client:
            client.publish("", "test", "Hello World!")

    Raises:
        BunnyConfigError: If *cache* is missing or the config is invalid.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        cache: SharedCache | None = None,
        transport: Transport | None = None,
        **kwargs: Any,
    ) -> None:
        if cache is None:
            raise BunnyConfigError(
                "A shared cache is required (InMemorySharedCache or RedisSharedCache)"
            )
        if config is None:
            config = ClientConfig(**kwargs)
        elif kwargs:
            config = replace(config, **kwargs)

        self._config = config
        self._identity = config.identity
        self._cache = cache
        self._transport = transport or HTTPXTransport(timeout=config.request_timeout)
        self._sequencer = IdSequencer(cache)
        self._session = SessionManager(
            self._identity,
            cache,
            self._transport,
            self._sequencer,
            session_timeout=config.session_timeout,
            max_retries=config.max_retries,
            cache_prefix=config.cache_prefix,
        )
        self._stats = PublishStats()

    # -- Lifecycle ------------------------------------------------------------

    def close(self) -> None:
        """Release the transport's pooled connections."""
        self._transport.close()

    def __enter__(self) -> PublishClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- Publish --------------------------------------------------------------

    def publish(
        self,
        exchange: str,
        routing_key: str,
        message: str | bytes,
        mimetype: str = DEFAULT_MIMETYPE,
        delivery_mode: int = DELIVERY_MODE_TRANSIENT,
        mandatory: bool = False,
        immediate: bool = False,
        retry_count: int = 0,
        properties: MessageProperties | None = None,
    ) -> bool:
        """Publish *message* with ``basic.publish``.

        Args:
            exchange: Exchange to publish to, may be empty.
            routing_key: Routing key, may be empty when *exchange* is set.
            message: Message body, already encoded and not JSON.
            mimetype: Content type, property slot 0.
            delivery_mode: 1 non-persistent, 2 persistent. Property slot 3.
            mandatory: Set the mandatory bit.
            immediate: Set the immediate bit.
            retry_count: Stale-session retries already spent.
            properties: Further message properties. *mimetype* and
                *delivery_mode* still fill their slots.

        Returns:
            True once the gateway acknowledges the cast.

        Raises:
            BunnyValidationError: Invalid input. Raised before any I/O.
            BunnyConnectionError: The gateway is unreachable.
            BunnyHTTPError: Non-200 reply. Not retried.
            BunnyRPCError: Non-stale RPC error, or stale-session retries
                exhausted.
            BunnyProtocolError: Reply without a ``result`` member.
        """
        if isinstance(message, bytes):
            try:
                message = message.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise BunnyValidationError("message is not valid UTF-8") from exc
        request = PublishRequest(
            exchange=exchange,
            routing_key=routing_key,
            body=message,
            properties=replace(
                properties or MessageProperties(),
                content_type=mimetype,
                delivery_mode=delivery_mode,
            ),
            mandatory=mandatory,
            immediate=immediate,
        )
        request.validate()

        try:
            self._publish(request, retry_count)
        except BunnyError as exc:
            self._stats.errors += 1
            self._stats.last_error = str(exc)
            raise
        self._stats.published += 1
        return True

    def _publish(self, request: PublishRequest, retry_count: int) -> None:
        params = request.to_params()
        max_retries = self._config.max_retries
        while True:
            url = self._session.get_session_url()
            envelope = RequestEnvelope.build(
                METHOD_CAST, params, self._sequencer.next(self._session.cache_key)
            )
            self._stats.publish_attempts += 1
            logger.debug(
                "basic.publish id=%d exchange=%r routing_key=%r",
                envelope.id,
                request.exchange,
                request.routing_key,
            )
            reply = self._transport.post(url, envelope.encode())
            if reply.status != HTTP_OK:
                raise BunnyHTTPError(reply.status, reply.text, operation="publish")

            response = decode_response(reply.body)
            if response.is_error:
                self._session.invalidate()
                if (
                    response.error_code in STALE_SESSION_CODES
                    and retry_count < max_retries
                ):
                    logger.warning(
                        "Stale session (RPC %s), reopening and retrying (%d/%d)",
                        response.error_code,
                        retry_count + 1,
                        max_retries,
                    )
                    self._transport.reset()
                    self._stats.stale_session_retries += 1
                    retry_count += 1
                    continue
                logger.error(
                    "Publish failed with RPC error %s: %s",
                    response.error_code,
                    response.error_message,
                )
                raise BunnyRPCError(
                    response.error_code,
                    response.error_message or "",
                    operation="publish",
                    attempts=retry_count + 1,
                )

            # Expected reply: {"version":"1.1","id":2,"result":[]}
            if not response.has_result:
                raise BunnyProtocolError("missing result")
            return

    # -- Properties -----------------------------------------------------------

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def session(self) -> SessionManager:
        return self._session

    @property
    def sequencer(self) -> IdSequencer:
        return self._sequencer

    @property
    def session_url(self) -> str:
        return self._session.get_session_url()

    @property
    def stats(self) -> PublishStats:
        return self._stats

    def get_stats(self) -> dict[str, Any]:
        stats = asdict(self._stats)
        stats["sessions_opened"] = self._session.sessions_opened
        stats["session_state"] = self._session.state.value
        return stats
