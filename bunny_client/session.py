# =============================================================================
# Bunny Client -- Session Manager
# =============================================================================
#
# Owns the broker session token for one broker identity: acquire it with
# the "open" RPC call, cache it with a TTL shorter than the broker's
# session timeout, and evict it when a publish reports it stale.
#
#   NO_TOKEN --get_session_url--> OPENING --ok--> TOKEN_VALID
#                                    |                |
#                                  error          invalidate
#                                    v                v
#                                 NO_TOKEN       INVALIDATED (== NO_TOKEN)
# =============================================================================

from __future__ import annotations

from ._logging import logger
from .cache import SharedCache, cache_key
from .constants import (
    CACHE_KEY_PREFIX,
    HTTP_OK,
    MAX_RETRIES,
    METHOD_OPEN,
    OPEN_SERVICE,
    SESSION_TIMEOUT,
    SESSION_TTL_DIVISOR,
    TOKEN_SUFFIX,
)
from .envelope import RequestEnvelope, decode_response
from .errors import BunnyHTTPError, BunnyProtocolError, BunnyRPCError
from .sequencer import IdSequencer
from .transport import Transport
from .types import BrokerIdentity, RPCResponse, SessionState, SessionToken


def _abbrev(token: str) -> str:
    return token[:6] + "..." if len(token) > 6 else "***"


class SessionManager:
    """Acquire, cache and invalidate the session token for one identity.

    Args:
        identity: Broker connection identity.
        cache: Shared store for the token and the request-id counter.
        transport: HTTP channel to the gateway.
        sequencer: Request-id source. Defaults to one over *cache*.
        session_timeout: Session lifetime requested from the broker (seconds).
        max_retries: Extra ``open`` attempts after an RPC error.
        cache_prefix: Namespace for the derived cache key.
    """

    def __init__(
        self,
        identity: BrokerIdentity,
        cache: SharedCache,
        transport: Transport,
        sequencer: IdSequencer | None = None,
        *,
        session_timeout: int = SESSION_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        cache_prefix: str = CACHE_KEY_PREFIX,
    ) -> None:
        self._identity = identity
        self._cache = cache
        self._transport = transport
        self._sequencer = sequencer or IdSequencer(cache)
        self._session_timeout = session_timeout
        self._max_retries = max_retries

        self._cache_key = cache_key(identity, cache_prefix)
        self._token_key = self._cache_key + TOKEN_SUFFIX
        self._state = SessionState.NO_TOKEN
        self._token: SessionToken | None = None
        self.sessions_opened = 0

    # -- Properties -----------------------------------------------------------

    @property
    def cache_key(self) -> str:
        return self._cache_key

    @property
    def token_key(self) -> str:
        return self._token_key

    @property
    def base_url(self) -> str:
        return self._identity.base_url

    @property
    def open_url(self) -> str:
        return self._identity.base_url + OPEN_SERVICE

    @property
    def session_ttl(self) -> float:
        return self._session_timeout - self._session_timeout / SESSION_TTL_DIVISOR

    @property
    def last_token(self) -> SessionToken | None:
        """The token this manager acquired most recently, if any."""
        return self._token

    @property
    def state(self) -> SessionState:
        if self._state == SessionState.OPENING:
            return self._state
        if self._cache.get(self._token_key) is not None:
            return SessionState.TOKEN_VALID
        if self._state == SessionState.INVALIDATED:
            return self._state
        return SessionState.NO_TOKEN

    # -- Session lifecycle ----------------------------------------------------

    def get_session_url(self) -> str:
        """Return ``base_url + token``, opening a session if none is cached."""
        token = self._cache.get(self._token_key)
        if token:
            self._state = SessionState.TOKEN_VALID
            return self.base_url + token
        return self.base_url + self.open_session()

    def open_session(self, attempt: int = 0) -> str:
        """Open a broker session and cache its token.

        RPC errors are retried until *attempt* reaches ``max_retries``,
        with a fresh transport connection each time. Transport and HTTP
        failures are not retried.

        Raises:
            BunnyConnectionError: The gateway is unreachable.
            BunnyHTTPError: The gateway answered with a non-200 status.
            BunnyRPCError: The open call kept failing.
            BunnyProtocolError: The reply carries no session token.
        """
        self._state = SessionState.OPENING
        params = [
            self._identity.user,
            self._identity.password,
            self._session_timeout,
            self._identity.vhost,
        ]
        try:
            while True:
                envelope = RequestEnvelope.build(
                    METHOD_OPEN, params, self._sequencer.next(self._cache_key)
                )
                logger.debug(
                    "Opening session on %s (attempt %d)", self.open_url, attempt + 1
                )
                reply = self._transport.post(self.open_url, envelope.encode())
                if reply.status != HTTP_OK:
                    raise BunnyHTTPError(reply.status, reply.text, operation="open")

                response = decode_response(reply.body)
                if not response.is_error:
                    return self._store(response)

                if attempt >= self._max_retries:
                    logger.error(
                        "Session open failed after %d attempts: %s %s",
                        attempt + 1,
                        response.error_code,
                        response.error_message,
                    )
                    raise BunnyRPCError(
                        response.error_code,
                        response.error_message or "",
                        operation="open",
                        attempts=attempt + 1,
                    )
                logger.warning(
                    "Session open returned RPC error %s, retrying",
                    response.error_code,
                )
                self._transport.reset()
                attempt += 1
        except Exception:
            self._state = SessionState.NO_TOKEN
            raise

    def invalidate(self) -> None:
        """Evict the cached token so the next call opens a new session."""
        self._cache.delete(self._token_key)
        self._state = SessionState.INVALIDATED
        logger.debug("Session token invalidated")

    # -- Internal -------------------------------------------------------------

    def _store(self, response: RPCResponse) -> str:
        # Expected reply: {"version":"1.1","id":1,"result":{"service":"F01F0D5A..."}}
        if not response.has_result:
            raise BunnyProtocolError("missing result")
        result = response.result
        token = result.get("service") if isinstance(result, dict) else None
        if not token or not isinstance(token, str):
            raise BunnyProtocolError("missing session token in open result")

        ttl = self.session_ttl
        self._cache.set(self._token_key, token, ttl=ttl)
        self._sequencer.reset(self._cache_key)
        self._token = SessionToken(value=token, ttl=ttl)
        self._state = SessionState.TOKEN_VALID
        self.sessions_opened += 1
        logger.info(
            "Opened broker session %s on %s:%s%s",
            _abbrev(token),
            self._identity.host,
            self._identity.port,
            self._identity.vhost,
        )
        return token
