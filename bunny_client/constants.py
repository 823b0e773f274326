# =============================================================================
# Bunny Client -- Protocol Constants
# =============================================================================
#
# Values match the RabbitMQ JSON-RPC channel gateway wire format.
# =============================================================================

JSONRPC_VERSION = 1.1
CLIENT_VERSION = "0.2.0"
USER_AGENT = f"bunny-client/{CLIENT_VERSION}"
CONTENT_TYPE = "application/json"

# -- RPC methods ---------------------------------------------------------------

METHOD_OPEN = "open"
METHOD_CALL = "call"
METHOD_CAST = "cast"
METHOD_POLL = "poll"
VALID_METHODS = frozenset({METHOD_OPEN, METHOD_CALL, METHOD_CAST, METHOD_POLL})

# Service name the open call is POSTed to: <base_url>rabbitmq
OPEN_SERVICE = "rabbitmq"
BASIC_PUBLISH = "basic.publish"

# -- Broker defaults -----------------------------------------------------------

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 55672
DEFAULT_USER = "guest"
DEFAULT_PASSWORD = "guest"
DEFAULT_VHOST = "/"

# -- Timing (seconds) ----------------------------------------------------------

SESSION_TIMEOUT = 30
REQUEST_TIMEOUT = 3.0

# Cached tokens expire at timeout - timeout / 8, ahead of the broker.
SESSION_TTL_DIVISOR = 8

# -- Retry ---------------------------------------------------------------------

MAX_RETRIES = 3

# RPC error codes the gateway returns for an expired or unknown session
STALE_SESSION_CODES = frozenset({404, 500})

# -- Publish defaults ----------------------------------------------------------

DEFAULT_MIMETYPE = "text/plain"
DELIVERY_MODE_TRANSIENT = 1
DELIVERY_MODE_PERSISTENT = 2
DEFAULT_TICKET = 0

# -- Shared cache --------------------------------------------------------------

CACHE_KEY_PREFIX = "bunny:"
TOKEN_SUFFIX = ":token"
ID_SUFFIX = ":id"

# -- HTTP ----------------------------------------------------------------------

HTTP_OK = 200
