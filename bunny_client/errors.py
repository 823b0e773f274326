# =============================================================================
# Bunny Client -- Error Types
# =============================================================================


class BunnyError(Exception):
    """Base exception for all bunny client errors."""


class BunnyConfigError(BunnyError):
    """Invalid client configuration (bad values, missing shared cache)."""


class BunnyValidationError(BunnyError, ValueError):
    """Caller supplied an invalid publish request or RPC method."""


class BunnyConnectionError(BunnyError):
    """The gateway could not be reached at all."""


class BunnyTimeoutError(BunnyConnectionError):
    """A gateway call did not complete within the request timeout."""


class BunnyHTTPError(BunnyError):
    """The gateway answered with a non-200 HTTP status."""

    def __init__(self, status: int, body: str = "", operation: str | None = None) -> None:
        self.status = status
        self.body = body
        self.operation = operation
        where = f" during {operation}" if operation else ""
        super().__init__(f"Received HTTP {status}{where}: {body[:200]}")


class BunnyRPCError(BunnyError):
    """The gateway returned a JSON-RPC error object."""

    def __init__(
        self,
        code: int | None,
        message: str,
        operation: str | None = None,
        attempts: int = 1,
    ) -> None:
        self.code = code
        self.message = message
        self.operation = operation
        self.attempts = attempts
        where = f" during {operation}" if operation else ""
        tries = f" after {attempts} attempts" if attempts > 1 else ""
        super().__init__(f"RPC error {code}{where}{tries}: {message}")


class BunnyProtocolError(BunnyError):
    """Gateway reply violates the JSON-RPC contract (not JSON, no result)."""
