# =============================================================================
# Bunny Client -- JSON-RPC Envelope Codec
# =============================================================================
#
# Outgoing (client -> gateway):
#   {"version": 1.1, "method": "<open|call|cast|poll>", "id": n, "params": [...]}
#
# Incoming (gateway -> client):
#   {"version": "1.1", "id": n, "result": ...}
#   {"version": "1.1", "id": n, "error": {"code": int, "message": str}}
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import orjson

from .constants import JSONRPC_VERSION, VALID_METHODS
from .errors import BunnyProtocolError, BunnyValidationError
from .types import RPCResponse


@dataclass(frozen=True, slots=True)
class RequestEnvelope:
    """A versioned JSON-RPC request ready for transport.

    Build instances with :meth:`build`, which rejects unknown methods.
    An invalid method can make the gateway drop the channel without a
    reply, so it is refused before anything is sent.
    """

    method: str
    id: int
    params: list[Any] = field(default_factory=list)
    version: float = JSONRPC_VERSION

    @classmethod
    def build(
        cls, method: str, params: list[Any] | None = None, id: int = 0
    ) -> RequestEnvelope:
        if method not in VALID_METHODS:
            raise BunnyValidationError(f"Invalid RPC method: {method!r}")
        return cls(method=method, id=id, params=list(params or []))

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "method": self.method,
            "id": self.id,
            "params": self.params,
        }

    def encode(self) -> bytes:
        return orjson.dumps(self.to_dict())


def decode_response(body: str | bytes) -> RPCResponse:
    """Decode a gateway reply body into an :class:`RPCResponse`.

    Raises:
        BunnyProtocolError: If the body is not a JSON object.
    """
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise BunnyProtocolError(f"Reply is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise BunnyProtocolError(
            f"Reply is not a JSON object: {type(data).__name__}"
        )

    error = data.get("error")
    code: int | None = None
    message: str | None = None
    if isinstance(error, dict):
        code = error.get("code")
        message = str(error.get("message") or "")
    elif error is not None:
        message = str(error)

    return RPCResponse(
        id=data.get("id"),
        result=data.get("result"),
        has_result="result" in data,
        error_code=code,
        error_message=message,
    )
