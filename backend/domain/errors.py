"""
Error taxonomy for the places gateway.

Each error carries a machine-readable ``kind`` and an HTTP status the
transport layer can map directly into a response.
"""
from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for errors surfaced by the gateway core."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class InvalidInputError(GatewayError):
    """Bad coordinates, unknown provider or missing required parameters."""

    kind = "invalid_input"
    status_code = 400


class UnauthorizedError(GatewayError):
    kind = "unauthorized"
    status_code = 403


class UpstreamError(GatewayError):
    """Provider call failed: transport error, non-2xx or unparseable payload."""

    kind = "upstream_error"
    status_code = 502

    def __init__(
        self,
        provider: str,
        message: str,
        upstream_status: Optional[int] = None,
    ):
        self.provider = provider
        self.upstream_status = upstream_status
        super().__init__(f"{provider}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["provider"] = self.provider
        data["upstream_status"] = self.upstream_status
        return data


class CacheStoreError(GatewayError):
    """KV store unavailable or returned something that cannot be decoded."""

    kind = "cache_store_error"
    status_code = 503
