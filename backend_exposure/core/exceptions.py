"""
Application-level exceptions.

Three failure classes reach the analysis entry point:
- InvalidAddressError: malformed address, rejected before any chain call.
- UpstreamUnavailableError: every RPC attempt failed; fatal only for the
  load-bearing balance/signature fetch.
- Partial data (optional collectors, analyzers, price feed): logged and replaced
  by a default value, never raised to the caller.
"""

from __future__ import annotations


class ExposureError(Exception):
    """Base class for all exposure-engine errors."""


class InvalidAddressError(ExposureError):
    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Invalid Solana address: {address!r}")


class RpcError(ExposureError):
    """A single JSON-RPC call failed (transport, timeout, HTTP status or RPC error member)."""

    def __init__(
        self,
        method: str,
        endpoint: str,
        message: str,
        code: int | None = None,
    ) -> None:
        self.method = method
        self.endpoint = endpoint
        self.code = code
        super().__init__(f"{method} via {endpoint}: {message}")


class UpstreamUnavailableError(ExposureError):
    """All retry attempts across the endpoint pool were exhausted."""

    def __init__(
        self,
        method: str,
        endpoint: str,
        attempts: int,
        last_error: BaseException | None = None,
    ) -> None:
        self.method = method
        self.endpoint = endpoint
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(
            f"{method} failed after {attempts} attempts (last endpoint {endpoint}){detail}"
        )


class PriceFeedError(ExposureError):
    """Price lookup failed; callers degrade to 'no prices'."""
