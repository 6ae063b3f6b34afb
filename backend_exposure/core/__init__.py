"""
Core cross-cutting concerns: the domain exception taxonomy.
"""

from backend_exposure.core.exceptions import (
    ExposureError,
    InvalidAddressError,
    PriceFeedError,
    RpcError,
    UpstreamUnavailableError,
)

__all__ = [
    "ExposureError",
    "InvalidAddressError",
    "PriceFeedError",
    "RpcError",
    "UpstreamUnavailableError",
]
