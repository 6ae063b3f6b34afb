"""
Spot-price feed for SOL and SPL mints.
"""

from backend_exposure.pricing.price_feed import SOL_MINT, PriceFeed

__all__ = ["SOL_MINT", "PriceFeed"]
