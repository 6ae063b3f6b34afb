"""
Structured logging for Backend Exposure.

JSON logs with timestamp, wallet, event_type and call context.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_exposure.exposure_logging.logger import bind_wallet, get_logger, short_wallet

__all__ = ["bind_wallet", "get_logger", "short_wallet"]
