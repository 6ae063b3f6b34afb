"""
Configuration: environment loading, tunable settings and the static address registry.
"""

from backend_exposure.config.env import get_rpc_endpoints, load_exposure_env, mask_endpoint
from backend_exposure.config.registry import AddressRegistry, get_registry
from backend_exposure.config.settings import ExposureSettings, get_settings

__all__ = [
    "AddressRegistry",
    "ExposureSettings",
    "get_registry",
    "get_rpc_endpoints",
    "get_settings",
    "load_exposure_env",
    "mask_endpoint",
]
