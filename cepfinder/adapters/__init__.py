"""Provider adapters for postal code lookup services.

This module provides adapters for:
- BrasilAPI: brasilapi.BrasilAPIAdapter
- ViaCEP: viacep.ViaCEPAdapter

Use the factory functions to instantiate adapters:
    from cepfinder.adapters.factory import build_adapters
    adapters = build_adapters(app_config)
    outcome = adapters[0].lookup("01001000")

lookup() never raises for upstream problems; it returns a ProviderSuccess or a
ProviderFailure. The exceptions below are used inside the adapters and at
construction time.
"""

from .base import BaseAdapter
from .brasilapi import BrasilAPIAdapter, BrasilAPIResponse
from .exceptions import (
    AdapterBodyReadError,
    AdapterCancelledError,
    AdapterConfigurationError,
    AdapterDecodeError,
    AdapterError,
    AdapterHTTPError,
    AdapterNotFoundError,
    AdapterTimeoutError,
    AdapterTransportError,
)
from .factory import build_adapters, get_adapter
from .viacep import ViaCEPAdapter, ViaCEPResponse

__all__ = [
    # Base and factory
    "BaseAdapter",
    "get_adapter",
    "build_adapters",
    # Adapters
    "BrasilAPIAdapter",
    "ViaCEPAdapter",
    "BrasilAPIResponse",
    "ViaCEPResponse",
    # Exceptions
    "AdapterError",
    "AdapterTransportError",
    "AdapterTimeoutError",
    "AdapterHTTPError",
    "AdapterBodyReadError",
    "AdapterDecodeError",
    "AdapterNotFoundError",
    "AdapterCancelledError",
    "AdapterConfigurationError",
]
