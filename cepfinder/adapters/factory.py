"""Factory functions for instantiating provider adapters."""

import logging
from typing import Dict, List, Type

from cepfinder.config.models import AppConfig, HttpConfig, ProviderConfig
from cepfinder.domain.models import ProviderName

from .base import BaseAdapter
from .brasilapi import BrasilAPIAdapter
from .exceptions import AdapterConfigurationError
from .viacep import ViaCEPAdapter

logger = logging.getLogger(__name__)

ADAPTER_CLASSES: Dict[str, Type[BaseAdapter]] = {
    ProviderName.BRASILAPI.value: BrasilAPIAdapter,
    ProviderName.VIACEP.value: ViaCEPAdapter,
}


def get_adapter(provider_config: ProviderConfig, http_config: HttpConfig) -> BaseAdapter:
    """Instantiate the adapter for one provider.

    Args:
        provider_config: Provider entry (name and optional base URL)
        http_config: Shared HTTP settings (timeout, user agent, status check)

    Returns:
        Instantiated adapter for the provider

    Raises:
        AdapterConfigurationError: If the provider is unknown or the settings are invalid

    Example:
        >>> adapter = get_adapter(ProviderConfig(name="ViaCEP"), HttpConfig())
        >>> outcome = adapter.lookup("01001000")
    """
    name = provider_config.name
    if isinstance(name, ProviderName):
        name = name.value
    adapter_class = ADAPTER_CLASSES.get(name)

    if not adapter_class:
        supported = ", ".join(sorted(ADAPTER_CLASSES))
        raise AdapterConfigurationError(
            f"Unknown provider: {provider_config.name}. Supported providers: {supported}"
        )

    logger.debug(
        "Creating adapter instance",
        extra={
            "provider": name,
            "adapter_class": adapter_class.__name__,
            "base_url": provider_config.base_url,
        },
    )

    try:
        return adapter_class(
            timeout=http_config.request_timeout,
            user_agent=http_config.user_agent,
            base_url=provider_config.base_url,
            check_status=http_config.check_status,
        )
    except AdapterConfigurationError:
        raise
    except Exception as e:
        raise AdapterConfigurationError(f"Failed to create {name} adapter: {e}") from e


def build_adapters(app_config: AppConfig) -> List[BaseAdapter]:
    """Build one adapter per enabled provider, in configuration order."""
    return [
        get_adapter(provider, app_config.http)
        for provider in app_config.get_enabled_providers()
    ]
