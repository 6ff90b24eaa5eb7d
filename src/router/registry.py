import logging
from typing import Dict, List, Optional, Union

from providers.base import Provider, ProviderAdapter, UnknownProviderError

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry for translation provider adapters.

    - Holds one adapter per ``Provider`` member
    - On init, registers the Azure and Google adapters from environment config
    """

    def __init__(self, auto_register: bool = True, timeout: float = 30.0) -> None:
        self._providers: Dict[Provider, ProviderAdapter] = {}
        self._timeout = timeout
        if auto_register:
            self._auto_register()

    def register_provider(self, provider: ProviderAdapter) -> None:
        name = Provider.parse(provider.name)
        self._providers[name] = provider
        logger.info("Registered provider: %s (configured=%s)", name.value, provider.configured)

    def get_providers(self) -> List[ProviderAdapter]:
        return list(self._providers.values())

    def get_provider(self, name: Union[str, Provider]) -> ProviderAdapter:
        key = Provider.parse(name)
        adapter = self._providers.get(key)
        if adapter is None:
            raise UnknownProviderError(f"No adapter registered for {key.value!r}")
        return adapter

    def find_provider(self, name: Union[str, Provider]) -> Optional[ProviderAdapter]:
        return self._providers.get(Provider.parse(name))

    async def aclose(self) -> None:
        for adapter in self._providers.values():
            try:
                await adapter.aclose()
            except Exception as e:  # pragma: no cover
                logger.warning("Failed to close %s adapter: %s", adapter.name.value, e)

    def _auto_register(self) -> None:
        from providers.azure import AzureTranslatorAdapter  # local import
        from providers.google import GoogleTranslateAdapter  # local import

        self.register_provider(AzureTranslatorAdapter(timeout=self._timeout))
        self.register_provider(GoogleTranslateAdapter(timeout=self._timeout))
