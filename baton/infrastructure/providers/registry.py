from typing import Dict, List, Optional
import structlog

from baton.exceptions import ProviderError
from baton.infrastructure.providers.base import ChatProvider

logger = structlog.get_logger(__name__)


class ProviderRegistry:
    """Named model providers, looked up by the agent's provider setting"""

    def __init__(self, providers: Optional[Dict[str, ChatProvider]] = None):
        self._providers: Dict[str, ChatProvider] = {}
        for name, provider in (providers or {}).items():
            self.register(name, provider)

    def register(self, name: str, provider: ChatProvider, replace: bool = False) -> "ProviderRegistry":
        if not name:
            raise ValueError("Provider name must not be empty")
        if name in self._providers and not replace:
            raise ValueError(f"Provider '{name}' already registered")

        self._providers[name] = provider
        logger.debug("Provider registered", provider=name)
        return self

    def get(self, name: str) -> ChatProvider:
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderError(f"Unknown provider: {name}. Available: {', '.join(self._providers)}")
        return provider

    def available(self) -> List[str]:
        return list(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers
