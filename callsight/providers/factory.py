"""
Name -> provider class registry.

A batch picks its provider once, from PipelineConfig; everything downstream
(orchestrator, backoff controller, report generation) only sees the
LLMProvider interface.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Type

from .base import LLMProvider

logger = logging.getLogger(__name__)


def _cache_key(name: str, options: Dict[str, Any]) -> Tuple[str, str]:
    return name, repr(sorted(options.items()))


class ProviderFactory:
    """
    Builds classification providers by name.

    Instances are reused for identical (name, options) pairs so repeated
    batches against the same model share one HTTP configuration.
    """

    _registry: Dict[str, Type[LLMProvider]] = {}
    _cache: Dict[Tuple[str, str], LLMProvider] = {}

    @classmethod
    def register(cls, name: str, provider_class: Type[LLMProvider]) -> None:
        cls._registry[name] = provider_class
        logger.debug(f"Provider '{name}' -> {provider_class.__name__}")

    @classmethod
    def unregister(cls, name: str) -> bool:
        """Remove a provider and its cached instances. Returns False if unknown."""
        if cls._registry.pop(name, None) is None:
            return False
        for key in [k for k in cls._cache if k[0] == name]:
            del cls._cache[key]
        return True

    @classmethod
    def create(
        cls, name: str, config: Optional[Dict[str, Any]] = None, use_cache: bool = True
    ) -> LLMProvider:
        """
        Return a provider for `name` configured with `config`.

        Args:
            name: Registered provider name ("groq", "gemini")
            config: Provider options (model, api_key, base_url, timeout, ...)
            use_cache: Reuse an instance built earlier with the same options

        Raises:
            ValueError: unknown provider, or the provider rejected its options
        """
        options = dict(config or {})
        key = _cache_key(name, options)
        if use_cache and key in cls._cache:
            return cls._cache[key]

        provider_class = cls._registry.get(name)
        if provider_class is None:
            raise ValueError(
                f"Unknown provider: '{name}'. Available: {cls.list_providers()}"
            )

        try:
            provider = provider_class(options)
        except ValueError as e:
            logger.error(f"Cannot configure provider '{name}': {e}")
            raise

        if use_cache:
            cls._cache[key] = provider
        logger.info(f"Provider ready: {provider.describe()}")
        return provider

    @classmethod
    def list_providers(cls) -> List[str]:
        return list(cls._registry)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._registry

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()


def _register_builtin_providers() -> None:
    from .gemini_provider import GeminiProvider
    from .groq_provider import GroqProvider

    ProviderFactory.register("groq", GroqProvider)
    ProviderFactory.register("gemini", GeminiProvider)


_register_builtin_providers()
