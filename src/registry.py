from __future__ import annotations

import logging
from threading import Lock
from typing import Callable

from backends import BUILTIN_PROVIDER_TYPES, StreamingProvider
from errors import ConfigurationError
from providers import ProviderConfig


logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderConfig], StreamingProvider]


class ProviderRegistry:
    """Named provider configs plus a lazily built, memoized instance cache.

    Lookups of already constructed providers do not take the lock; construction
    is serialized and re-checks the cache so a name is never built twice.
    """

    def __init__(self, factories: dict[str, ProviderFactory] | None = None) -> None:
        self._factories: dict[str, ProviderFactory] = dict(
            BUILTIN_PROVIDER_TYPES if factories is None else factories
        )
        self._configs: dict[str, ProviderConfig] = {}
        self._providers: dict[str, StreamingProvider] = {}
        self._lock = Lock()

    def register_factory(self, kind: str, factory: ProviderFactory) -> None:
        with self._lock:
            self._factories[kind] = factory

    def register_config(self, name: str, config: ProviderConfig) -> None:
        with self._lock:
            self._configs[name] = config

    def registered_names(self) -> list[str]:
        with self._lock:
            return list(self._configs)

    def available_kinds(self) -> list[str]:
        with self._lock:
            return sorted(self._factories)

    def get_provider(self, name: str) -> StreamingProvider:
        provider = self._providers.get(name)
        if provider is not None:
            return provider

        with self._lock:
            provider = self._providers.get(name)
            if provider is not None:
                return provider
            provider = self._create_provider(name)
            self._providers[name] = provider
            logger.debug("Created provider %r (%s)", name, type(provider).__name__)
            return provider

    def clear_providers(self) -> None:
        with self._lock:
            self._providers = {}

    def _create_provider(self, name: str) -> StreamingProvider:
        config = self._configs.get(name)
        if config is None:
            raise ConfigurationError("provider_name", f"unknown provider: {name}")

        factory = self._factories.get(config.provider_kind)
        if factory is None:
            raise ConfigurationError(
                f"{name}.kind", f"unsupported provider kind: {config.provider_kind}"
            )

        try:
            return factory(config)
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ConfigurationError(
                name, f"failed to create provider: {exc}"
            ) from exc
