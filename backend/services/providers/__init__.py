from types import MappingProxyType
from typing import Mapping

from domain.errors import InvalidInputError
from .base import ProviderAdapter
from .google import GoogleAdapter
from .radar import RadarAdapter

# Read-only registry of provider adapters, keyed by provider id.
ADAPTERS: Mapping[str, ProviderAdapter] = MappingProxyType({
    adapter.name: adapter for adapter in (GoogleAdapter(), RadarAdapter())
})


def get_adapter(provider: str, adapters: Mapping[str, ProviderAdapter] = ADAPTERS) -> ProviderAdapter:
    adapter = adapters.get((provider or "").strip().lower())
    if adapter is None:
        raise InvalidInputError(
            f"Unknown provider {provider!r}; expected one of {sorted(adapters)}"
        )
    return adapter


__all__ = ["ADAPTERS", "ProviderAdapter", "GoogleAdapter", "RadarAdapter", "get_adapter"]
