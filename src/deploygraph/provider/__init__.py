from .base import ProviderClient, ProviderLike, ProviderRegistry
from .memory import InMemoryProvider

__all__ = ["ProviderClient", "ProviderLike", "ProviderRegistry", "InMemoryProvider"]
