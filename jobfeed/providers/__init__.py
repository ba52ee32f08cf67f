from __future__ import annotations
from typing import Any, Dict, Protocol

from .base import ListingFields, ListingProvider


class Provider(Protocol):
    name: str

    @property
    def configured(self) -> bool: ...

    def search(self, query: str, location: str) -> list[dict]: ...

    def to_fields(self, raw: dict) -> ListingFields: ...


# Provider registry (adapter classes, populated below)
REGISTRY: Dict[str, type] = {}


def register(provider_cls: type) -> type:
    REGISTRY[provider_cls.name] = provider_cls
    return provider_cls


def get(name: str, **kwargs: Any) -> Provider:
    """Instantiate a registered adapter; raises KeyError for unknown names."""
    return REGISTRY[name](**kwargs)


from .serpapi import SerpApiProvider  # noqa: E402
from .jsearch import JSearchProvider  # noqa: E402
from .adzuna import AdzunaProvider  # noqa: E402
from .arbeitnow import ArbeitnowProvider  # noqa: E402

for _cls in (SerpApiProvider, JSearchProvider, AdzunaProvider, ArbeitnowProvider):
    register(_cls)

__all__ = [
    "Provider",
    "ListingFields",
    "ListingProvider",
    "REGISTRY",
    "register",
    "get",
]
