# assignment_scraper/portals/__init__.py
from typing import Callable, Dict, List, Type

from .providers import IdentityProvider

_REGISTRY: Dict[str, Type[IdentityProvider]] = {}

def register_provider(key: str) -> Callable[[Type[IdentityProvider]], Type[IdentityProvider]]:
    """Class decorator to auto-register an identity provider's login table."""
    def decorator(cls: Type[IdentityProvider]) -> Type[IdentityProvider]:
        cls.key = key.lower()
        _REGISTRY[cls.key] = cls
        return cls
    return decorator

def get_provider(key: str) -> IdentityProvider:
    """Return the provider for ``key``; ``auto`` combines every registered table."""
    key = key.lower()
    if key == "auto":
        return IdentityProvider.combine([cls() for cls in _REGISTRY.values()])
    try:
        return _REGISTRY[key]()
    except KeyError:  # nicer error than raw KeyError
        raise ValueError(f"No identity provider registered for '{key}'") from None

def provider_keys() -> List[str]:
    return ["auto", *_REGISTRY]

# Import tables so they register (order = probe priority under "auto").
from . import identity  # noqa: E402,F401
