"""AI provider registry."""
from __future__ import annotations

import logging
from typing import Optional

from .anthropic_provider import AnthropicProvider

logger = logging.getLogger("setup_ai.providers")

PROVIDERS: dict[str, type] = {
    "anthropic": AnthropicProvider,
}


def get_provider(name: str, **kwargs):
    """Instantiate a provider by name.

    Raises:
        CapabilityUnavailableError: If the provider name is unknown.
    """
    if name not in PROVIDERS:
        from setup_ai.errors import CapabilityUnavailableError
        available = ", ".join(sorted(PROVIDERS))
        raise CapabilityUnavailableError(
            f"Unknown provider '{name}'. Available: {available}",
            backend=name,
        )
    return PROVIDERS[name](**kwargs)


def get_provider_names() -> list[str]:
    """Get sorted list of all registered provider names."""
    return sorted(PROVIDERS)


def find_available_provider(name: str, **kwargs) -> Optional[object]:
    """Return the named provider if it is configured, else None."""
    provider = get_provider(name, **kwargs)
    if provider.is_available():
        return provider
    logger.debug("Provider %s is not configured", name)
    return None
