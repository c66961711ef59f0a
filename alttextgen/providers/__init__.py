"""AI vision providers for alt text generation.

Provider registry — use ``get_provider()`` to obtain a ``CaptionProvider``
by name, and ``list_available()`` to check which providers are configured.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from alttextgen.models import ProviderInfo
from alttextgen.providers.base import CaptionProvider
from alttextgen.providers.catalog import PROVIDERS

logger = logging.getLogger(__name__)

# Map of provider name → module path, class name
_PROVIDER_MAP: dict[str, tuple[str, str]] = {
    "gemini": ("alttextgen.providers.gemini", "GeminiProvider"),
    "openai": ("alttextgen.providers.openai", "OpenAIProvider"),
    "claude": ("alttextgen.providers.claude", "ClaudeProvider"),
}


def _check_provider_map() -> None:
    """Every catalog entry needs an implementation and vice versa."""
    mismatched = set(_PROVIDER_MAP) ^ set(PROVIDERS)
    if mismatched:
        raise RuntimeError(
            f"Provider map and catalog disagree: {', '.join(sorted(mismatched))}"
        )


_check_provider_map()


def provider_info(name: str) -> ProviderInfo:
    """Catalog entry for *name*; raises ``ValueError`` if unknown."""
    name = name.lower().strip()
    if name not in PROVIDERS:
        raise ValueError(
            f"Unknown provider: {name!r}. Available: {', '.join(PROVIDERS)}"
        )
    return PROVIDERS[name]


def get_provider(name: str, *, api_key: str | None = None, **kwargs: Any) -> CaptionProvider:
    """Create a provider instance by name.

    Raises ``ValueError`` if the provider name is unknown.
    """
    info = provider_info(name)
    module_path, class_name = _PROVIDER_MAP[info.provider_id]

    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)

    init_kwargs: dict[str, Any] = dict(kwargs)
    if api_key is not None:
        init_kwargs["api_key"] = api_key

    return cls(**init_kwargs)


def list_available(api_keys: dict[str, str] | None = None) -> list[tuple[str, bool]]:
    """Return (provider_name, is_available) for all known providers.

    *api_keys* maps provider name to a configured key; providers without
    one still pick up their environment variable.
    """
    api_keys = api_keys or {}
    results: list[tuple[str, bool]] = []
    for name in _PROVIDER_MAP:
        try:
            available = get_provider(name, api_key=api_keys.get(name) or None).is_available()
        except ImportError as exc:
            logger.warning("Provider %s unavailable: %s", name, exc)
            available = False
        results.append((name, available))
    return results
