"""Wires the gateway's services into a ``ServiceContainer``."""

from __future__ import annotations

import asyncio
import logging

from alttextgen.config import ConfigResolver, GatewayConfig
from alttextgen.container import ServiceContainer
from alttextgen.handler import GenerateRequestHandler, provider_service
from alttextgen.providers import get_provider
from alttextgen.providers.base import BaseProvider
from alttextgen.providers.catalog import PROVIDERS
from alttextgen.security import TokenRegistry
from alttextgen.settings import SettingsPage
from alttextgen.storage import MediaLibrary, OptionStore

logger = logging.getLogger(__name__)

_closing: set[asyncio.Task[None]] = set()


def _close_stale(provider: BaseProvider) -> None:
    """Close a replaced provider's client, on the running loop if there is one."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(provider.aclose())
        return
    task = loop.create_task(provider.aclose())
    _closing.add(task)
    task.add_done_callback(_closing.discard)


def register_providers(
    container: ServiceContainer,
    config: GatewayConfig,
    resolver: ConfigResolver,
    media: MediaLibrary,
) -> None:
    """Register one lazily-built provider per catalog entry.

    Re-registering replaces cached instances, so a new API key takes
    effect; the replaced instances have their clients closed.
    """
    for provider_id in PROVIDERS:
        stale = container.cached(provider_service(provider_id))

        def factory(provider_id: str = provider_id):  # type: ignore[no-untyped-def]
            return get_provider(
                provider_id,
                api_key=resolver.api_key(provider_id) or None,
                media=media,
                max_tokens=config.ai.max_tokens,
                timeout=config.ai.timeout,
            )

        container.register(provider_service(provider_id), factory)
        if isinstance(stale, BaseProvider):
            logger.debug("Closing replaced provider | provider=%s", provider_id)
            _close_stale(stale)


def build_container(
    config: GatewayConfig,
    *,
    options: OptionStore | None = None,
    media: MediaLibrary | None = None,
    tokens: TokenRegistry | None = None,
) -> ServiceContainer:
    """Create a container holding every service one process needs.

    Stores default to the files named in ``config.storage``.
    """
    if options is None:
        options = OptionStore.load(config.storage.options_path)
    if media is None:
        media = MediaLibrary.load(config.storage.library_path)
    tokens = tokens or TokenRegistry()
    resolver = ConfigResolver(options, site_language=config.site.language)

    container = ServiceContainer()
    container.register("config", lambda: config)
    container.register("options", lambda: options)
    container.register("media", lambda: media)
    container.register("tokens", lambda: tokens)
    container.register("resolver", lambda: resolver)
    register_providers(container, config, resolver, media)

    container.register("settings", lambda: SettingsPage(
        options,
        resolver,
        container,
        on_change=lambda: register_providers(container, config, resolver, media),
    ))
    container.register("request_handler", lambda: GenerateRequestHandler(
        container, resolver=resolver, media=media, tokens=tokens,
    ))

    logger.debug("Container services registered")
    return container
