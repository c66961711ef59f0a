"""Base protocol and shared plumbing for AI vision providers."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from alttextgen.models import (
    CaptionResult,
    ErrorKind,
    FieldRenderer,
    ProviderInfo,
    ProviderSettingsField,
)
from alttextgen.providers.catalog import PROVIDERS, language_name, option_key

if TYPE_CHECKING:
    from alttextgen.storage import ImageData, MediaLibrary

logger = logging.getLogger(__name__)

_PROMPT = (
    "You are an accessibility expert. Write alt text for the image provided, "
    "suitable for a screen reader. Describe its content in one concise "
    "sentence, written in {language}. Do not start with an introductory "
    "phrase such as 'This image shows' or 'Image of'. Just describe the "
    "content directly."
)

DEFAULT_MAX_TOKENS = 200


def build_prompt(language: str) -> str:
    """Instruction text sent alongside the image."""
    return _PROMPT.format(language=f"{language_name(language)} ({language})")


@runtime_checkable
class CaptionProvider(Protocol):
    """Interface that every AI vision provider must implement.

    Providers live in ``alttextgen/providers/``, one file per vendor.
    No vendor-specific code should exist outside that directory.
    """

    @property
    def name(self) -> str:
        """Provider identifier (e.g. 'gemini', 'openai')."""
        ...

    async def generate(self, image_id: int, language: str, model: str) -> CaptionResult:
        """Generate alt text for one image.

        Never raises for vendor or transport failures; the returned
        result carries the error kind and message instead.
        """
        ...

    def describe_settings(self) -> list[ProviderSettingsField]:
        """Settings fields this provider needs, in display order."""
        ...

    def is_available(self) -> bool:
        """True when a client could be built (an API key is configured)."""
        ...


class BaseProvider:
    """Shared request cycle for the cloud providers.

    Subclasses set ``provider_id`` and implement ``_make_client``,
    ``_send`` and ``_extract_text``.  The client is built once, in the
    constructor, and only when an API key is present.
    """

    provider_id: str = ""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        media: MediaLibrary | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float | None = 60.0,
        **_kwargs: object,
    ) -> None:
        self.info: ProviderInfo = PROVIDERS[self.provider_id]
        self._api_key = api_key or os.environ.get(self.info.env_var, "")
        self._media = media
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._client: Any = self._make_client(self._api_key) if self._api_key else None

    @property
    def name(self) -> str:
        return self.provider_id

    def is_available(self) -> bool:
        return self._client is not None

    def describe_settings(self) -> list[ProviderSettingsField]:
        display = self.info.display_name
        fields = [
            ProviderSettingsField(
                key=option_key("api_key", self.provider_id),
                label=f"{display} API key",
                renderer=FieldRenderer.API_KEY,
            ),
        ]
        if self.info.models:
            fields.append(ProviderSettingsField(
                key=option_key("model", self.provider_id),
                label=f"{display} model",
                renderer=FieldRenderer.MODEL,
            ))
        return fields

    async def generate(self, image_id: int, language: str, model: str) -> CaptionResult:
        display = self.info.display_name
        if self._client is None:
            logger.warning("%s client not initialized - API key may be missing", display)
            return CaptionResult.fail(
                ErrorKind.CREDENTIAL_MISSING,
                f"{display} API key is not configured.",
            )

        image = self._load_image(image_id)
        if isinstance(image, CaptionResult):
            return image

        logger.debug(
            "Starting alt generation with %s | image_id=%s language=%s model=%s",
            display, image_id, language, model,
        )

        try:
            response = await self._send(image, build_prompt(language), model)
        except Exception as exc:
            message = self._describe_error(exc)
            logger.error(
                "%s API error: %s | image_id=%s model=%s", display, message, image_id, model,
            )
            return CaptionResult.fail(
                ErrorKind.PROVIDER_ERROR,
                f"{display} API error: {message}",
                {"image_id": image_id, "model": model, "exception": type(exc).__name__},
            )

        try:
            text = self._extract_text(response)
        except (AttributeError, IndexError, KeyError, TypeError):
            text = None
        text = (text or "").strip()
        if not text:
            logger.error("Unexpected response format from %s | image_id=%s", display, image_id)
            return CaptionResult.fail(
                ErrorKind.MALFORMED_RESPONSE,
                f"Unexpected response format from {display}.",
                {"image_id": image_id, "model": model},
            )

        logger.info(
            "Alt text generated successfully with %s | image_id=%s text_length=%d",
            display, image_id, len(text),
        )
        return CaptionResult.ok(text)

    def _load_image(self, image_id: int) -> ImageData | CaptionResult:
        image = None
        if self._media is not None:
            try:
                image = self._media.get_image(image_id)
            except OSError as exc:
                logger.error("Cannot read image %s: %s", image_id, exc)
        if image is None:
            return CaptionResult.fail(
                ErrorKind.IMAGE_MISSING,
                "Could not read the image file.",
                {"image_id": image_id},
            )
        return image

    async def aclose(self) -> None:
        """Release the vendor client's connection pool; the provider becomes unavailable."""
        client, self._client = self._client, None
        if client is not None:
            await self._close_client(client)

    def _describe_error(self, exc: Exception) -> str:
        return str(exc) or type(exc).__name__

    async def _close_client(self, client: Any) -> None:
        await client.close()

    def _make_client(self, api_key: str) -> Any:
        raise NotImplementedError

    async def _send(self, image: ImageData, prompt: str, model: str) -> Any:
        raise NotImplementedError

    def _extract_text(self, response: Any) -> str | None:
        raise NotImplementedError
