"""Anthropic (Claude) vision provider."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

import anthropic

from alttextgen.providers.base import BaseProvider

if TYPE_CHECKING:
    from alttextgen.storage import ImageData


class ClaudeProvider(BaseProvider):
    """Claude vision model provider via the Anthropic API."""

    provider_id = "claude"

    def _make_client(self, api_key: str) -> anthropic.AsyncAnthropic:
        if self._timeout is None:
            return anthropic.AsyncAnthropic(api_key=api_key)
        return anthropic.AsyncAnthropic(api_key=api_key, timeout=self._timeout)

    async def _send(self, image: ImageData, prompt: str, model: str) -> Any:
        return await self._client.messages.create(
            model=model,
            max_tokens=self._max_tokens,
            messages=[{
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": image.mime_type,
                            "data": base64.b64encode(image.data).decode(),
                        },
                    },
                    {"type": "text", "text": prompt},
                ],
            }],
        )

    def _extract_text(self, response: Any) -> str | None:
        if not response.content:
            return None
        first_block = response.content[0]
        return getattr(first_block, "text", None)
