"""OpenAI (GPT-4.1) vision provider."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

import openai

from alttextgen.providers.base import BaseProvider

if TYPE_CHECKING:
    from alttextgen.storage import ImageData


class OpenAIProvider(BaseProvider):
    """GPT vision model provider via the OpenAI API."""

    provider_id = "openai"

    def _make_client(self, api_key: str) -> openai.AsyncOpenAI:
        if self._timeout is None:
            return openai.AsyncOpenAI(api_key=api_key)
        return openai.AsyncOpenAI(api_key=api_key, timeout=self._timeout)

    async def _send(self, image: ImageData, prompt: str, model: str) -> Any:
        img_b64 = base64.b64encode(image.data).decode()
        return await self._client.chat.completions.create(
            model=model,
            max_tokens=self._max_tokens,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:{image.mime_type};base64,{img_b64}",
                            },
                        },
                    ],
                },
            ],
        )

    def _extract_text(self, response: Any) -> str | None:
        if not response.choices:
            return None
        return response.choices[0].message.content
