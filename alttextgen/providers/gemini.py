"""Google Gemini vision provider — uses the REST API directly (no SDK install needed)."""

from __future__ import annotations

import base64
import json
from typing import TYPE_CHECKING, Any

import httpx

from alttextgen.providers.base import BaseProvider

if TYPE_CHECKING:
    from alttextgen.storage import ImageData

_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


def _model_path(model: str) -> str:
    """Gemini addresses models as ``models/<name>``."""
    return model if model.startswith("models/") else f"models/{model}"


# 2.5 models count thinking tokens against maxOutputTokens.  Pro has a
# minimum thinking budget, added on top of the cap.
_THINKING_PREFIX = "models/gemini-2.5"
_MIN_THINKING_BUDGET = {"models/gemini-2.5-pro": 128}


def _generation_config(model: str, max_tokens: int) -> dict[str, Any]:
    path = _model_path(model)
    if not path.startswith(_THINKING_PREFIX):
        return {"maxOutputTokens": max_tokens}
    budget = _MIN_THINKING_BUDGET.get(path, 0)
    return {
        "maxOutputTokens": max_tokens + budget,
        "thinkingConfig": {"thinkingBudget": budget},
    }


class GeminiProvider(BaseProvider):
    """Google Gemini vision model provider."""

    provider_id = "gemini"

    def _make_client(self, api_key: str) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {"headers": {"x-goog-api-key": api_key}}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        return httpx.AsyncClient(**kwargs)

    async def _close_client(self, client: httpx.AsyncClient) -> None:
        await client.aclose()

    async def _send(self, image: ImageData, prompt: str, model: str) -> dict[str, Any]:
        payload = {
            "contents": [
                {
                    "parts": [
                        {
                            "inline_data": {
                                "mime_type": image.mime_type,
                                "data": base64.b64encode(image.data).decode(),
                            }
                        },
                        {"text": prompt},
                    ]
                }
            ],
            "generationConfig": _generation_config(model, self._max_tokens),
        }

        # Serialize to bytes so httpx sends Content-Length (Google rejects chunked)
        body = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json", "Content-Length": str(len(body))}

        resp = await self._client.post(
            f"{_API_BASE}/{_model_path(model)}:generateContent",
            content=body,
            headers=headers,
        )
        resp.raise_for_status()
        return resp.json()

    def _extract_text(self, response: dict[str, Any]) -> str | None:
        candidates = response.get("candidates") or []
        if not candidates:
            return None
        parts = candidates[0].get("content", {}).get("parts") or []
        texts = [p["text"] for p in parts if isinstance(p.get("text"), str)]
        return "".join(texts) if texts else None

    def _describe_error(self, exc: Exception) -> str:
        if isinstance(exc, httpx.HTTPStatusError):
            detail = exc.response.text
            try:
                detail = exc.response.json().get("error", {}).get("message") or detail
            except (ValueError, AttributeError):
                pass
            return f"{exc.response.status_code} {detail}"
        return super()._describe_error(exc)
