"""Provider catalog, option naming and language constants."""

from __future__ import annotations

from alttextgen.models import ProviderInfo

OPTION_NAMESPACE = "ai_alt_text"

# Option names
OPTION_PROVIDER = f"{OPTION_NAMESPACE}_provider"
OPTION_LANGUAGE = f"{OPTION_NAMESPACE}_language"

# Per-image metadata keys
META_ALT_TEXT = "_wp_attachment_image_alt"
META_ALT_GENERATED = "_ai_alt_generated"

DEFAULT_PROVIDER = "gemini"
DEFAULT_LANGUAGE = "ja"

PROVIDERS: dict[str, ProviderInfo] = {
    "gemini": ProviderInfo(
        provider_id="gemini",
        display_name="Google Gemini",
        default_model="models/gemini-2.5-flash-lite-preview-06-17",
        models={
            "models/gemini-2.5-pro": "Gemini 2.5 Pro (highest quality, thinking)",
            "models/gemini-2.5-flash": "Gemini 2.5 Flash (balanced, thinking)",
            "models/gemini-2.5-flash-lite-preview-06-17": "Gemini 2.5 Flash-Lite (cost efficient, high throughput)",
            "models/gemini-2.0-flash": "Gemini 2.0 Flash (realtime)",
            "models/gemini-2.0-flash-lite": "Gemini 2.0 Flash-Lite (cost efficient, low latency)",
        },
        env_var="GOOGLE_API_KEY",
    ),
    "openai": ProviderInfo(
        provider_id="openai",
        display_name="OpenAI",
        default_model="gpt-4.1-mini-2025-04-14",
        models={
            "gpt-4.1-mini-2025-04-14": "GPT-4.1 mini",
            "gpt-4.1-nano-2025-04-14": "GPT-4.1 nano",
        },
        env_var="OPENAI_API_KEY",
    ),
    "claude": ProviderInfo(
        provider_id="claude",
        display_name="Anthropic Claude",
        default_model="claude-3-5-haiku-20241022",
        models={
            "claude-3-5-haiku-20241022": "Claude 3.5 Haiku",
            "claude-sonnet-4-20250514": "Claude Sonnet 4",
        },
        env_var="ANTHROPIC_API_KEY",
    ),
}

LANGUAGES: dict[str, str] = {
    "ja": "Japanese",
    "en": "English",
    "zh": "Chinese",
    "ko": "Korean",
    "fr": "French",
    "de": "German",
}


def option_key(setting: str, provider_id: str | None = None) -> str:
    """Return the option name for *setting*, scoped to *provider_id* if given.

    ``option_key("model", "gemini")`` -> ``"ai_alt_text_model_gemini"``
    """
    if provider_id:
        return f"{OPTION_NAMESPACE}_{setting}_{provider_id}"
    return f"{OPTION_NAMESPACE}_{setting}"


def language_name(code: str) -> str:
    """English name for a language code, falling back to the code itself.

    Region suffixes are ignored, so ``"en-US"`` reads as ``"English"``.
    """
    base = code.replace("_", "-").split("-")[0].lower()
    return LANGUAGES.get(base, code)
