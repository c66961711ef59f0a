"""Pydantic configuration model with YAML loading, and the settings resolver."""

from __future__ import annotations

import logging
import secrets
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

from alttextgen.models import ResolvedConfig
from alttextgen.providers.base import DEFAULT_MAX_TOKENS
from alttextgen.providers.catalog import (
    DEFAULT_LANGUAGE,
    DEFAULT_PROVIDER,
    OPTION_LANGUAGE,
    OPTION_PROVIDER,
    PROVIDERS,
    option_key,
)
from alttextgen.storage import OptionStore

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_NAME = "alttextgen.yaml"


class AIConfig(BaseModel):
    """Vendor request settings."""

    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: Optional[float] = 60.0  # None -> transport default


class StorageConfig(BaseModel):
    """Where options and the media library live."""

    options_path: Path = Path("options.yaml")
    library_path: Path = Path("library.yaml")


class SiteConfig(BaseModel):
    """Host site settings."""

    language: str = ""


class GatewayConfig(BaseModel):
    """Top-level configuration for the gateway process."""

    ai: AIConfig = Field(default_factory=AIConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    site: SiteConfig = Field(default_factory=SiteConfig)
    users: dict[str, list[str]] = Field(default_factory=dict)
    access_tokens: dict[str, str] = Field(default_factory=dict, repr=False)  # user id -> bearer token
    log_level: str = "INFO"

    @classmethod
    def load(cls, path: Path | None = None) -> GatewayConfig:
        """Load config from a YAML file.

        Search order when *path* is None:
          1. ./alttextgen.yaml
          2. ~/.config/alttextgen/alttextgen.yaml

        Returns default config if no file is found.  Relative storage
        paths are resolved against the directory of the loaded file.
        """
        if path is not None:
            return cls._from_yaml(path)

        candidates = [
            Path.cwd() / _DEFAULT_CONFIG_NAME,
            Path.home() / ".config" / "alttextgen" / _DEFAULT_CONFIG_NAME,
        ]
        for candidate in candidates:
            if candidate.is_file():
                return cls._from_yaml(candidate)

        return cls()

    @classmethod
    def _from_yaml(cls, path: Path) -> GatewayConfig:
        raw: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        cfg = cls.model_validate(raw)
        base = path.parent
        for attr in ("options_path", "library_path"):
            value: Path = getattr(cfg.storage, attr)
            if not value.is_absolute():
                setattr(cfg.storage, attr, base / value)
        return cfg

    def capabilities_for(self, user_id: str) -> frozenset[str]:
        return frozenset(self.users.get(user_id, []))

    def user_for_token(self, token: str) -> str:
        """User id whose access token is *token*, or "" if none matches."""
        if not token:
            return ""
        presented = token.encode("utf-8")
        for user_id, expected in self.access_tokens.items():
            if expected and secrets.compare_digest(expected.encode("utf-8"), presented):
                return user_id
        return ""


class ConfigResolver:
    """Resolves provider, model, language and API key from stored options.

    Read-only: every call re-reads the option store and nothing is cached,
    so repeated calls within one request agree.
    """

    def __init__(self, options: OptionStore, *, site_language: str = "") -> None:
        self._options = options
        self._site_language = site_language

    def provider(self) -> str:
        provider = self._options.get(OPTION_PROVIDER, DEFAULT_PROVIDER).strip().lower()
        if provider not in PROVIDERS:
            if provider:
                logger.debug("Unknown stored provider %r, using %s", provider, DEFAULT_PROVIDER)
            provider = DEFAULT_PROVIDER
        return provider

    def model(self, provider: str | None = None) -> str:
        provider = provider or self.provider()
        info = PROVIDERS[provider]
        model = self._options.get(option_key("model", provider)).strip()
        if not model or model not in info.models:
            return info.default_model
        return model

    def language(self) -> str:
        lang = self._options.get(OPTION_LANGUAGE).strip()
        if not lang:
            lang = self._site_language.strip() or DEFAULT_LANGUAGE
        return lang

    def api_key(self, provider: str | None = None) -> str:
        provider = provider or self.provider()
        return self._options.get(option_key("api_key", provider)).strip()

    def model_options(self, provider: str | None = None) -> dict[str, str]:
        return dict(PROVIDERS[provider or self.provider()].models)

    def resolve(self) -> ResolvedConfig:
        provider = self.provider()
        return ResolvedConfig(
            provider=provider,
            model=self.model(provider),
            language=self.language(),
            api_key=self.api_key(provider),
        )
